import numpy as np
import matplotlib.pyplot as plt
import argparse
import os
import csv
import particle_life_engine.config as cfg

def load_chronicle(run_number: int, directory: str = cfg.CHRONICLE_DIR):
    """Loads the per-epoch statistics of a given run as a dict of column arrays."""
    filename = os.path.join(directory, f"run_{run_number}_epochs.csv")
    print(f"Loading chronicle from {filename}...")
    try:
        with open(filename, 'r', newline='') as f:
            reader = csv.DictReader(f)
            rows = [row for row in reader if row]
    except (FileNotFoundError, IOError):
        print(f"Error: Chronicle file '{filename}' not found or is empty.")
        return None
    if not rows:
        print(f"Error: Chronicle file '{filename}' has no epochs.")
        return None
    try:
        return {key: np.array([float(row[key]) for row in rows]) for key in cfg.EPOCH_STATS_KEYS}
    except (KeyError, ValueError):
        print(f"Error: Could not parse data in {filename}. The file may be corrupted.")
        return None

def style_axis(ax, title=None, xlabel='Epoch', ylabel=None):
    ax.set_facecolor('#0a0a0a')
    if title:
        ax.set_title(title, color='white', fontsize=16, fontweight='bold')
    ax.set_xlabel(xlabel, color='white')
    if ylabel:
        ax.set_ylabel(ylabel, color='white')
    ax.tick_params(colors='white')
    ax.grid(True, alpha=0.3)

def style_legend(ax):
    legend = ax.legend(facecolor='#1a1a1a', edgecolor='gray')
    for text in legend.get_texts():
        text.set_color('white')

def build_evolution_summary(chronicle, run_number):
    """Builds the summary figure: score curves on top, diversity and mutation below."""
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))
    fig.patch.set_facecolor('#0a0a0a')
    epochs = chronicle['epoch'] + 1

    style_axis(ax1, title=f'Evolution Summary - Run #{run_number}', ylabel='Colony Score')
    ax1.fill_between(epochs, chronicle['worst'], chronicle['best'], color='#00DDDD', alpha=0.15)
    ax1.plot(epochs, chronicle['best'], color='#FF2222', label='Best', linewidth=2, marker='o', markersize=3)
    ax1.plot(epochs, chronicle['average'], color='#FFDD00', label='Average', linewidth=2)
    ax1.plot(epochs, chronicle['median'], color='#FF6600', label='Median', linewidth=1, linestyle=':')
    ax1.plot(epochs, chronicle['worst'], color='#00DDDD', label='Worst', linewidth=1)
    style_legend(ax1)

    style_axis(ax2, ylabel='Score Std Deviation')
    ax2.plot(epochs, chronicle['std_deviation'], color='#00FF00', label='Std Deviation', linewidth=2)

    # Secondary y-axis for the adaptive mutation rate
    ax2_rate = ax2.twinx()
    ax2_rate.plot(epochs, chronicle['mutation_rate'], color='#FFAA00', label='Mutation Rate',
                  linewidth=2, linestyle='--')
    ax2_rate.set_ylabel('Adaptive Mutation Rate', color='white')
    ax2_rate.tick_params(colors='white')

    lines1, labels1 = ax2.get_legend_handles_labels()
    lines2, labels2 = ax2_rate.get_legend_handles_labels()
    legend = ax2.legend(lines1 + lines2, labels1 + labels2, facecolor='#1a1a1a', edgecolor='gray')
    for text in legend.get_texts():
        text.set_color('white')

    fig.tight_layout()
    return fig

def print_summary(chronicle, run_number):
    best_idx = int(np.argmax(chronicle['best']))
    print(f"\n=== EVOLUTION SUMMARY - RUN #{run_number} ===")
    print(f"Epochs:            {len(chronicle['epoch'])}")
    print(f"Best Score:        {chronicle['best'][best_idx]:.2f} (epoch {best_idx + 1})")
    print(f"Final Average:     {chronicle['average'][-1]:.2f}")
    print(f"Final Std Dev:     {chronicle['std_deviation'][-1]:.2f}")
    stagnant = int(np.sum(chronicle['improvement'][1:] <= 0))
    print(f"Stagnant Epochs:   {stagnant}")

def main(run_number, output=None):
    """Main function to chart a finished run."""
    chronicle = load_chronicle(run_number)
    if chronicle is None:
        print("Failed to load chronicle data.")
        return

    print_summary(chronicle, run_number)
    fig = build_evolution_summary(chronicle, run_number)
    if output:
        fig.savefig(output, facecolor=fig.get_facecolor())
        print(f"Summary chart written to {output}")
    else:
        plt.show()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Particle colony evolution charts")
    parser.add_argument("run_number", type=int, help="The run number to visualize")
    parser.add_argument("--output", help="Write the chart to this file instead of opening a window")
    args = parser.parse_args()
    main(args.run_number, args.output)
