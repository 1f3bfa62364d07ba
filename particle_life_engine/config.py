# --- DEFAULT CONSTANTS FOR THE PARTICLE COLONIES ---

# Colonies & Population
DEFAULT_PARTICLE_COUNT = 100
DEFAULT_PARTICLE_TYPES = 3
DEFAULT_COLONY_COUNT = 6
DEFAULT_EPOCH_DURATION = 60.0  # seconds of simulated time per epoch
DEFAULT_MAX_EPOCHS = 100

# Fixed physics step, independent of the simulation speed
PHYSICS_TIMESTEP = 0.008
FRAME_TIME = 1.0 / 60.0  # external update interval used by headless runs

# Grid
DEFAULT_GRID_WIDTH = 800.0; DEFAULT_GRID_HEIGHT = 800.0; DEFAULT_GRID_DEPTH = 800.0

# Food
DEFAULT_FOOD_COUNT = 50
DEFAULT_FOOD_RESPAWN_TIME = 5.0  # seconds
DEFAULT_FOOD_VALUE = 1.0
FOOD_RADIUS = 2.0

# Particles
PARTICLE_RADIUS = 4.0
MAX_VELOCITY = 200.0
COLLISION_DAMPING = 0.5
DEFAULT_VELOCITY_HALF_LIFE = 0.043

# Forces
DEFAULT_MAX_FORCE_RANGE = 300.0
FORCE_SCALE_FACTOR = 80.0
MIN_DISTANCE = 0.001  # compared against the squared distance
FOOD_FORCE_THRESHOLD = 0.001
DEFAULT_INTERACTION_CAP = 100

# Genetic Algorithm
DEFAULT_ELITE_RATIO = 0.1      # 10% of genomes carried over unchanged
DEFAULT_MUTATION_RATE = 0.1
DEFAULT_CROSSOVER_RATE = 0.7
TOURNAMENT_SIZE = 3
TOURNAMENT_RANK_PENALTY = 0.1
MAX_ADAPTIVE_MUTATION_RATE = 0.5
EARLY_EXPLORATION_EPOCHS = 10

# Genetic Bounds
GENE_FORCE_MIN = -2.0; GENE_FORCE_MAX = 2.0
GENE_RANDOM_MIN = -1.0; GENE_RANDOM_MAX = 1.0
GENE_SELF_MIN = -1.0; GENE_SELF_MAX = -0.1  # self-repulsion keeps a type from clumping
GENE_MUTATION_STEP = 0.2

# Experiment Harness & Chronicle
CHRONICLE_DIR = "chronicles"
POPULATION_DIR = "populations"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

# The canonical column order of the epoch chronicle.
EPOCH_STATS_KEYS = [
    'epoch', 'best', 'worst', 'average', 'median',
    'std_deviation', 'improvement', 'q1', 'q3', 'mutation_rate'
]
