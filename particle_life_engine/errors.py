"""Exceptions raised by the particle colony engine."""


class ParticleLifeError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(ParticleLifeError, ValueError):
    """Parameters that cannot describe a runnable simulation."""


class ColonyNotFoundError(ParticleLifeError, LookupError):
    """A request referenced a colony id that does not exist."""

    def __init__(self, colony_id):
        super().__init__(f"Colony {colony_id} does not exist")
        self.colony_id = colony_id


class PopulationLoadError(ParticleLifeError):
    """A saved population record could not be read back."""
