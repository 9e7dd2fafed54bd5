from src.habitat.models import Assignment, Habitat, HabitatRequirements, Observation, Species
from src.habitat.config import OptimizerConfig, ZoneOptimizerConfig, load_config
from src.habitat.catalogue import (
    Catalogue,
    CatalogueError,
    habitat_observation_stats,
    load_catalogue,
    species_observation_counts,
)

__all__ = [
    "Assignment",
    "Habitat",
    "HabitatRequirements",
    "Observation",
    "Species",
    "OptimizerConfig",
    "ZoneOptimizerConfig",
    "load_config",
    "Catalogue",
    "CatalogueError",
    "habitat_observation_stats",
    "load_catalogue",
    "species_observation_counts",
]
