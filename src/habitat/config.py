"""
Optimizer configuration dataclasses and YAML loader.

All tunable parameters live here as typed dataclasses.
Load from YAML with `load_config()` or construct directly for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Accepted spellings for each OptimizerConfig field. The camelCase names are
# the ones stored alongside saved optimizer runs.
_OPTIMIZER_KEYS: dict[str, tuple[str, ...]] = {
    "max_species_per_habitat": ("max_species_per_habitat", "maxSpeciesPerHabitat"),
    "min_compatibility_score": ("min_compatibility_score", "minCompatibilityScore"),
    "respect_priority_levels": ("respect_priority_levels", "respectPriorityLevels"),
}


@dataclass(frozen=True)
class OptimizerConfig:
    """Assignment constraints shared by both strategies.

    max_species_per_habitat : hard cap on assignments per habitat
    min_compatibility_score : pairs scoring below this are inadmissible
    respect_priority_levels : reserved; carried on the config surface but
                              not branched on by either strategy
    """

    max_species_per_habitat: int = 5
    min_compatibility_score: float = 0.3
    respect_priority_levels: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> OptimizerConfig:
        """Build from a partial mapping. Missing or None values take the default."""
        if not d:
            return cls()
        kwargs: dict[str, Any] = {}
        for name, aliases in _OPTIMIZER_KEYS.items():
            for key in aliases:
                if d.get(key) is not None:
                    kwargs[name] = d[key]
                    break
        return cls(**kwargs)


@dataclass(frozen=True)
class LoggingConfig:
    """Logging setup for the CLI entry points."""

    level: str = "INFO"
    log_path: str | None = None


@dataclass(frozen=True)
class ZoneOptimizerConfig:
    """Top-level configuration aggregating all sub-configs."""

    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    strategy: str = "exhaustive"
    catalogue_path: str = "config/sample_catalogue.yaml"


def load_config(path: str | Path) -> ZoneOptimizerConfig:
    """Load a ZoneOptimizerConfig from a YAML file.

    Args:
        path: Path to a YAML config file.

    Returns:
        Fully constructed ZoneOptimizerConfig with all sub-configs.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    # An empty section (`logging:` with nothing under it) parses as None
    defaults = ZoneOptimizerConfig()
    return ZoneOptimizerConfig(
        optimizer=OptimizerConfig.from_dict(raw.get("optimizer") or {}),
        logging=LoggingConfig(**(raw.get("logging") or {})),
        strategy=raw.get("strategy") or defaults.strategy,
        catalogue_path=raw.get("catalogue_path") or defaults.catalogue_path,
    )
