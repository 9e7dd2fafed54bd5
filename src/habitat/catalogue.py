"""
Habitat / species / observation catalogue loading and dashboard counts.

The catalogue is the optimizer's input (habitats and species) together with
the field observations recorded against them. In production these rows come
from the monitoring database; here they are read from YAML (or built from
any list of dict records) so the optimizer can be driven from the command
line and from tests.

Usage:
    catalogue = load_catalogue("config/sample_catalogue.yaml")
    result = run_exhaustive(catalogue.habitats, catalogue.species)
    summary = summarize_catalogue(catalogue, result.assignments)
    per_habitat = habitat_observation_stats(catalogue)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Iterable

import yaml

from src.habitat.models import (
    Assignment,
    AssignmentStatus,
    Habitat,
    HabitatRequirements,
    HabitatStatus,
    HealthStatus,
    Observation,
    Species,
    ConservationStatus,
)


class CatalogueError(ValueError):
    """Raised when a catalogue file or record is structurally invalid."""


@dataclass
class Catalogue:
    """Habitats, species and observations loaded together."""

    habitats: list[Habitat] = field(default_factory=list)
    species: list[Species] = field(default_factory=list)
    observations: list[Observation] = field(default_factory=list)


@dataclass(frozen=True)
class CatalogueSummary:
    """Headline counts shown on the monitoring dashboard."""

    total_observations: int
    total_habitats: int
    active_habitats: int
    total_species: int
    at_risk_species: int
    proposed_assignments: int


@dataclass(frozen=True)
class HabitatObservationStats:
    """Sightings recorded in one habitat."""

    habitat_id: str
    observation_count: int  # observation records
    species_count: int  # distinct species sighted
def habitat_from_record(record: dict[str, Any]) -> Habitat:
    """Coerce a loosely-typed habitat row into a Habitat."""
    if not isinstance(record, dict):
        raise CatalogueError(f"Habitat record must be a mapping, got {type(record).__name__}")
    if not record.get("id"):
        raise CatalogueError(f"Habitat record without id: {record!r}")
    area = float(record.get("area_sqkm") or 0.0)
    if area < 0:
        raise CatalogueError(f"Habitat {record['id']!r} has negative area {area}")
    return Habitat(
        id=str(record["id"]),
        zone_type=str(record.get("zone_type") or ""),
        area_sqkm=area,
        name=str(record.get("name") or ""),
        location=str(record.get("location") or ""),
        status=str(record.get("status") or HabitatStatus.ACTIVE.value),
    )


def species_from_record(record: dict[str, Any]) -> Species:
    """Coerce a loosely-typed species row into a Species.

    `habitat_requirements` may be missing, empty or partial; missing fields
    mean "no preference" / "zero minimum area".
    """
    if not isinstance(record, dict):
        raise CatalogueError(f"Species record must be a mapping, got {type(record).__name__}")
    if not record.get("id"):
        raise CatalogueError(f"Species record without id: {record!r}")
    requirements = record.get("habitat_requirements") or {}
    if not isinstance(requirements, dict):
        raise CatalogueError(f"Species {record['id']!r}: habitat_requirements must be a mapping")
    return Species(
        id=str(record["id"]),
        conservation_status=str(record.get("conservation_status") or ConservationStatus.LC.value),
        requirements=HabitatRequirements.from_dict(requirements),
        common_name=str(record.get("common_name") or ""),
        scientific_name=str(record.get("scientific_name") or ""),
        species_type=str(record.get("species_type") or ""),
    )


def _parse_observation_date(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise CatalogueError(f"Invalid observation_date {value!r}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def observation_from_record(record: dict[str, Any]) -> Observation:
    """Coerce a loosely-typed observation row into an Observation.

    Rows without an `id` get a fresh one, as the database does on insert.
    Dates without a timezone are taken as UTC.
    """
    if not isinstance(record, dict):
        raise CatalogueError(f"Observation record must be a mapping, got {type(record).__name__}")
    if not record.get("habitat_id") or not record.get("species_id"):
        raise CatalogueError(f"Observation record without habitat_id/species_id: {record!r}")
    count = record.get("count")
    count = 1 if count is None else count
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise CatalogueError(f"Observation count must be a positive integer, got {count!r}")

    kwargs: dict[str, Any] = {}
    if record.get("id"):
        kwargs["id"] = str(record["id"])
    return Observation(
        habitat_id=str(record["habitat_id"]),
        species_id=str(record["species_id"]),
        count=count,
        observation_date=_parse_observation_date(record.get("observation_date")),
        behavior=str(record.get("behavior") or ""),
        location_detail=str(record.get("location_detail") or ""),
        observer_notes=str(record.get("observer_notes") or ""),
        health_status=str(record.get("health_status") or HealthStatus.HEALTHY.value),
        **kwargs,
    )


def catalogue_from_records(
    habitat_records: Iterable[dict[str, Any]],
    species_records: Iterable[dict[str, Any]],
    observation_records: Iterable[dict[str, Any]] = (),
) -> Catalogue:
    """Build a Catalogue from raw row dicts (YAML, JSON, database rows).

    Raises:
        CatalogueError: If a record is malformed or an observation refers to
            a habitat or species that is not in the catalogue.
    """
    catalogue = Catalogue(
        habitats=[habitat_from_record(r) for r in habitat_records],
        species=[species_from_record(r) for r in species_records],
        observations=[observation_from_record(r) for r in observation_records],
    )
    habitat_ids = {h.id for h in catalogue.habitats}
    species_ids = {s.id for s in catalogue.species}
    for obs in catalogue.observations:
        if obs.habitat_id not in habitat_ids:
            raise CatalogueError(
                f"Observation {obs.id!r} refers to unknown habitat {obs.habitat_id!r}"
            )
        if obs.species_id not in species_ids:
            raise CatalogueError(
                f"Observation {obs.id!r} refers to unknown species {obs.species_id!r}"
            )
    return catalogue


def load_catalogue(path: str | Path) -> Catalogue:
    """Load a Catalogue from a YAML file.

    The document holds `habitats:` and `species:` lists and an optional
    `observations:` list.

    Args:
        path: Path to a YAML catalogue file.

    Returns:
        Catalogue preserving file order (the optimizer is order-sensitive).

    Raises:
        CatalogueError: If the document or any record is malformed.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise CatalogueError(f"{path}: top level must be a mapping")
    sections = [raw.get(name) or [] for name in ("habitats", "species", "observations")]
    if not all(isinstance(s, list) for s in sections):
        raise CatalogueError(f"{path}: 'habitats', 'species' and 'observations' must be lists")
    return catalogue_from_records(*sections)


def summarize_catalogue(
    catalogue: Catalogue,
    assignments: Iterable[Assignment] = (),
) -> CatalogueSummary:
    """Compute the dashboard stat-card counts."""
    return CatalogueSummary(
        total_observations=len(catalogue.observations),
        total_habitats=len(catalogue.habitats),
        active_habitats=sum(1 for h in catalogue.habitats if h.is_active),
        total_species=len(catalogue.species),
        at_risk_species=sum(1 for s in catalogue.species if s.is_at_risk),
        proposed_assignments=sum(
            1 for a in assignments if a.status == AssignmentStatus.PROPOSED.value
        ),
    )


def habitat_observation_stats(catalogue: Catalogue) -> dict[str, HabitatObservationStats]:
    """Observation and distinct-species counts per habitat, in catalogue order.

    Habitats with no sightings are included with zero counts.
    """
    records: dict[str, int] = {h.id: 0 for h in catalogue.habitats}
    sighted: dict[str, set[str]] = {h.id: set() for h in catalogue.habitats}
    for obs in catalogue.observations:
        records[obs.habitat_id] = records.get(obs.habitat_id, 0) + 1
        sighted.setdefault(obs.habitat_id, set()).add(obs.species_id)
    return {
        hid: HabitatObservationStats(hid, records[hid], len(sighted[hid])) for hid in records
    }


def species_observation_counts(catalogue: Catalogue) -> dict[str, int]:
    """Number of observation records per species, in catalogue order."""
    counts: dict[str, int] = {s.id: 0 for s in catalogue.species}
    for obs in catalogue.observations:
        counts[obs.species_id] = counts.get(obs.species_id, 0) + 1
    return counts


def recent_observations(catalogue: Catalogue, limit: int | None = None) -> list[Observation]:
    """Observations newest first; undated ones last, in file order."""
    dated = [o for o in catalogue.observations if o.observation_date is not None]
    undated = [o for o in catalogue.observations if o.observation_date is None]
    dated.sort(key=lambda o: o.observation_date, reverse=True)
    ordered = dated + undated
    return ordered if limit is None else ordered[:limit]
