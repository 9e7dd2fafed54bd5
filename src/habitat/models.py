"""
Habitat, Species, Observation and Assignment models.

Design decisions:
- Habitats and species are read-only inputs. The optimizer never mutates
  them; frozen dataclasses make that explicit.
- Vocabulary tags (zone type, conservation status) are kept as plain strings
  on the models so unknown tags coming from storage are carried through
  instead of rejected. The enums below name the known vocabulary.
- Assignments are created fresh on every optimizer run and handed to the
  caller, which owns persistence (e.g. replacing the previous "proposed"
  batch).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ZoneType(str, Enum):
    """Known habitat zone tags"""

    FOREST = "forest"
    WETLAND = "wetland"
    GRASSLAND = "grassland"
    COASTAL = "coastal"
    MOUNTAIN = "mountain"


class ConservationStatus(str, Enum):
    """IUCN Red List categories, least to most at-risk."""

    LC = "LC"  # Least Concern
    NT = "NT"  # Near Threatened
    VU = "VU"  # Vulnerable
    EN = "EN"  # Endangered
    CR = "CR"  # Critically Endangered
    EW = "EW"  # Extinct in the Wild
    EX = "EX"  # Extinct

    @property
    def rank(self) -> int:
        """Position in the LC → EX ordering (0 = least at-risk)."""
        return list(ConservationStatus).index(self)


AT_RISK_STATUSES: frozenset[str] = frozenset(
    {ConservationStatus.VU.value, ConservationStatus.EN.value, ConservationStatus.CR.value}
)


class HabitatStatus(str, Enum):
    """Valid habitat status"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    UNDER_REVIEW = "under_review"


class HealthStatus(str, Enum):
    """Recorded health of the observed animals."""

    HEALTHY = "healthy"
    INJURED = "injured"
    SICK = "sick"
    DECEASED = "deceased"


class AssignmentStatus(str, Enum):
    """Valid assignment status. The optimizer only ever emits PROPOSED."""

    PROPOSED = "proposed"
    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Habitat:
    """A monitored geographic zone.

    Attributes:
        id: Unique habitat identifier.
        zone_type: Zone tag (see ZoneType; unknown tags are allowed).
        area_sqkm: Area in square kilometres (non-negative).
        name: Display name.
        location: Free-form region description.
        status: Lifecycle status (see HabitatStatus).
    """

    id: str
    zone_type: str
    area_sqkm: float = 0.0
    name: str = ""
    location: str = ""
    status: str = HabitatStatus.ACTIVE.value

    @property
    def is_active(self) -> bool:
        return self.status == HabitatStatus.ACTIVE.value


@dataclass(frozen=True)
class HabitatRequirements:
    """What a species needs from a habitat.

    Missing preferences mean "no preference"; a missing minimum area means
    zero.
    """

    preferred_zones: frozenset[str] = frozenset()
    min_area: float = 0.0

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> HabitatRequirements:
        """Build from a loosely-typed record (e.g. a JSON column)."""
        if not d:
            return cls()
        zones = d.get("preferred_zones") or []
        min_area = d.get("min_area") or 0.0
        return cls(preferred_zones=frozenset(str(z) for z in zones), min_area=float(min_area))


@dataclass(frozen=True)
class Species:
    """A catalogued organism type.

    Attributes:
        id: Unique species identifier.
        conservation_status: IUCN tag (see ConservationStatus).
        requirements: Preferred zones and minimum area.
        common_name: Display name.
        scientific_name: Binomial name.
        species_type: Category (mammal, bird, reptile, ...).
    """

    id: str
    conservation_status: str = ConservationStatus.LC.value
    requirements: HabitatRequirements = field(default_factory=HabitatRequirements)
    common_name: str = ""
    scientific_name: str = ""
    species_type: str = ""

    @property
    def is_at_risk(self) -> bool:
        """True for VU, EN and CR species (the dashboard's "at risk" count)."""
        return self.conservation_status in AT_RISK_STATUSES


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Observation:
    """A field sighting of a species in a habitat.

    Attributes:
        habitat_id: Habitat where the sighting was made.
        species_id: Species sighted.
        count: Number of individuals seen (at least 1).
        observation_date: When the sighting was made, if recorded.
        behavior: Free-form behaviour notes.
        location_detail: Where in the habitat.
        observer_notes: Anything else the observer wrote down.
        health_status: See HealthStatus.
        id: Unique observation identifier.
    """

    habitat_id: str
    species_id: str
    count: int = 1
    observation_date: datetime | None = None
    behavior: str = ""
    location_detail: str = ""
    observer_notes: str = ""
    health_status: str = HealthStatus.HEALTHY.value
    id: str = field(default_factory=_new_id)


@dataclass
class Assignment:
    """A proposed (habitat, species) pairing produced by the optimizer.

    `id` and `assigned_at` are excluded from equality so two runs on the
    same inputs compare equal.

    Attributes:
        habitat_id: Habitat the species is placed in.
        species_id: Placed species.
        compatibility_score: Heuristic fit in [0, 1].
        priority_level: 5 minus the species' position within its habitat.
            Not clamped; goes to zero or below past the fifth placement.
        status: Always "proposed" at creation.
        metadata: Producing strategy and its counters.
    """

    habitat_id: str
    species_id: str
    compatibility_score: float
    priority_level: int
    status: str = AssignmentStatus.PROPOSED.value
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_id, compare=False)
    assigned_at: datetime = field(default_factory=_utc_now, compare=False)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.habitat_id, self.species_id)

    def to_dict(self) -> dict[str, Any]:
        """Row-shaped dict, ready for an insert into `zone_assignments`."""
        return {
            "id": self.id,
            "habitat_id": self.habitat_id,
            "species_id": self.species_id,
            "priority_level": self.priority_level,
            "compatibility_score": self.compatibility_score,
            "assigned_at": self.assigned_at.isoformat(),
            "status": self.status,
            "backtracking_metadata": dict(self.metadata),
        }
