"""
Habitat/species compatibility scoring.

A compatibility score is a heuristic in [0, 1] built from three additive
terms:

    zone match        +0.50  habitat zone is one of the species' preferred zones
    area adequacy     +0.30  area >= min_area
                      +0.15  area >= 0.7 × min_area (partial credit)
    conservation      +0.00 … +0.20 by IUCN status (CR > EN > VU > NT > LC)

The sum is clamped to 1.0. The terms are non-negative so no lower clamp is
needed.

Usage:
    score = compatibility_score(habitat, species)
    matrix = compute_compatibility_matrix(habitats, species)
    # matrix[s][h] = compatibility of species s in habitat h
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from src.habitat.models import ConservationStatus

if TYPE_CHECKING:
    from src.habitat.models import Habitat, Species


ZONE_MATCH_SCORE = 0.5
AREA_FULL_SCORE = 0.3
AREA_PARTIAL_SCORE = 0.15
AREA_PARTIAL_FRACTION = 0.7
MAX_SCORE = 1.0

CONSERVATION_BONUS: dict[str, float] = {
    ConservationStatus.CR.value: 0.20,
    ConservationStatus.EN.value: 0.15,
    ConservationStatus.VU.value: 0.10,
    ConservationStatus.NT.value: 0.05,
    ConservationStatus.LC.value: 0.0,
}


def compatibility_score(habitat: Habitat, species: Species) -> float:
    """Score how well `habitat` suits `species`. Pure and O(1)."""
    requirements = species.requirements
    min_area = requirements.min_area

    score = 0.0
    if habitat.zone_type in requirements.preferred_zones:
        score += ZONE_MATCH_SCORE

    if habitat.area_sqkm >= min_area:
        score += AREA_FULL_SCORE
    elif habitat.area_sqkm >= min_area * AREA_PARTIAL_FRACTION:
        score += AREA_PARTIAL_SCORE

    # EW, EX and unknown tags get no bonus
    score += CONSERVATION_BONUS.get(species.conservation_status, 0.0)

    return min(score, MAX_SCORE)


def compute_compatibility_matrix(
    habitats: list[Habitat],
    species: list[Species],
) -> np.ndarray:
    """Build the full compatibility matrix.

    Args:
        habitats: Candidate habitats (columns, input order).
        species: Species to place (rows, input order).

    Returns:
        float64 array of shape (n_species, n_habitats).
    """
    matrix = np.zeros((len(species), len(habitats)), dtype=np.float64)
    for s_idx, sp in enumerate(species):
        for h_idx, hab in enumerate(habitats):
            matrix[s_idx, h_idx] = compatibility_score(hab, sp)
    return matrix
