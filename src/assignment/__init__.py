"""
Species → habitat zone assignment.

Provides the compatibility heuristic and two optimizers: an exhaustive
backtracking search and a greedy single pass.

Quick start:
    from src.assignment import run_exhaustive
    result = run_exhaustive(habitats, species)
    for a in result.assignments:
        print(a.habitat_id, a.species_id, a.compatibility_score)
"""

from src.assignment.compatibility import compatibility_score, compute_compatibility_matrix
from src.assignment.optimizer import (
    ExhaustiveOptimizer,
    GreedyOptimizer,
    OptimizationResult,
    SearchDiagnostics,
    create_optimizer,
    run_exhaustive,
    run_greedy,
)

__all__ = [
    "compatibility_score",
    "compute_compatibility_matrix",
    "ExhaustiveOptimizer",
    "GreedyOptimizer",
    "OptimizationResult",
    "SearchDiagnostics",
    "create_optimizer",
    "run_exhaustive",
    "run_greedy",
]
