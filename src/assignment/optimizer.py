"""
Two species → habitat assignment strategies.

Problem
───────
Place each catalogued species in monitored habitat zones so that the sum of
compatibility scores is as high as possible, subject to:

  • a per-habitat capacity (max_species_per_habitat)
  • a score floor below which a pairing is inadmissible (min_compatibility_score)
  • no (habitat, species) pair proposed twice

Strategy menu
─────────────
  ExhaustiveOptimizer   backtracking over every admissible placement    exponential
  GreedyOptimizer       one pass over all pairs, best score first       O(HS log HS)

Both share the same public interface (`optimize(habitats, species)`) and
return an OptimizationResult.

Known divergence between the two
────────────────────────────────
The exhaustive search has one decision point per species, so a species is
placed in at most one habitat. The greedy pass only blocks an exact
duplicate pair, so a species may be admitted in several habitats and its
total can exceed the exhaustive optimum. This is kept as-is and reported as
`diagnostics.multi_habitat_species`.

Scaling limit
─────────────
The exhaustive search visits up to (H + 1)^S leaves for H habitats and S
species. There is no cutoff; it is meant for small catalogues.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Iterator

from src.assignment.compatibility import compatibility_score, compute_compatibility_matrix
from src.habitat.config import OptimizerConfig
from src.habitat.models import Assignment, Habitat, Species

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

PRIORITY_BASE: int = 5  # priority_level = PRIORITY_BASE - position within habitat
_NO_SOLUTION: float = -1.0  # initial best score; any leaf beats it
_LARGE_SEARCH_SPACE: int = 10_000_000


# ─────────────────────────────────────────────────────────────────────────────
# Public types
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class SearchDiagnostics:
    """Per-run counters. Diagnostic only; never used to bound a search."""

    backtrack_count: int = 0
    solutions_explored: int = 0
    time_elapsed_ms: float = 0.0
    multi_habitat_species: int = 0  # greedy only


@dataclass
class OptimizationResult:
    """Unified output returned by both strategies."""

    assignments: list[Assignment]
    total_compatibility: float
    iterations: int
    success: bool
    diagnostics: SearchDiagnostics = field(default_factory=SearchDiagnostics)
    strategy: str = ""

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict using the field names stored with saved runs."""
        return {
            "assignments": [a.to_dict() for a in self.assignments],
            "totalCompatibility": self.total_compatibility,
            "iterations": self.iterations,
            "success": self.success,
            "metadata": {
                "backtrackCount": self.diagnostics.backtrack_count,
                "solutionsExplored": self.diagnostics.solutions_explored,
                "timeElapsed": self.diagnostics.time_elapsed_ms,
            },
        }


@dataclass(frozen=True)
class PartialAssignment:
    """Immutable habitat → species placement map used by the search.

    Entries keep the order in which each habitat received its first species;
    species within an entry keep placement order (index 0 = highest
    priority). `place` returns a new value, so backtracking is simply
    dropping it and the best-so-far can be held by reference.
    """

    placements: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def species_at(self, habitat_id: str) -> tuple[str, ...]:
        for hid, species_ids in self.placements:
            if hid == habitat_id:
                return species_ids
        return ()

    def place(self, habitat_id: str, species_id: str) -> PartialAssignment:
        for i, (hid, species_ids) in enumerate(self.placements):
            if hid == habitat_id:
                updated = (hid, species_ids + (species_id,))
                return PartialAssignment(
                    self.placements[:i] + (updated,) + self.placements[i + 1 :]
                )
        return PartialAssignment(self.placements + ((habitat_id, (species_id,)),))

    def pairs(self) -> Iterator[tuple[str, str]]:
        for hid, species_ids in self.placements:
            for sid in species_ids:
                yield hid, sid

    def __len__(self) -> int:
        return sum(len(species_ids) for _, species_ids in self.placements)


@dataclass
class SearchStats:
    """Counters threaded explicitly through the backtracking search."""

    solutions_explored: int = 0
    backtrack_count: int = 0


# ─────────────────────────────────────────────────────────────────────────────
# Private helpers (shared by both strategies)
# ─────────────────────────────────────────────────────────────────────────────


def _index_by_id(items: Iterable[Habitat] | Iterable[Species]) -> dict:
    """First occurrence wins when ids repeat."""
    index: dict = {}
    for item in items:
        index.setdefault(item.id, item)
    return index


def _is_admissible(
    partial: PartialAssignment,
    habitat_id: str,
    species_id: str,
    score: float,
    cfg: OptimizerConfig,
) -> bool:
    if score < cfg.min_compatibility_score:
        return False
    placed = partial.species_at(habitat_id)
    if len(placed) >= cfg.max_species_per_habitat:
        return False
    return species_id not in placed


@dataclass(frozen=True)
class _SearchContext:
    species: tuple[Species, ...]
    habitats: tuple[Habitat, ...]
    habitat_by_id: dict[str, Habitat]
    species_by_id: dict[str, Species]
    config: OptimizerConfig


def _total_score(partial: PartialAssignment, ctx: _SearchContext) -> float:
    total = 0.0
    for hid, sid in partial.pairs():
        total += compatibility_score(ctx.habitat_by_id[hid], ctx.species_by_id[sid])
    return total


@dataclass
class _DecisionPoint:
    """One species decision on the explicit search stack.

    `choices` lists the admissible habitat ids best-score first, followed by
    None for "leave unplaced".
    """

    index: int
    partial: PartialAssignment
    choices: list[str | None]
    next_choice: int = 0
    best_score: float = _NO_SOLUTION
    best: PartialAssignment | None = None

    def absorb(self, score: float, candidate: PartialAssignment) -> None:
        if score > self.best_score:
            self.best_score, self.best = score, candidate


def _enter(
    index: int,
    partial: PartialAssignment,
    ctx: _SearchContext,
    stats: SearchStats,
) -> _DecisionPoint | None:
    """Count the call and open a decision point, or None at a leaf."""
    stats.solutions_explored += 1
    if index >= len(ctx.species):
        return None

    current = ctx.species[index]
    # sorted() is stable with reverse=True: equal scores keep input order
    ranked = sorted(
        ((h, compatibility_score(h, current)) for h in ctx.habitats),
        key=lambda pair: pair[1],
        reverse=True,
    )
    choices: list[str | None] = [
        habitat.id
        for habitat, score in ranked
        if _is_admissible(partial, habitat.id, current.id, score, ctx.config)
    ]
    # Leaving the species unplaced is always a candidate, even after every
    # admissible habitat has been tried.
    choices.append(None)
    return _DecisionPoint(index=index, partial=partial, choices=choices)


def _search(ctx: _SearchContext, stats: SearchStats) -> tuple[float, PartialAssignment]:
    """Best (score, placement) over every decision for ctx.species.

    Depth-first over an explicit stack, one entry per undecided species, so
    catalogue size is not bounded by the interpreter's recursion limit.
    Children are compared with strict `>` in search order, so among equal
    totals the first one found wins.
    """
    root = _enter(0, PartialAssignment(), ctx, stats)
    if root is None:
        return _total_score(PartialAssignment(), ctx), PartialAssignment()

    stack = [root]
    while True:
        top = stack[-1]
        if top.next_choice < len(top.choices):
            habitat_id = top.choices[top.next_choice]
            top.next_choice += 1
            child = (
                top.partial
                if habitat_id is None
                else top.partial.place(habitat_id, ctx.species[top.index].id)
            )
            point = _enter(top.index + 1, child, ctx, stats)
            if point is None:
                _settle(top, habitat_id, _total_score(child, ctx), child, stats)
            else:
                stack.append(point)
            continue

        stack.pop()
        if not stack:
            return top.best_score, top.best
        parent = stack[-1]
        _settle(parent, parent.choices[parent.next_choice - 1], top.best_score, top.best, stats)


def _settle(
    point: _DecisionPoint,
    habitat_id: str | None,
    score: float,
    candidate: PartialAssignment,
    stats: SearchStats,
) -> None:
    """Fold a finished child into its decision point."""
    if habitat_id is not None:
        stats.backtrack_count += 1
    point.absorb(score, candidate)


def _count_multi_habitat_species(assignments: list[Assignment]) -> int:
    habitats_per_species: dict[str, set[str]] = {}
    for a in assignments:
        habitats_per_species.setdefault(a.species_id, set()).add(a.habitat_id)
    return sum(1 for hs in habitats_per_species.values() if len(hs) > 1)


# ─────────────────────────────────────────────────────────────────────────────
# Strategy 1: ExhaustiveOptimizer
# ─────────────────────────────────────────────────────────────────────────────


class ExhaustiveOptimizer:
    """Backtracking search over every admissible species placement.

    Species are decided one at a time in input order. At each decision point
    habitats are tried best-score first; every admissible habitat is explored
    and then the "leave unplaced" branch is explored too. The highest-scoring
    complete placement wins, ties going to the first one found.

    Counters:
      solutions_explored  +1 per search node visited (decision point and leaf)
      backtrack_count     +1 each time a tentative placement is undone
    """

    strategy = "backtracking"

    def __init__(self, config: OptimizerConfig | None = None) -> None:
        self.config = config or OptimizerConfig()
        self.total_runs: int = 0
        self.total_run_time_ms: float = 0.0

    def optimize(
        self,
        habitats: Iterable[Habitat],
        species: Iterable[Species],
    ) -> OptimizationResult:
        """Run the exhaustive search."""

        t0 = time.perf_counter()
        habitats = tuple(habitats)
        species = tuple(species)

        # log10 of the (H + 1)^S leaf bound; the bound itself overflows a float
        leaf_exponent = len(species) * math.log10(len(habitats) + 1)
        if leaf_exponent > math.log10(_LARGE_SEARCH_SPACE):
            logger.warning(
                "Exhaustive search over %d species x %d habitats may visit up to ~10^%d leaves",
                len(species),
                len(habitats),
                int(leaf_exponent),
            )

        ctx = _SearchContext(
            species=species,
            habitats=habitats,
            habitat_by_id=_index_by_id(habitats),
            species_by_id=_index_by_id(species),
            config=self.config,
        )
        stats = SearchStats()
        best_score, best = _search(ctx, stats)

        metadata = {
            "algorithm": self.strategy,
            "iterations": stats.solutions_explored,
            "backtrack_count": stats.backtrack_count,
        }
        assignments: list[Assignment] = []
        for habitat_id, species_ids in best.placements:
            habitat = ctx.habitat_by_id[habitat_id]
            for position, species_id in enumerate(species_ids):
                assignments.append(
                    Assignment(
                        habitat_id=habitat_id,
                        species_id=species_id,
                        compatibility_score=compatibility_score(
                            habitat, ctx.species_by_id[species_id]
                        ),
                        priority_level=PRIORITY_BASE - position,
                        metadata=dict(metadata),
                    )
                )

        ms = (time.perf_counter() - t0) * 1e3
        self.total_runs += 1
        self.total_run_time_ms += ms
        logger.info(
            "Exhaustive search placed %d/%d species, total=%.3f, explored=%d, backtracks=%d (%.2f ms)",
            len(assignments),
            len(species),
            best_score,
            stats.solutions_explored,
            stats.backtrack_count,
            ms,
        )
        return OptimizationResult(
            assignments=assignments,
            total_compatibility=best_score,
            iterations=stats.solutions_explored,
            success=len(assignments) > 0,
            diagnostics=SearchDiagnostics(
                backtrack_count=stats.backtrack_count,
                solutions_explored=stats.solutions_explored,
                time_elapsed_ms=ms,
            ),
            strategy=self.strategy,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Strategy 2: GreedyOptimizer
# ─────────────────────────────────────────────────────────────────────────────


class GreedyOptimizer:
    """Single pass over all (habitat, species) pairs, best score first.

    Pairs are generated species-major / habitat-minor and stably sorted by
    descending score. A pair is admitted when it has not been admitted
    before, its habitat is below capacity and it meets the score floor.
    Skipped pairs are never revisited.
    """

    strategy = "greedy"

    def __init__(self, config: OptimizerConfig | None = None) -> None:
        self.config = config or OptimizerConfig()
        self.total_runs: int = 0
        self.total_run_time_ms: float = 0.0

    def optimize(
        self,
        habitats: Iterable[Habitat],
        species: Iterable[Species],
    ) -> OptimizationResult:
        """Run the greedy pass."""

        t0 = time.perf_counter()
        habitats = list(habitats)
        species = list(species)
        cfg = self.config

        matrix = compute_compatibility_matrix(habitats, species)
        candidates = [
            (sp, hab, float(matrix[s_idx, h_idx]))
            for s_idx, sp in enumerate(species)
            for h_idx, hab in enumerate(habitats)
        ]
        candidates.sort(key=lambda c: c[2], reverse=True)

        metadata = {
            "algorithm": self.strategy,
            "fast_optimization": True,
            "solutions_explored": len(candidates),
        }
        admitted: set[tuple[str, str]] = set()
        habitat_counts: dict[str, int] = {}
        assignments: list[Assignment] = []
        for sp, hab, score in candidates:
            count = habitat_counts.get(hab.id, 0)
            if (
                (hab.id, sp.id) in admitted
                or count >= cfg.max_species_per_habitat
                or score < cfg.min_compatibility_score
            ):
                continue
            assignments.append(
                Assignment(
                    habitat_id=hab.id,
                    species_id=sp.id,
                    compatibility_score=score,
                    priority_level=PRIORITY_BASE - count,
                    metadata=dict(metadata),
                )
            )
            admitted.add((hab.id, sp.id))
            habitat_counts[hab.id] = count + 1

        total = sum(a.compatibility_score for a in assignments)
        multi = _count_multi_habitat_species(assignments)
        if multi:
            logger.debug("Greedy pass admitted %d species in more than one habitat", multi)

        ms = (time.perf_counter() - t0) * 1e3
        self.total_runs += 1
        self.total_run_time_ms += ms
        logger.info(
            "Greedy pass admitted %d of %d pairs, total=%.3f (%.2f ms)",
            len(assignments),
            len(candidates),
            total,
            ms,
        )
        return OptimizationResult(
            assignments=assignments,
            total_compatibility=total,
            iterations=len(candidates),
            success=len(assignments) > 0,
            diagnostics=SearchDiagnostics(
                backtrack_count=0,
                solutions_explored=len(candidates),
                time_elapsed_ms=ms,
                multi_habitat_species=multi,
            ),
            strategy=self.strategy,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Entry points & factory
# ─────────────────────────────────────────────────────────────────────────────


def run_exhaustive(
    habitats: Iterable[Habitat],
    species: Iterable[Species],
    config: OptimizerConfig | None = None,
) -> OptimizationResult:
    """Exhaustive backtracking search with a fresh optimizer."""
    return ExhaustiveOptimizer(config).optimize(habitats, species)


def run_greedy(
    habitats: Iterable[Habitat],
    species: Iterable[Species],
    config: OptimizerConfig | None = None,
) -> OptimizationResult:
    """Greedy single pass with a fresh optimizer."""
    return GreedyOptimizer(config).optimize(habitats, species)


STRATEGIES: tuple[str, ...] = ("exhaustive", "greedy")


def create_optimizer(
    strategy: str = "exhaustive",
    config: OptimizerConfig | None = None,
) -> ExhaustiveOptimizer | GreedyOptimizer:
    """Instantiate and return the requested optimizer.

    strategy options
    ─────────────────
    "exhaustive"   → ExhaustiveOptimizer   (alias "backtracking")
    "greedy"       → GreedyOptimizer
    """
    if strategy in ("exhaustive", "backtracking"):
        return ExhaustiveOptimizer(config)
    if strategy == "greedy":
        return GreedyOptimizer(config)
    raise ValueError(f"Unknown strategy {strategy!r}. Valid options: 'exhaustive', 'greedy'.")


def diagnostics_dict(result: OptimizationResult) -> dict[str, Any]:
    """Flat diagnostics for logging or tabular output."""
    return {"strategy": result.strategy, **asdict(result.diagnostics)}
