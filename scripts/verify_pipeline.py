"""
Optimizer diagnostic tool.

Runs the sample catalogue through the full pipeline with heavy
instrumentation: catalogue load → compatibility scoring → exhaustive search
→ greedy pass → determinism.

This is the script you run FIRST when something looks wrong. It checks
every stage independently so you can pinpoint exactly where the break is.

Usage:
    python scripts/verify_pipeline.py
    python scripts/verify_pipeline.py --catalogue path/to/catalogue.yaml --species 6

Each check is independent. If check N fails, the bug is in that stage.
Exits with status 1 if any check failed.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from src.assignment.compatibility import compatibility_score, compute_compatibility_matrix  # noqa: E402
from src.assignment.optimizer import OptimizationResult, run_exhaustive, run_greedy  # noqa: E402
from src.habitat.catalogue import (  # noqa: E402
    Catalogue,
    habitat_observation_stats,
    load_catalogue,
    summarize_catalogue,
)
from src.habitat.config import OptimizerConfig  # noqa: E402

_FAILURES: list[str] = []


def section(title: str) -> None:
    """Creates a section in the CLI display"""

    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")


def check(label: str, condition: bool, detail: str = "") -> bool:
    """Checks if a condition is passed."""

    status = "✅ PASS" if condition else "❌ FAIL"
    msg = f"  {status}: {label}"
    if detail:
        msg += f" — {detail}"
    print(msg)
    if not condition:
        _FAILURES.append(label)
    return condition


# ─────────────────────────────────────────────────────────────
# STAGE 1: Catalogue
# ─────────────────────────────────────────────────────────────
def verify_catalogue(path: str, n_species: int) -> Catalogue:
    """Load the catalogue and trim it to a size the exhaustive search handles quickly."""

    section("STAGE 1: Catalogue")

    catalogue = load_catalogue(path)
    summary = summarize_catalogue(catalogue)
    check("Habitats loaded", summary.total_habitats > 0, f"{summary.total_habitats} habitats")
    check("Species loaded", summary.total_species > 0, f"{summary.total_species} species")
    check(
        "Habitat ids unique",
        len({h.id for h in catalogue.habitats}) == len(catalogue.habitats),
    )
    check("Species ids unique", len({s.id for s in catalogue.species}) == len(catalogue.species))
    check(
        "Areas non-negative",
        all(h.area_sqkm >= 0 for h in catalogue.habitats),
    )
    per_habitat = habitat_observation_stats(catalogue)
    check(
        "Observation counts add up",
        sum(s.observation_count for s in per_habitat.values()) == summary.total_observations,
        f"{summary.total_observations} observations",
    )

    trimmed = Catalogue(habitats=catalogue.habitats, species=catalogue.species[:n_species])
    print(f"  Using {len(trimmed.species)} species for the search stages")
    return trimmed


# ─────────────────────────────────────────────────────────────
# STAGE 2: Compatibility scoring
# ─────────────────────────────────────────────────────────────
def verify_scoring(catalogue: Catalogue) -> None:
    """Every score in [0, 1] and stable across repeated calls."""

    section("STAGE 2: Compatibility Scores")

    matrix = compute_compatibility_matrix(catalogue.habitats, catalogue.species)
    check(
        "Matrix shape",
        matrix.shape == (len(catalogue.species), len(catalogue.habitats)),
        f"{matrix.shape}",
    )
    check("Scores within [0, 1]", bool((matrix >= 0).all() and (matrix <= 1).all()))

    stable = all(
        compatibility_score(h, s) == compatibility_score(h, s)
        for h in catalogue.habitats
        for s in catalogue.species
    )
    check("Scores deterministic", stable)


# ─────────────────────────────────────────────────────────────
# STAGE 3/4: Strategy invariants
# ─────────────────────────────────────────────────────────────
def _check_common(result: OptimizationResult, config: OptimizerConfig) -> None:
    pairs = [a.pair for a in result.assignments]
    check("No duplicate (habitat, species) pair", len(pairs) == len(set(pairs)))

    per_habitat: dict[str, int] = {}
    for a in result.assignments:
        per_habitat[a.habitat_id] = per_habitat.get(a.habitat_id, 0) + 1
    check(
        "Habitat capacity respected",
        all(n <= config.max_species_per_habitat for n in per_habitat.values()),
        f"max load {max(per_habitat.values(), default=0)}",
    )
    check(
        "Every score meets the floor",
        all(a.compatibility_score >= config.min_compatibility_score for a in result.assignments),
    )
    check("All assignments proposed", all(a.status == "proposed" for a in result.assignments))
    check("Success flag matches output", result.success == bool(result.assignments))


def verify_exhaustive(catalogue: Catalogue, config: OptimizerConfig) -> OptimizationResult:
    """Run the exhaustive search and check its invariants."""

    section("STAGE 3: Exhaustive Search")

    result = run_exhaustive(catalogue.habitats, catalogue.species, config)
    diag = result.diagnostics
    print(
        f"  {len(result.assignments)} assignments, total {result.total_compatibility:.2f}, "
        f"{diag.solutions_explored:,} explored, {diag.backtrack_count:,} backtracks, "
        f"{diag.time_elapsed_ms:.1f} ms"
    )
    _check_common(result, config)

    species_ids = [a.species_id for a in result.assignments]
    check("Each species placed at most once", len(species_ids) == len(set(species_ids)))
    check("Iterations == solutions explored", result.iterations == diag.solutions_explored)
    total = sum(a.compatibility_score for a in result.assignments)
    check(
        "Total equals sum of emitted scores",
        abs(total - result.total_compatibility) < 1e-9,
        f"{total:.4f}",
    )
    return result


def verify_greedy(
    catalogue: Catalogue, config: OptimizerConfig, exhaustive: OptimizationResult
) -> None:
    """Run the greedy pass, check its invariants and compare with exhaustive."""

    section("STAGE 4: Greedy Pass")

    result = run_greedy(catalogue.habitats, catalogue.species, config)
    diag = result.diagnostics
    print(
        f"  {len(result.assignments)} assignments, total {result.total_compatibility:.2f}, "
        f"{diag.multi_habitat_species} species in several habitats"
    )
    _check_common(result, config)
    check(
        "Explored == cross product size",
        diag.solutions_explored == len(catalogue.habitats) * len(catalogue.species),
    )
    check("No backtracking", diag.backtrack_count == 0)

    if diag.multi_habitat_species == 0:
        check(
            "Exhaustive >= greedy",
            exhaustive.total_compatibility >= result.total_compatibility - 1e-9,
        )
    else:
        print("  ⚠️  Greedy reused species across habitats; dominance check skipped")


# ─────────────────────────────────────────────────────────────
# STAGE 5: Determinism
# ─────────────────────────────────────────────────────────────
def verify_determinism(catalogue: Catalogue, config: OptimizerConfig) -> None:
    """Two runs on identical inputs must agree."""

    section("STAGE 5: Determinism")

    for name, run in (("exhaustive", run_exhaustive), ("greedy", run_greedy)):
        a = run(catalogue.habitats, catalogue.species, config)
        b = run(catalogue.habitats, catalogue.species, config)
        check(f"{name}: identical assignments", a.assignments == b.assignments)
        check(f"{name}: identical total", a.total_compatibility == b.total_compatibility)


# ─────────────────────────────────────────────────────────────
# Main
# ─────────────────────────────────────────────────────────────
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify the assignment pipeline")
    parser.add_argument("--catalogue", type=str, default="config/sample_catalogue.yaml")
    parser.add_argument("--species", type=int, default=6, help="Species used for search stages")
    args = parser.parse_args()

    print("Habitat Zone Optimizer — Pipeline Verification")
    print("=" * 60)

    cfg = OptimizerConfig()
    cat = verify_catalogue(args.catalogue, args.species)
    verify_scoring(cat)
    ex = verify_exhaustive(cat, cfg)
    verify_greedy(cat, cfg, ex)
    verify_determinism(cat, cfg)

    section("VERIFICATION COMPLETE")
    if _FAILURES:
        print(f"  {len(_FAILURES)} check(s) failed; the stage label tells you where to look.")
        sys.exit(1)
    print("  All checks passed; the pipeline is working end-to-end.")
