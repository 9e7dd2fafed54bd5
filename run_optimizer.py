"""
Quick-run script for the habitat zone assignment optimizer.

Usage:
    python run_optimizer.py                                  # defaults: exhaustive, sample catalogue
    python run_optimizer.py --strategy greedy
    python run_optimizer.py --max-per-habitat 2 --min-score 0.5
    python run_optimizer.py --compare                        # run both strategies
    python run_optimizer.py --config config/default_optimizer.yaml
    python run_optimizer.py --json proposed.json             # write rows for the database
    python run_optimizer.py --observations                   # per-habitat sighting counts first

Strategy options:
    exhaustive  backtracking over every admissible placement   exponential, small catalogues
    greedy      single pass over all pairs, best score first   fast, may reuse a species
"""

import argparse
import json
from dataclasses import replace
from pathlib import Path

from src.assignment.optimizer import STRATEGIES, OptimizationResult, create_optimizer, diagnostics_dict
from src.habitat.catalogue import (
    Catalogue,
    habitat_observation_stats,
    load_catalogue,
    species_observation_counts,
    summarize_catalogue,
)
from src.habitat.config import ZoneOptimizerConfig, load_config
from src.habitat.logging_utils import LOG_LEVELS, configure_logging


def print_observation_stats(catalogue: Catalogue) -> None:
    """Print sighting counts per habitat and per species."""

    species_names = {s.id: s.common_name or s.id for s in catalogue.species}
    print(f"\n{'Habitat':<28} {'Observations':>12} {'Species seen':>12}")
    print(f"{'-' * 28} {'-' * 12} {'-' * 12}")
    per_habitat = habitat_observation_stats(catalogue)
    for h in catalogue.habitats:
        stats = per_habitat[h.id]
        print(f"{h.name or h.id:<28} {stats.observation_count:>12} {stats.species_count:>12}")

    print(f"\n{'Species':<28} {'Observations':>12}")
    print(f"{'-' * 28} {'-' * 12}")
    for species_id, n in species_observation_counts(catalogue).items():
        print(f"{species_names[species_id]:<28} {n:>12}")


def print_result(result: OptimizationResult, catalogue: Catalogue) -> None:
    """Print the run summary and the assignment table."""

    habitat_names = {h.id: h.name or h.id for h in catalogue.habitats}
    species_names = {s.id: s.common_name or s.id for s in catalogue.species}
    diag = result.diagnostics

    print(f"\n{'=' * 72}")
    print(f"Strategy: {result.strategy}")
    print(f"{'=' * 72}")
    print(f"  Success:             {result.success}")
    print(f"  Assignments:         {len(result.assignments)}")
    print(f"  Total compatibility: {result.total_compatibility:.2f}")
    print(f"  Iterations:          {result.iterations:,}")
    print(f"  Backtrack count:     {diag.backtrack_count:,}")
    print(f"  Solutions explored:  {diag.solutions_explored:,}")
    print(f"  Time elapsed:        {diag.time_elapsed_ms:.2f} ms")
    if diag.multi_habitat_species:
        print(f"  Multi-habitat species: {diag.multi_habitat_species}")

    if not result.assignments:
        return
    print()
    print(f"{'Habitat':<28} {'Species':<22} {'Score':>6} {'Priority':>8}")
    print(f"{'-' * 28} {'-' * 22} {'-' * 6} {'-' * 8}")
    for a in result.assignments:
        print(
            f"{habitat_names.get(a.habitat_id, a.habitat_id):<28} "
            f"{species_names.get(a.species_id, a.species_id):<22} "
            f"{a.compatibility_score * 100:>5.0f}% {a.priority_level:>8}"
        )


def main():
    """Main"""

    parser = argparse.ArgumentParser(description="Propose species → habitat zone assignments")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_optimizer.yaml",
        help="Path to optimizer config YAML",
    )
    parser.add_argument(
        "--catalogue", type=str, default=None, help="Catalogue YAML (overrides config)"
    )
    parser.add_argument(
        "--strategy", type=str, default=None, choices=list(STRATEGIES), help="Overrides config"
    )
    parser.add_argument("--max-per-habitat", type=int, default=None, help="Overrides config")
    parser.add_argument("--min-score", type=float, default=None, help="Overrides config")
    parser.add_argument("--compare", action="store_true", help="Run both strategies")
    parser.add_argument(
        "--observations", action="store_true", help="Print per-habitat and per-species sightings"
    )
    parser.add_argument("--json", type=str, default=None, help="Write result(s) to this JSON file")
    parser.add_argument(
        "--log-level", type=str.upper, default=None, choices=list(LOG_LEVELS), help="Overrides config"
    )
    args = parser.parse_args()

    # Load config
    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
        print(f"Loaded config from {config_path}")
    else:
        print(f"Config {config_path} not found, using defaults")
        config = ZoneOptimizerConfig()

    # Apply CLI overrides
    optimizer_cfg = config.optimizer
    if args.max_per_habitat is not None:
        optimizer_cfg = replace(optimizer_cfg, max_species_per_habitat=args.max_per_habitat)
    if args.min_score is not None:
        optimizer_cfg = replace(optimizer_cfg, min_compatibility_score=args.min_score)

    configure_logging(args.log_level or config.logging.level, config.logging.log_path)

    catalogue = load_catalogue(args.catalogue or config.catalogue_path)
    summary = summarize_catalogue(catalogue)
    print(
        f"Catalogue: {summary.total_habitats} habitats ({summary.active_habitats} active), "
        f"{summary.total_species} species ({summary.at_risk_species} at risk), "
        f"{summary.total_observations} observations"
    )
    if args.observations:
        print_observation_stats(catalogue)

    strategies = list(STRATEGIES) if args.compare else [args.strategy or config.strategy]
    results = []
    for name in strategies:
        optimizer = create_optimizer(name, optimizer_cfg)
        result = optimizer.optimize(catalogue.habitats, catalogue.species)
        print_result(result, catalogue)
        results.append(result)

    if args.compare:
        print(f"\n{'=' * 72}")
        print(f"{'Strategy':<14} {'Total':>8} {'Explored':>10} {'Backtracks':>11} {'Time(ms)':>9}")
        for result in results:
            d = diagnostics_dict(result)
            print(
                f"{d['strategy']:<14} {result.total_compatibility:>8.2f} "
                f"{d['solutions_explored']:>10,} {d['backtrack_count']:>11,} "
                f"{d['time_elapsed_ms']:>9.2f}"
            )

    if args.json:
        payload = [r.to_dict() for r in results]
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(payload if args.compare else payload[0], f, indent=2)
        print(f"\nWrote {args.json}")


if __name__ == "__main__":
    main()
