"""
Generate compatibility and optimizer comparison diagrams.

Outputs PNG files to the current directory.

Usage:
    python plot_compatibility.py                               # sample catalogue
    python plot_compatibility.py --catalogue path/to/catalogue.yaml
    python plot_compatibility.py --strategy greedy             # outline greedy proposals
    python plot_compatibility.py --compare                     # also plot both strategies side by side
"""

import argparse
from pathlib import Path

from src.analysis.visualizations import plot_compatibility_matrix, plot_strategy_comparison
from src.assignment.optimizer import STRATEGIES, create_optimizer
from src.habitat.catalogue import load_catalogue
from src.habitat.config import OptimizerConfig, ZoneOptimizerConfig, load_config


def main():
    """Main function"""

    parser = argparse.ArgumentParser(
        description="Generate compatibility diagrams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to optimizer YAML config (default: config/default_optimizer.yaml)",
    )
    parser.add_argument("--catalogue", type=str, default=None, help="Catalogue YAML")
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="compatibility.png",
        help="Output PNG filename (default: compatibility.png)",
    )
    parser.add_argument("--strategy", type=str, default=None, choices=list(STRATEGIES))
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Also generate a strategy comparison chart (compatibility_compare.png)",
    )
    parser.add_argument("--dpi", type=int, default=150, help="Output image resolution")
    args = parser.parse_args()

    # ── Load config ──────────────────────────────────────────────
    config_path = args.config
    if config_path is None:
        default_path = Path(__file__).parent / "config" / "default_optimizer.yaml"
        if default_path.exists():
            config_path = str(default_path)

    if config_path:
        print(f"Loading config from: {config_path}")
        config = load_config(config_path)
    else:
        print("Using default config (no YAML found)")
        config = ZoneOptimizerConfig(optimizer=OptimizerConfig())

    catalogue = load_catalogue(args.catalogue or config.catalogue_path)
    strategy = args.strategy or config.strategy
    result = create_optimizer(strategy, config.optimizer).optimize(
        catalogue.habitats, catalogue.species
    )

    # ── Heat map ─────────────────────────────────────────────────
    fig = plot_compatibility_matrix(
        catalogue.habitats,
        catalogue.species,
        result=result,
        min_score=config.optimizer.min_compatibility_score,
    )
    output_path = Path(args.output)
    fig.savefig(output_path, dpi=args.dpi, bbox_inches="tight")
    print(f"\nHeat map saved: {output_path}")

    # ── Optional comparison ──────────────────────────────────────
    if args.compare:
        results = [
            create_optimizer(name, config.optimizer).optimize(catalogue.habitats, catalogue.species)
            for name in STRATEGIES
        ]
        compare_path = output_path.with_name(output_path.stem + "_compare" + output_path.suffix)
        plot_strategy_comparison(results).savefig(compare_path, dpi=args.dpi, bbox_inches="tight")
        print(f"Comparison saved: {compare_path}")

    print("\nDone.")


if __name__ == "__main__":
    main()
