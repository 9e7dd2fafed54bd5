"""
Tests for the exhaustive and greedy assignment optimizers.

Tests cover:
1. Single-pair, no-admissible-pair and capacity-contention scenarios
2. Search counters and priority levels
3. Output ordering and tie-breaking
4. Capacity / score-floor / uniqueness invariants on random catalogues
5. Exhaustive dominance over greedy (outside the multi-habitat case)
6. Determinism, factory, result serialisation

Run with: pytest tests/test_optimizer.py -v
"""

import numpy as np
import pytest

from src.habitat.config import OptimizerConfig
from src.habitat.models import Habitat, HabitatRequirements, Species
from src.assignment.benchmark import generate_scenario
from src.assignment.optimizer import (
    ExhaustiveOptimizer,
    GreedyOptimizer,
    OptimizationResult,
    PartialAssignment,
    create_optimizer,
    run_exhaustive,
    run_greedy,
)


# ── Helpers ───────────────────────────────────────────────────────


def _habitat(habitat_id: str, zone: str = "forest", area: float = 50.0) -> Habitat:
    return Habitat(id=habitat_id, zone_type=zone, area_sqkm=area)


def _species(
    species_id: str,
    zones: tuple[str, ...] = ("forest",),
    min_area: float = 20.0,
    status: str = "LC",
) -> Species:
    return Species(
        id=species_id,
        conservation_status=status,
        requirements=HabitatRequirements(preferred_zones=frozenset(zones), min_area=min_area),
    )


def _pairs(result: OptimizationResult) -> list[tuple[str, str]]:
    return [a.pair for a in result.assignments]


# ── Scenarios ─────────────────────────────────────────────────────


class TestScenarios:
    """Hand-checked scenarios, run against both strategies."""

    @pytest.mark.parametrize("run", [run_exhaustive, run_greedy])
    def test_single_compatible_pair(self, run):
        result = run([_habitat("H1")], [_species("S1")])

        assert result.success is True
        assert _pairs(result) == [("H1", "S1")]
        assert result.assignments[0].compatibility_score == pytest.approx(0.8)
        assert result.assignments[0].priority_level == 5
        assert result.assignments[0].status == "proposed"
        assert result.total_compatibility == pytest.approx(0.8)

    @pytest.mark.parametrize("run", [run_exhaustive, run_greedy])
    def test_no_admissible_pair(self, run):
        habitats = [_habitat("H1", zone="wetland", area=10.0)]
        species = [_species("S1", zones=("forest",), min_area=100.0)]

        result = run(habitats, species)

        assert result.assignments == []
        assert result.success is False
        assert result.total_compatibility == 0.0

    @pytest.mark.parametrize("run", [run_exhaustive, run_greedy])
    @pytest.mark.parametrize(
        "habitats, species",
        [
            ([_habitat("H1")], []),
            ([], [_species("S1"), _species("S2")]),
            ([], []),
        ],
        ids=["no-species", "no-habitats", "both-empty"],
    )
    def test_empty_inputs(self, run, habitats, species):
        result = run(habitats, species)

        assert result.assignments == []
        assert result.success is False
        assert result.total_compatibility == 0.0
        assert result.diagnostics.backtrack_count == 0

    @pytest.mark.parametrize(
        "habitats, species",
        [([_habitat("H1")], []), ([], [_species("S1")])],
        ids=["no-species", "no-habitats"],
    )
    def test_greedy_empty_inputs_explore_nothing(self, habitats, species):
        result = run_greedy(habitats, species)

        assert result.diagnostics.solutions_explored == 0
        assert result.iterations == 0

    def test_capacity_contention_prefers_higher_total(self):
        """Two species want the only slot; the endangered one scores higher."""
        habitats = [_habitat("H1")]
        species = [_species("S_LC", status="LC"), _species("S_EN", status="EN")]
        cfg = OptimizerConfig(max_species_per_habitat=1)

        exhaustive = run_exhaustive(habitats, species, cfg)
        greedy = run_greedy(habitats, species, cfg)

        assert _pairs(exhaustive) == [("H1", "S_EN")]
        assert exhaustive.total_compatibility == pytest.approx(0.95)
        assert _pairs(greedy) == [("H1", "S_EN")]

    def test_capacity_contention_tie_goes_to_first_species(self):
        habitats = [_habitat("H1")]
        species = [_species("S_A"), _species("S_B")]
        cfg = OptimizerConfig(max_species_per_habitat=1)

        assert _pairs(run_exhaustive(habitats, species, cfg)) == [("H1", "S_A")]
        assert _pairs(run_greedy(habitats, species, cfg)) == [("H1", "S_A")]

    def test_zero_score_floor_admits_zero_score_pair(self):
        """An explicit 0.0 floor is honoured, not replaced by the default."""
        habitats = [_habitat("H1", zone="wetland", area=10.0)]
        species = [_species("S1", zones=("forest",), min_area=100.0)]
        cfg = OptimizerConfig.from_dict({"minCompatibilityScore": 0.0})

        result = run_exhaustive(habitats, species, cfg)

        assert result.success is True
        assert result.assignments[0].compatibility_score == 0.0


# ── Exhaustive search details ─────────────────────────────────────


class TestExhaustiveSearch:
    """Counters, ordering and edge cases specific to backtracking."""

    def test_counters_single_pair(self):
        """root → place → leaf, undo, skip → leaf."""
        result = run_exhaustive([_habitat("H1")], [_species("S1")])

        assert result.diagnostics.solutions_explored == 3
        assert result.diagnostics.backtrack_count == 1
        assert result.iterations == 3

    def test_counters_two_habitats(self):
        result = run_exhaustive([_habitat("H1"), _habitat("H2")], [_species("S1")])

        assert result.diagnostics.solutions_explored == 4
        assert result.diagnostics.backtrack_count == 2

    def test_empty_species(self):
        result = run_exhaustive([_habitat("H1")], [])

        assert result.assignments == []
        assert result.success is False
        assert result.total_compatibility == 0.0
        assert result.diagnostics.solutions_explored == 1
        assert result.diagnostics.backtrack_count == 0

    def test_empty_habitats(self):
        """Every species is skipped: one call per species plus the leaf."""
        result = run_exhaustive([], [_species("S1"), _species("S2")])

        assert result.assignments == []
        assert result.success is False
        assert result.diagnostics.solutions_explored == 3
        assert result.diagnostics.backtrack_count == 0

    def test_many_species_without_habitats(self):
        """Catalogue size is not limited by the interpreter recursion depth."""
        species = [_species(f"S{i}") for i in range(1500)]

        result = run_exhaustive([], species)

        assert result.assignments == []
        assert result.success is False
        assert result.total_compatibility == 0.0
        assert result.diagnostics.solutions_explored == 1501
        assert result.diagnostics.backtrack_count == 0

    def test_huge_leaf_bound_with_nothing_admissible(self, caplog):
        """(H + 1)^S beyond float range still logs and returns empty."""
        habitats = [_habitat(f"H{i}", zone="wetland", area=10.0) for i in range(9)]
        species = [_species(f"S{i}", zones=("forest",), min_area=100.0) for i in range(310)]

        with caplog.at_level("WARNING", logger="src.assignment.optimizer"):
            result = run_exhaustive(habitats, species)

        assert result.assignments == []
        assert result.success is False
        assert result.total_compatibility == 0.0
        assert result.diagnostics.solutions_explored == 311
        assert "~10^310 leaves" in caplog.text

    def test_priority_levels_go_below_one(self):
        """Seven species in one habitat: priorities 5 down to -1, unclamped."""
        species = [_species(f"S{i}") for i in range(7)]
        cfg = OptimizerConfig(max_species_per_habitat=10)

        result = run_exhaustive([_habitat("H1")], species, cfg)

        assert [a.species_id for a in result.assignments] == [f"S{i}" for i in range(7)]
        assert [a.priority_level for a in result.assignments] == [5, 4, 3, 2, 1, 0, -1]

    def test_output_follows_first_placement_order(self):
        """S1 lands in H2 before S2 lands in H1, so H2 is emitted first."""
        habitats = [_habitat("H1", zone="wetland"), _habitat("H2", zone="forest")]
        species = [_species("S1", zones=("forest",)), _species("S2", zones=("wetland",))]

        result = run_exhaustive(habitats, species)

        assert _pairs(result) == [("H2", "S1"), ("H1", "S2")]
        assert result.total_compatibility == pytest.approx(1.6)

    def test_each_species_placed_once(self):
        habitats = [_habitat("H1"), _habitat("H2")]
        result = run_exhaustive(habitats, [_species("S1")])

        assert len(result.assignments) == 1

    def test_metadata(self):
        result = run_exhaustive([_habitat("H1")], [_species("S1")])
        meta = result.assignments[0].metadata

        assert meta["algorithm"] == "backtracking"
        assert meta["iterations"] == result.diagnostics.solutions_explored
        assert meta["backtrack_count"] == result.diagnostics.backtrack_count
        assert result.strategy == "backtracking"

    def test_unplaced_branch_used_when_habitat_full(self):
        """The last species is better off skipped than squeezed out earlier."""
        habitats = [_habitat("H1")]
        species = [_species("S1", status="LC"), _species("S2", status="CR")]
        cfg = OptimizerConfig(max_species_per_habitat=1)

        result = run_exhaustive(habitats, species, cfg)

        assert _pairs(result) == [("H1", "S2")]
        assert result.diagnostics.solutions_explored == 6
        assert result.diagnostics.backtrack_count == 2


class TestPartialAssignment:
    """The immutable placement map used by the search."""

    def test_place_returns_new_value(self):
        empty = PartialAssignment()
        one = empty.place("H1", "S1")

        assert empty.placements == ()
        assert one.species_at("H1") == ("S1",)
        assert len(one) == 1

    def test_existing_habitat_keeps_its_position(self):
        state = PartialAssignment().place("H2", "S1").place("H1", "S2").place("H2", "S3")

        assert state.placements == (("H2", ("S1", "S3")), ("H1", ("S2",)))
        assert list(state.pairs()) == [("H2", "S1"), ("H2", "S3"), ("H1", "S2")]

    def test_unknown_habitat_is_empty(self):
        assert PartialAssignment().species_at("missing") == ()


# ── Greedy pass details ───────────────────────────────────────────


class TestGreedyPass:
    """Behaviour specific to the single-pass heuristic."""

    def test_counters(self):
        habitats = [_habitat("H1"), _habitat("H2"), _habitat("H3")]
        species = [_species("S1"), _species("S2")]

        result = run_greedy(habitats, species)

        assert result.iterations == 6
        assert result.diagnostics.solutions_explored == 6
        assert result.diagnostics.backtrack_count == 0

    def test_species_may_be_admitted_in_several_habitats(self):
        habitats = [_habitat("H1"), _habitat("H2")]
        species = [_species("S1")]

        greedy = run_greedy(habitats, species)
        exhaustive = run_exhaustive(habitats, species)

        assert _pairs(greedy) == [("H1", "S1"), ("H2", "S1")]
        assert greedy.diagnostics.multi_habitat_species == 1
        assert greedy.total_compatibility == pytest.approx(1.6)
        assert len(exhaustive.assignments) == 1
        assert exhaustive.total_compatibility == pytest.approx(0.8)

    def test_priority_counts_down_per_habitat(self):
        habitats = [_habitat("H1")]
        species = [
            _species("S_LC", status="LC"),
            _species("S_CR", status="CR"),
            _species("S_VU", status="VU"),
        ]

        result = run_greedy(habitats, species)

        assert [a.species_id for a in result.assignments] == ["S_CR", "S_VU", "S_LC"]
        assert [a.priority_level for a in result.assignments] == [5, 4, 3]

    def test_capacity_and_floor(self):
        habitats = [_habitat("H1")]
        species = [_species(f"S{i}") for i in range(4)] + [
            _species("S_POOR", zones=("wetland",), min_area=500.0)
        ]
        cfg = OptimizerConfig(max_species_per_habitat=2)

        result = run_greedy(habitats, species, cfg)

        assert [a.species_id for a in result.assignments] == ["S0", "S1"]

    def test_total_is_sum_of_admitted_scores(self):
        habitats = [_habitat("H1"), _habitat("H2", zone="wetland", area=12.0)]
        species = [_species("S1"), _species("S2", zones=("wetland",), status="VU")]

        result = run_greedy(habitats, species)

        assert result.total_compatibility == pytest.approx(
            sum(a.compatibility_score for a in result.assignments)
        )
        assert all(a.metadata["algorithm"] == "greedy" for a in result.assignments)


# ── Invariants on random catalogues ──────────────────────────────


@pytest.fixture
def random_scenarios():
    rng = np.random.default_rng(7)
    return [generate_scenario(3, 5, rng) for _ in range(15)]


class TestInvariants:
    """Properties that must hold on any input."""

    @pytest.mark.parametrize("strategy", ["exhaustive", "greedy"])
    def test_capacity_floor_and_unique_pairs(self, random_scenarios, strategy):
        cfg = OptimizerConfig(max_species_per_habitat=2)
        optimizer = create_optimizer(strategy, cfg)
        for scenario in random_scenarios:
            result = optimizer.optimize(scenario.habitats, scenario.species)
            pairs = _pairs(result)
            assert len(pairs) == len(set(pairs))
            loads: dict[str, int] = {}
            for a in result.assignments:
                loads[a.habitat_id] = loads.get(a.habitat_id, 0) + 1
                assert a.compatibility_score >= cfg.min_compatibility_score
                assert 0.0 <= a.compatibility_score <= 1.0
            assert all(n <= 2 for n in loads.values())
            assert result.success == bool(result.assignments)

    def test_exhaustive_places_each_species_at_most_once(self, random_scenarios):
        for scenario in random_scenarios:
            result = run_exhaustive(scenario.habitats, scenario.species)
            ids = [a.species_id for a in result.assignments]
            assert len(ids) == len(set(ids))

    def test_exhaustive_dominates_greedy(self, random_scenarios):
        """Skips scenarios where greedy admitted a species in several habitats."""
        cfg = OptimizerConfig(max_species_per_habitat=2)
        for scenario in random_scenarios:
            greedy = run_greedy(scenario.habitats, scenario.species, cfg)
            if greedy.diagnostics.multi_habitat_species:
                continue
            exhaustive = run_exhaustive(scenario.habitats, scenario.species, cfg)
            assert exhaustive.total_compatibility >= greedy.total_compatibility - 1e-9

    def test_exhaustive_dominates_greedy_with_one_habitat(self):
        """With a single habitat greedy cannot reuse a species."""
        habitats = [_habitat("H1")]
        species = [
            _species("S1", status="NT"),
            _species("S2", zones=("wetland",), status="CR"),
            _species("S3", min_area=60.0, status="EN"),
            _species("S4", status="VU"),
        ]
        cfg = OptimizerConfig(max_species_per_habitat=2)

        greedy = run_greedy(habitats, species, cfg)
        exhaustive = run_exhaustive(habitats, species, cfg)

        assert greedy.diagnostics.multi_habitat_species == 0
        assert exhaustive.total_compatibility >= greedy.total_compatibility - 1e-9

    @pytest.mark.parametrize("strategy", ["exhaustive", "greedy"])
    def test_runs_are_deterministic(self, random_scenarios, strategy):
        for scenario in random_scenarios[:5]:
            first = create_optimizer(strategy).optimize(scenario.habitats, scenario.species)
            second = create_optimizer(strategy).optimize(scenario.habitats, scenario.species)
            assert first.assignments == second.assignments
            assert first.total_compatibility == second.total_compatibility

    def test_inputs_are_not_modified(self):
        habitats = [_habitat("H1"), _habitat("H2", zone="wetland")]
        species = [_species("S1"), _species("S2", zones=("wetland",))]
        h_before, s_before = list(habitats), list(species)

        run_exhaustive(habitats, species)
        run_greedy(habitats, species)

        assert habitats == h_before
        assert species == s_before

    def test_accepts_iterators(self):
        result = run_exhaustive(iter([_habitat("H1")]), iter([_species("S1")]))
        assert _pairs(result) == [("H1", "S1")]


# ── Factory & serialisation ───────────────────────────────────────


class TestFactory:
    """create_optimizer and cumulative statistics."""

    def test_known_strategies(self):
        assert isinstance(create_optimizer("exhaustive"), ExhaustiveOptimizer)
        assert isinstance(create_optimizer("backtracking"), ExhaustiveOptimizer)
        assert isinstance(create_optimizer("greedy"), GreedyOptimizer)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown strategy"):
            create_optimizer("annealing")

    def test_default_config(self):
        optimizer = create_optimizer("greedy")
        assert optimizer.config == OptimizerConfig()
        assert optimizer.config.max_species_per_habitat == 5
        assert optimizer.config.min_compatibility_score == 0.3
        assert optimizer.config.respect_priority_levels is True

    def test_statistics_accumulate(self):
        optimizer = create_optimizer("exhaustive")
        for _ in range(3):
            optimizer.optimize([_habitat("H1")], [_species("S1")])

        assert optimizer.total_runs == 3
        assert optimizer.total_run_time_ms >= 0.0


class TestResultSerialisation:
    """OptimizationResult.to_dict uses the stored-run field names."""

    def test_to_dict_shape(self):
        result = run_exhaustive([_habitat("H1")], [_species("S1")])
        payload = result.to_dict()

        assert payload["success"] is True
        assert payload["iterations"] == 3
        assert payload["totalCompatibility"] == pytest.approx(0.8)
        assert payload["metadata"]["backtrackCount"] == 1
        assert payload["metadata"]["solutionsExplored"] == 3
        assert "timeElapsed" in payload["metadata"]

        row = payload["assignments"][0]
        assert row["habitat_id"] == "H1"
        assert row["species_id"] == "S1"
        assert row["status"] == "proposed"
        assert row["priority_level"] == 5
        assert row["backtracking_metadata"]["algorithm"] == "backtracking"
        assert isinstance(row["id"], str) and row["id"]
        assert isinstance(row["assigned_at"], str)
