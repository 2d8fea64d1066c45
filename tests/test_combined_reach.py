"""
Tests for combined reach deduplication and plan summaries.
"""

import itertools
import math
import pytest

from business_logic.calculations import InvalidInputError, effective_reach_3plus
from business_logic.combined_reach import combined_reach, compute_plan_summary
from models.data_models import TacticReach


def independence_formula(reaches):
    product = 1.0
    for r in reaches:
        product *= (1 - r / 100)
    return 100 * (1 - product)


class TestCombinedReach:

    def test_two_tactics(self):
        result = combined_reach([TacticReach("A", 60), TacticReach("B", 30)])

        first, second = result.steps
        assert first.running_total == 60
        assert first.remainder == 100
        assert first.incremental == 60
        assert second.remainder == pytest.approx(40)
        assert second.incremental == pytest.approx(12)
        assert second.running_total == pytest.approx(72)
        assert result.combined_reach_percent == pytest.approx(72)

    def test_empty_plan(self):
        result = combined_reach([])

        assert result.steps == []
        assert result.combined_reach_percent == 0

    def test_single_tactic(self):
        result = combined_reach([TacticReach("Solo", 42.5)])

        assert result.combined_reach_percent == 42.5
        assert len(result.steps) == 1

    def test_steps_sorted_by_descending_reach(self):
        result = combined_reach([
            TacticReach("Low", 10), TacticReach("High", 50), TacticReach("Mid", 25),
        ])

        assert [s.tactic_name for s in result.steps] == ["High", "Mid", "Low"]

    def test_ties_keep_input_order(self):
        result = combined_reach([
            TacticReach("First", 20), TacticReach("Big", 40), TacticReach("Second", 20),
        ])

        assert [s.tactic_name for s in result.steps] == ["Big", "First", "Second"]

    def test_order_does_not_change_result(self):
        tactics = [TacticReach("A", 55), TacticReach("B", 12.5), TacticReach("C", 33), TacticReach("D", 70)]
        expected = combined_reach(tactics).combined_reach_percent

        for permutation in itertools.permutations(tactics):
            assert combined_reach(list(permutation)).combined_reach_percent == pytest.approx(expected)

    @pytest.mark.parametrize("reaches", [
        [60, 30],
        [10, 20, 30, 40],
        [99.9, 0.5, 75],
        [0, 0, 0],
    ])
    def test_matches_independence_formula(self, reaches):
        tactics = [TacticReach(f"T{i}", r) for i, r in enumerate(reaches)]

        assert combined_reach(tactics).combined_reach_percent == pytest.approx(independence_formula(reaches))

    def test_full_reach_saturates(self):
        result = combined_reach([TacticReach("All", 100), TacticReach("Some", 50)])

        assert result.steps[1].remainder == 0
        assert result.steps[1].incremental == 0
        assert result.combined_reach_percent == 100

    def test_bounded_by_max_and_one_hundred(self):
        reaches = [45, 80, 15, 60, 99]
        result = combined_reach([TacticReach(str(r), r) for r in reaches])

        assert max(reaches) <= result.combined_reach_percent <= 100

    @pytest.mark.parametrize("reach", [-1, 100.01, math.inf])
    def test_rejects_out_of_range_reach(self, reach):
        with pytest.raises(InvalidInputError, match='"Bad"'):
            combined_reach([TacticReach("Good", 50), TacticReach("Bad", reach)])


class TestPlanSummary:

    def setup_method(self):
        """Set up a three-tactic plan for testing."""
        self.tactics = [
            TacticReach("National TV", 86.47, grps=200),
            TacticReach("Online Video", 30, grps=66.67),
            TacticReach("Social", 25, grps=80),
        ]
        self.audience_size = 128_400_000

    def test_totals(self):
        summary = compute_plan_summary(self.tactics, self.audience_size)

        assert summary.total_grps == pytest.approx(346.67)
        expected_reach = independence_formula([86.47, 30, 25])
        assert summary.combined_reach_percent == pytest.approx(expected_reach)
        assert summary.combined_reach_number == round(expected_reach / 100 * self.audience_size)
        assert summary.combined_avg_frequency == pytest.approx(346.67 / expected_reach)
        assert len(summary.combined_reach_steps) == 3

    def test_effective_reach_uses_total_grps(self):
        summary = compute_plan_summary(self.tactics, self.audience_size)

        assert summary.effective_3plus == effective_reach_3plus(summary.total_grps)

    def test_zero_reach_gives_zero_frequency(self):
        summary = compute_plan_summary(
            [TacticReach("A", 0, grps=0), TacticReach("B", 0, grps=0)], 1000
        )

        assert summary.combined_reach_percent == 0
        assert summary.combined_avg_frequency == 0
        assert summary.combined_reach_number == 0

    def test_empty_plan(self):
        summary = compute_plan_summary([], 1000)

        assert summary.total_grps == 0
        assert summary.combined_reach_steps == []
