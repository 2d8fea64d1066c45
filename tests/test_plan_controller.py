"""
Integration tests for the reach plan calculation workflow.
"""

import pytest

from business_logic.plan_controller import PlanCalculation, ReachPlanController
from business_logic.plan_validator import PLAN_NOT_READY_MESSAGE
from data.manager import DataManager


def record(row_id, name, **overrides):
    row = {
        'id': row_id,
        'tacticName': name,
        'geoName': 'US National',
        'audienceName': 'Adults 25-54',
        'audienceSize': 125_000_000,
        'channel': 'Digital',
        'grps': None,
        'grossImpressions': None,
        'cost': None,
        'cpm': None,
        'reachPercent': None,
        'frequency': None,
    }
    row.update(overrides)
    return row


class TestReachPlanController:
    """Test the full validate, resolve and combine workflow."""

    def setup_method(self):
        """Set up test fixtures."""
        self.controller = ReachPlanController()

    def test_sample_plan(self):
        rows = DataManager().load_sample_plan()

        result = self.controller.calculate(rows, [row['id'] for row in rows])

        assert isinstance(result, PlanCalculation)
        assert result.field_errors == {}
        assert result.plan_error is None
        assert result.notifications == []
        assert len(result.resolved) == 4
        assert all(r.is_fully_resolved for r in result.resolved)

        expected_grps = sum(r.grps for r in result.resolved)
        assert result.summary.total_grps == pytest.approx(expected_grps)
        assert len(result.summary.combined_reach_steps) == 4
        assert result.summary.combined_reach_steps[0].tactic_name == "National TV"
        assert max(r.reach_percent for r in result.resolved) < result.summary.combined_reach_percent < 100

    def test_two_tactic_plan(self):
        rows = [
            record('a', 'A', reachPercent=60, frequency=2),
            record('b', 'B', reachPercent=30, frequency=3),
        ]

        result = self.controller.calculate(rows, ['a', 'b'])

        assert result.summary.combined_reach_percent == pytest.approx(72)
        assert result.summary.total_grps == pytest.approx(210)
        assert result.summary.combined_avg_frequency == pytest.approx(210 / 72)
        assert result.summary.combined_reach_number == 90_000_000

    def test_field_errors_stop_calculation(self):
        rows = [
            record('good', 'Good', grps=100),
            record('bad', 'Bad', cost=1000, cpm=0),
        ]

        result = self.controller.calculate(rows, ['good', 'bad'])

        assert result.has_field_errors
        assert result.field_errors == {'bad': {'cpm': ["CPM must be greater than 0"]}}
        assert result.resolved == []
        assert result.summary is None

    def test_field_errors_are_reported_as_validation_errors(self):
        rows = [record('bad', 'Bad', cost=1000, cpm=0), record(None, '', grps=100)]

        result = self.controller.calculate(rows)

        assert [n['title'] for n in result.notifications] == ["Input Validation Error"] * 2
        assert result.notifications[0]['message'] == "Bad: CPM must be greater than 0"
        assert result.notifications[1]['message'] == "Tactic 2: Tactic name is required"

    def test_field_errors_keyed_by_index_without_id(self):
        rows = [record(None, '', grps=100)]

        result = self.controller.calculate(rows)

        assert result.field_errors == {'0': {'tacticName': ["Tactic name is required"]}}

    def test_resolution_errors_do_not_stop_other_tactics(self):
        rows = [
            record('impossible', 'Impossible', grps=500, frequency=2),
            record('fine', 'Fine', reachPercent=30, frequency=4),
        ]

        result = self.controller.calculate(rows)

        assert result.resolved[0].has_errors
        assert result.resolved[1].is_fully_resolved
        assert len(result.notifications) == 1
        assert result.notifications[0]['title'] == "Impossible Result"
        assert result.notifications[0]['message'].startswith("Impossible: Computed Reach%")

    def test_zero_frequency_is_reported(self):
        rows = [record("freq", "Zero Frequency", grps=0, frequency=0)]

        result = self.controller.calculate(rows)

        assert result.resolved[0].errors == ["Frequency must be > 0 to derive Reach%."]
        assert result.notifications[0]["title"] == "Invalid Input"

    def test_fewer_than_two_selected(self):
        rows = [record('a', 'A', grps=100, frequency=2), record('b', 'B', grps=50, frequency=1)]

        result = self.controller.calculate(rows, ['a'])

        assert len(result.resolved) == 2
        assert result.summary is None
        assert result.plan_error is None

    def test_unknown_selection_ids_are_ignored(self):
        rows = [record('a', 'A', grps=100, frequency=2), record('b', 'B', grps=50, frequency=1)]

        result = self.controller.calculate(rows, ['a', 'zzz'])

        assert result.summary is None

    def test_different_geographies_block_combining(self):
        rows = [
            record('a', 'National', grps=100, frequency=2),
            record('b', 'Local', geoName='New York', grps=100, frequency=2),
        ]

        result = self.controller.calculate(rows, ['a', 'b'])

        assert result.summary is None
        assert "different geographies" in result.plan_error
        assert result.notifications[-1]['title'] == "Cannot Combine Tactics"

    def test_different_audience_sizes_block_combining(self):
        rows = [
            record('a', 'Adults', grps=100, frequency=2),
            record('b', 'Men', audienceSize=100_000_000, grps=100, frequency=2),
        ]

        result = self.controller.calculate(rows, ['a', 'b'])

        assert "125,000,000" in result.plan_error
        assert "100,000,000" in result.plan_error

    def test_tactics_without_reach_block_combining(self):
        rows = [
            record('a', 'Full', reachPercent=40, frequency=2),
            record('b', 'Volume Only', grps=120),
        ]

        result = self.controller.calculate(rows, ['a', 'b'])

        assert result.plan_error == PLAN_NOT_READY_MESSAGE
        assert result.summary is None

    def test_impossible_reach_blocks_summary(self):
        rows = [
            record('a', 'Full', reachPercent=40, frequency=2),
            record('b', 'Impossible', grps=500, frequency=2),
        ]

        result = self.controller.calculate(rows, ['a', 'b'])

        assert result.summary is None
        assert '"Impossible"' in result.plan_error
        assert "between 0 and 100" in result.plan_error

    def test_custom_tolerance(self):
        rows = [record('a', 'A', grps=120.005, reachPercent=30, frequency=4)]

        assert ReachPlanController().calculate(rows).resolved[0].warnings == []
        assert len(ReachPlanController(grps_tolerance=0.001).calculate(rows).resolved[0].warnings) == 1
