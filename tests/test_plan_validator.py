"""
Tests for tactic input validation and the combination guardrail.
"""

import pytest

from business_logic.plan_validator import (
    MISSING_INPUT_SET_MESSAGE,
    PLAN_NOT_READY_MESSAGE,
    PlanValidator,
    ValidationSeverity,
    check_plan_ready,
    validate_combinable_group,
    validate_tactic_inputs,
)
from business_logic.tactic_resolver import resolve_tactic
from models.data_models import TacticInputs


def valid_record(**overrides):
    record = {
        'id': 'row-1',
        'tacticName': 'National TV',
        'geoName': 'US National',
        'audienceName': 'Adults 25-54',
        'audienceSize': 125_000_000,
        'channel': 'TV',
        'grps': 200,
        'grossImpressions': None,
        'cost': '',
        'cpm': None,
        'reachPercent': None,
        'frequency': None,
    }
    record.update(overrides)
    return record


def tactic(name, geo="US National", size=125_000_000):
    return TacticInputs(
        tactic_name=name, geo_name=geo, audience_name="Adults 25-54",
        audience_size=size, channel="Digital", grps=100,
    )


class TestValidateTacticInputs:

    def setup_method(self):
        self.validator = PlanValidator()

    def fields_with_errors(self, issues):
        return {issue.field for issue in issues}

    def test_valid_record(self):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record())

        assert issues == []
        assert inputs.tactic_name == 'National TV'
        assert inputs.audience_size == 125_000_000
        assert inputs.channel == 'TV'
        assert inputs.grps == 200
        assert inputs.cost is None
        assert inputs.tactic_id == 'row-1'

    def test_numeric_strings_are_parsed(self):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(
            audienceSize='125,000,000', grps='', cost='5,000,000', cpm=' 25 ',
        ))

        assert issues == []
        assert inputs.audience_size == 125_000_000
        assert inputs.grps is None
        assert inputs.cost == 5_000_000
        assert inputs.cpm == 25

    def test_labels_are_trimmed_and_required(self):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(
            tacticName='  Radio  ', geoName='   ', audienceName=None,
        ))

        assert inputs is None
        assert self.fields_with_errors(issues) == {'geoName', 'audienceName'}
        assert all(issue.severity is ValidationSeverity.ERROR for issue in issues)

    def test_label_length_limit(self):
        _, issues = self.validator.validate_tactic_inputs(valid_record(tacticName='x' * 101))

        assert issues[0].message == "Tactic name must be 100 characters or fewer"

    @pytest.mark.parametrize("size,message", [
        (None, "Audience size is required"),
        ('', "Audience size is required"),
        ('lots', "Audience size must be a number"),
        (1000.5, "Audience size must be a whole number"),
        (0, "Audience size must be greater than 0"),
        (-5, "Audience size must be greater than 0"),
    ])
    def test_audience_size_rules(self, size, message):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(audienceSize=size))

        assert inputs is None
        assert [i.message for i in issues] == [message]
        assert issues[0].field == 'audienceSize'

    def test_unknown_channel(self):
        _, issues = self.validator.validate_tactic_inputs(valid_record(channel='Billboard'))

        assert issues[0].field == 'channel'
        assert "TV, Radio, OOH, Print, Social, Digital, Other" in issues[0].message

    @pytest.mark.parametrize("field,value,message", [
        ('grps', -1, "GRPs cannot be negative"),
        ('cost', -100, "Cost cannot be negative"),
        ('cpm', 0, "CPM must be greater than 0"),
        ('reachPercent', 100.5, "Reach% cannot exceed 100"),
        ('reachPercent', -2, "Reach% cannot be negative"),
        ('frequency', 'often', "Frequency must be a number"),
        ('grossImpressions', float('nan'), "Gross impressions must be a number"),
        ('grps', True, "GRPs must be a number"),
    ])
    def test_metric_bounds(self, field, value, message):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(**{field: value}))

        assert inputs is None
        assert message in [i.message for i in issues]

    def test_zero_values_are_allowed(self):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(grps=0, reachPercent=0))

        assert issues == []
        assert inputs.grps == 0
        assert inputs.reach_percent == 0

    def test_missing_input_set(self):
        inputs, issues = self.validator.validate_tactic_inputs(valid_record(grps=None, frequency=3))

        assert inputs is None
        assert issues[0].message == MISSING_INPUT_SET_MESSAGE
        assert issues[0].field == '_form'

    def test_cost_without_cpm_is_not_an_input_set(self):
        _, issues = self.validator.validate_tactic_inputs(valid_record(grps=None, cost=1000))

        assert MISSING_INPUT_SET_MESSAGE in [i.message for i in issues]

    def test_out_of_range_cpm_reports_only_the_field(self):
        _, issues = self.validator.validate_tactic_inputs(valid_record(grps=None, cost=1000, cpm=0))

        assert [(i.field, i.message) for i in issues] == [('cpm', "CPM must be greater than 0")]

    def test_out_of_range_reach_reports_only_the_field(self):
        _, issues = self.validator.validate_tactic_inputs(valid_record(grps=None, reachPercent=150))

        assert [(i.field, i.message) for i in issues] == [('reachPercent', "Reach% cannot exceed 100")]

    def test_reach_alone_is_an_input_set(self):
        inputs, issues = validate_tactic_inputs(valid_record(grps=None, reachPercent=45))

        assert issues == []
        assert inputs.reach_percent == 45

    def test_missing_id(self):
        inputs, _ = validate_tactic_inputs(valid_record(id=None))

        assert inputs.tactic_id is None


class TestCombinableGroup:

    def test_small_groups_are_always_valid(self):
        assert validate_combinable_group([]).valid is True
        assert validate_combinable_group([tactic("Solo")]).valid is True

    def test_matching_group(self):
        result = validate_combinable_group([tactic("A"), tactic("B"), tactic("C")])

        assert result.valid is True
        assert result.error is None

    def test_different_audience_sizes(self):
        result = validate_combinable_group([
            tactic("TV", size=125_000_000), tactic("Radio", size=100_000_000),
        ])

        assert result.valid is False
        assert '"TV"' in result.error
        assert '"Radio"' in result.error
        assert "125,000,000" in result.error
        assert "100,000,000" in result.error

    def test_different_geographies(self):
        result = validate_combinable_group([tactic("TV"), tactic("Local", geo="New York")])

        assert result.valid is False
        assert 'uses geo "US National"' in result.error
        assert 'uses geo "New York"' in result.error

    def test_geography_checked_across_group_before_size(self):
        # Size differs on the second tactic, geo only on the third
        result = validate_combinable_group([
            tactic("A"), tactic("B", size=5), tactic("C", geo="Chicago"),
        ])

        assert result.valid is False
        assert "different geographies" in result.error
        assert '"C"' in result.error


class TestPlanReady:

    def resolved(self, **metrics):
        return resolve_tactic(TacticInputs(
            tactic_name="T", geo_name="US National", audience_name="Adults",
            audience_size=1000, channel="Digital", **metrics
        ))

    def test_ready_when_reach_and_grps_present(self):
        assert check_plan_ready([self.resolved(reach_percent=30, frequency=2)]) is None

    def test_reach_only_tactic_blocks_combining(self):
        ready = self.resolved(reach_percent=30, frequency=2)
        reach_only = self.resolved(reach_percent=20)

        assert check_plan_ready([ready, reach_only]) == PLAN_NOT_READY_MESSAGE

    def test_grps_without_reach_blocks_combining(self):
        assert check_plan_ready([self.resolved(grps=100)]) == PLAN_NOT_READY_MESSAGE
