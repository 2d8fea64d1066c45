"""
Input validation and combination guardrails for reach plans.

This module checks raw tactic records field by field before they reach the
resolver, blocks combining tactics that do not share a geography and
audience size, and checks that selected tactics are ready to be combined.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models.data_models import Channel, CombinabilityResult, ResolvedTactic, TacticInputs

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Represents a validation issue found in a tactic record."""
    severity: ValidationSeverity
    message: str
    field: Optional[str] = None


MISSING_INPUT_SET_MESSAGE = (
    "Provide at least one input set: GRPs, Gross Impressions, Cost+CPM, "
    "Reach%+Frequency, or Reach%."
)
PLAN_NOT_READY_MESSAGE = (
    "Some selected tactics do not have Reach% or GRPs computed. Cannot combine."
)


class PlanValidator:
    """
    Validates tactic records and tactic groups.

    Field-level bounds mirror what the tactic form enforces; everything
    past this point assumes the bounds hold.
    """

    def __init__(self):
        """Initialize the plan validator."""
        self.max_label_length = 100
        self.label_fields = {
            'tacticName': "Tactic name",
            'geoName': "Geo / market name",
            'audienceName': "Audience name",
        }
        # field -> (label, lower bound, lower bound is exclusive)
        self.metric_bounds = {
            'grps': ("GRPs", 0.0, False),
            'grossImpressions': ("Gross impressions", 0.0, False),
            'cost': ("Cost", 0.0, False),
            'cpm': ("CPM", 0.0, True),
            'reachPercent': ("Reach%", 0.0, False),
            'frequency': ("Frequency", 0.0, False),
        }
        self.max_reach_percent = 100.0

    def validate_tactic_inputs(self, raw: Dict[str, Any]) -> Tuple[Optional[TacticInputs], List[ValidationIssue]]:
        """
        Validate a raw tactic record and convert it to TacticInputs.

        Args:
            raw: Record keyed by camelCase field names; numbers may be
                numeric, numeric strings, empty strings or None

        Returns:
            Tuple of (TacticInputs or None when invalid, list of issues)
        """
        issues: List[ValidationIssue] = []

        labels = {}
        for key, label in self.label_fields.items():
            value = str(raw.get(key) or '').strip()
            if not value:
                issues.append(self._error(f"{label} is required", key))
            elif len(value) > self.max_label_length:
                issues.append(self._error(
                    f"{label} must be {self.max_label_length} characters or fewer", key
                ))
            labels[key] = value

        audience_size = self._validate_audience_size(raw.get('audienceSize'), issues)

        channel = raw.get('channel')
        try:
            channel = Channel(channel).value
        except ValueError:
            issues.append(self._error(
                f"Channel must be one of: {', '.join(Channel.names())}", 'channel'
            ))

        metrics: Dict[str, Optional[float]] = {}
        for key, (label, lower, exclusive) in self.metric_bounds.items():
            metrics[key] = self._validate_metric(raw.get(key), key, label, lower, exclusive, issues)

        # Judged on what was entered; out-of-range values already have their own issue
        provided = {key: not self._is_blank(raw.get(key)) for key in self.metric_bounds}
        if not self._has_input_set(provided):
            issues.append(self._error(MISSING_INPUT_SET_MESSAGE, '_form'))

        if issues:
            logger.info(f"Tactic record '{labels['tacticName']}' failed validation with {len(issues)} issues")
            return None, issues

        raw_id = raw.get('id')
        return TacticInputs(
            tactic_name=labels['tacticName'],
            geo_name=labels['geoName'],
            audience_name=labels['audienceName'],
            audience_size=audience_size,
            channel=channel,
            grps=metrics['grps'],
            gross_impressions=metrics['grossImpressions'],
            cost=metrics['cost'],
            cpm=metrics['cpm'],
            reach_percent=metrics['reachPercent'],
            frequency=metrics['frequency'],
            tactic_id=str(raw_id) if raw_id is not None else None,
        ), issues

    def validate_combinable_group(self, tactics: Sequence[Any]) -> CombinabilityResult:
        """
        Check that tactics share a geography and audience size.

        Geography is checked across the whole group before audience size,
        and only the first violation is reported.

        Args:
            tactics: Objects with tactic_name, geo_name and audience_size

        Returns:
            CombinabilityResult, with an error naming both tactics when invalid
        """
        if len(tactics) < 2:
            return CombinabilityResult(valid=True)

        first = tactics[0]

        mismatched_geo = next((t for t in tactics if t.geo_name != first.geo_name), None)
        if mismatched_geo is not None:
            return CombinabilityResult(
                valid=False,
                error=(
                    f'Cannot combine tactics with different geographies. "{first.tactic_name}" '
                    f'uses geo "{first.geo_name}" but "{mismatched_geo.tactic_name}" uses geo '
                    f'"{mismatched_geo.geo_name}". All tactics must share the same geo.'
                ),
            )

        mismatched_size = next((t for t in tactics if t.audience_size != first.audience_size), None)
        if mismatched_size is not None:
            return CombinabilityResult(
                valid=False,
                error=(
                    f'Cannot combine tactics with different audience sizes. "{first.tactic_name}" '
                    f'has audience size {first.audience_size:,} but "{mismatched_size.tactic_name}" '
                    f'has audience size {mismatched_size.audience_size:,}. All tactics must '
                    f'target the same audience size.'
                ),
            )

        return CombinabilityResult(valid=True)

    def check_plan_ready(self, resolved: Sequence[ResolvedTactic]) -> Optional[str]:
        """Return an error message if any tactic lacks reach% or GRPs, else None."""
        if any(r.reach_percent is None or r.grps is None for r in resolved):
            return PLAN_NOT_READY_MESSAGE
        return None

    def _validate_audience_size(self, value: Any, issues: List[ValidationIssue]) -> Optional[int]:
        if self._is_blank(value):
            issues.append(self._error("Audience size is required", 'audienceSize'))
            return None
        try:
            number = self._parse_number(value)
        except (TypeError, ValueError):
            issues.append(self._error("Audience size must be a number", 'audienceSize'))
            return None
        if not float(number).is_integer():
            issues.append(self._error("Audience size must be a whole number", 'audienceSize'))
            return None
        if number <= 0:
            issues.append(self._error("Audience size must be greater than 0", 'audienceSize'))
            return None
        return int(number)

    def _validate_metric(self, value: Any, key: str, label: str, lower: float,
                         exclusive: bool, issues: List[ValidationIssue]) -> Optional[float]:
        if self._is_blank(value):
            return None
        try:
            number = self._parse_number(value)
        except (TypeError, ValueError):
            issues.append(self._error(f"{label} must be a number", key))
            return None

        if exclusive and number <= lower:
            issues.append(self._error(f"{label} must be greater than 0", key))
            return None
        if not exclusive and number < lower:
            issues.append(self._error(f"{label} cannot be negative", key))
            return None
        if key == 'reachPercent' and number > self.max_reach_percent:
            issues.append(self._error("Reach% cannot exceed 100", key))
            return None
        return number

    @staticmethod
    def _parse_number(value: Any) -> float:
        if isinstance(value, bool):
            raise ValueError(f"Not a number: {value!r}")
        number = float(str(value).strip().replace(',', '')) if isinstance(value, str) else float(value)
        if not math.isfinite(number):
            raise ValueError(f"Not a finite number: {value!r}")
        return number

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @staticmethod
    def _has_input_set(provided: Dict[str, bool]) -> bool:
        return (
            provided['grps']
            or provided['grossImpressions']
            or (provided['cost'] and provided['cpm'])
            or provided['reachPercent']
        )

    @staticmethod
    def _error(message: str, field: Optional[str] = None) -> ValidationIssue:
        return ValidationIssue(severity=ValidationSeverity.ERROR, message=message, field=field)


_default_validator = PlanValidator()


def validate_tactic_inputs(raw: Dict[str, Any]) -> Tuple[Optional[TacticInputs], List[ValidationIssue]]:
    return _default_validator.validate_tactic_inputs(raw)


def validate_combinable_group(tactics: Sequence[Any]) -> CombinabilityResult:
    return _default_validator.validate_combinable_group(tactics)


def check_plan_ready(resolved: Sequence[ResolvedTactic]) -> Optional[str]:
    return _default_validator.check_plan_ready(resolved)
