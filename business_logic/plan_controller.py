"""
Reach Plan Controller - Orchestrates the plan calculation workflow.

Validates raw tactic rows, resolves each tactic independently, applies the
combination guardrail to the selected tactics and computes the plan summary.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from models.data_models import PlanSummaryResult, ResolvedTactic, TacticReach
from .combined_reach import compute_plan_summary
from .error_handler import error_handler, ErrorInfo
from .plan_validator import PlanValidator
from .tactic_resolver import GRPS_CONFLICT_TOLERANCE, TacticResolver

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class PlanCalculation:
    """Outcome of one Calculate request."""
    resolved: List[ResolvedTactic] = field(default_factory=list)
    summary: Optional[PlanSummaryResult] = None
    plan_error: Optional[str] = None
    # row id -> field -> messages
    field_errors: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    notifications: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_field_errors(self) -> bool:
        return bool(self.field_errors)


class ReachPlanController:
    """
    Main controller for the reach planning workflow.

    A tactic that fails to resolve never stops the others; its errors are
    reported on its own result and as notifications.
    """

    def __init__(self, grps_tolerance: float = GRPS_CONFLICT_TOLERANCE):
        """
        Initialize the reach plan controller.

        Args:
            grps_tolerance: GRP difference above which overrides are reported
        """
        self.resolver = TacticResolver(grps_tolerance)
        self.plan_validator = PlanValidator()

        logger.info("ReachPlanController initialized")

    def calculate(self, raw_tactics: List[Dict[str, Any]],
                  selected_ids: Iterable[str] = ()) -> PlanCalculation:
        """
        Validate, resolve and (for selected rows) combine a set of tactics.

        Args:
            raw_tactics: Tactic records as edited in the form or imported
            selected_ids: Row ids to include in the plan summary

        Returns:
            PlanCalculation with per-tactic results and the plan summary
        """
        selected = set(selected_ids)
        result = PlanCalculation()

        # Step 1: Field-level validation of every row
        valid_inputs = []
        for index, raw in enumerate(raw_tactics):
            inputs, issues = self.plan_validator.validate_tactic_inputs(raw)
            if issues:
                row_id = str(raw.get('id') or index)
                row_errors: Dict[str, List[str]] = {}
                for issue in issues:
                    row_errors.setdefault(issue.field or '_form', []).append(issue.message)
                result.field_errors[row_id] = row_errors
                label = str(raw.get('tacticName') or '').strip() or f"Tactic {index + 1}"
                self._report(result, error_handler.validation_failed(label, row_errors), "Input validation")
            else:
                valid_inputs.append(inputs)

        if result.field_errors:
            logger.info(f"Calculation stopped: {len(result.field_errors)} rows failed validation")
            return result

        # Step 2: Resolve every tactic independently
        logger.info(f"Resolving {len(valid_inputs)} tactics")
        result.resolved = [self.resolver.resolve(inputs) for inputs in valid_inputs]

        for resolved in result.resolved:
            for error_info in error_handler.from_resolution(resolved):
                self._report(result, error_info, "Tactic resolution")

        # Step 3: Combine the selected tactics
        chosen = [r for r in result.resolved if r.tactic_id in selected]
        if len(chosen) < 2:
            return result

        combinable = self.plan_validator.validate_combinable_group(chosen)
        if not combinable.valid:
            result.plan_error = combinable.error
            self._report(result, error_handler.combination_blocked(combinable.error), "Plan combination")
            return result

        not_ready = self.plan_validator.check_plan_ready(chosen)
        if not_ready:
            result.plan_error = not_ready
            self._report(result, error_handler.combination_blocked(not_ready), "Plan combination")
            return result

        try:
            result.summary = compute_plan_summary(
                [TacticReach(r.tactic_name, r.reach_percent, r.grps) for r in chosen],
                chosen[0].audience_size,
            )
        except ValueError as e:
            error_info = error_handler.classify_error(e, "plan summary")
            result.plan_error = error_info.user_message
            self._report(result, error_info, "Plan summary")
            return result

        logger.info(
            f"Plan summary: {len(chosen)} tactics, {result.summary.total_grps:.1f} GRPs, "
            f"{result.summary.combined_reach_percent:.1f}% combined reach"
        )
        return result

    @staticmethod
    def _report(result: PlanCalculation, error_info: ErrorInfo, context: str):
        error_handler.log_error(error_info, context)
        result.notifications.append(error_handler.create_user_notification(error_info))
