"""
Combined reach across tactics and plan-level totals.

Reach is deduplicated with the sequential remainder method: tactics are
taken in descending order of reach%, and each one reaches its own share of
the audience that is still unreached.

    remainder   = 100 - running_total
    incremental = remainder * (reach% / 100)
    running_total += incremental

which equals 100 * (1 - prod(1 - r_i / 100)) under statistical independence.
The stepwise form is kept because it is the audit trail shown to planners.
"""

import logging
from typing import List, Sequence

from models.data_models import (
    CombinedReachResult, CombinedReachStep, PlanSummaryResult, TacticReach,
)
from .calculations import InvalidInputError, effective_reach_3plus, reach_number

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def combined_reach(tactics: Sequence[TacticReach]) -> CombinedReachResult:
    """
    Combine reach across tactics using the sequential remainder method.

    Args:
        tactics: Tactic names and reach percentages, in any order

    Returns:
        CombinedReachResult with one step per tactic and the combined reach%

    Raises:
        InvalidInputError: If any reach% is outside [0, 100]
    """
    if not tactics:
        return CombinedReachResult(steps=[], combined_reach_percent=0.0)

    for tactic in tactics:
        if not 0 <= tactic.reach_percent <= 100:
            raise InvalidInputError(
                f'Reach% for "{tactic.tactic_name}" must be between 0 and 100, '
                f'got {tactic.reach_percent}'
            )

    # sorted() is stable, so ties keep their input order
    ordered = sorted(tactics, key=lambda t: t.reach_percent, reverse=True)

    steps: List[CombinedReachStep] = []
    running_total = 0.0

    for i, tactic in enumerate(ordered):
        if i == 0:
            remainder = 100.0
            incremental = tactic.reach_percent
            running_total = tactic.reach_percent
        else:
            remainder = 100 - running_total
            incremental = remainder * (tactic.reach_percent / 100)
            running_total += incremental

        steps.append(CombinedReachStep(
            tactic_name=tactic.tactic_name,
            reach_percent=tactic.reach_percent,
            remainder=remainder,
            incremental=incremental,
            running_total=running_total,
        ))

    # Accumulated rounding can land a hair above 100
    combined = min(100.0, running_total)

    logger.debug(f"Combined {len(steps)} tactics into {combined:.2f}% reach")
    return CombinedReachResult(steps=steps, combined_reach_percent=combined)


def compute_plan_summary(tactics: Sequence[TacticReach], audience_size: int) -> PlanSummaryResult:
    """
    Plan-level totals for tactics that share a geography and audience.

    Combined average frequency is total GRPs over combined reach%, and
    effective 3+ reach is computed on total GRPs rather than per tactic.
    Both are approximations of the plan's exposure distribution.

    Args:
        tactics: Tactic names with reach% and GRPs
        audience_size: Population shared by every tactic

    Returns:
        PlanSummaryResult including the step-by-step dedup trace
    """
    total_grps = sum((t.grps for t in tactics), 0.0)

    combined = combined_reach(tactics)
    combined_percent = combined.combined_reach_percent

    avg_frequency = total_grps / combined_percent if combined_percent > 0 else 0.0

    return PlanSummaryResult(
        total_grps=total_grps,
        combined_reach_percent=combined_percent,
        combined_reach_number=reach_number(combined_percent, audience_size),
        combined_avg_frequency=avg_frequency,
        effective_3plus=effective_reach_3plus(total_grps),
        combined_reach_steps=combined.steps,
    )
