"""
Live input status for tactic form rows.

Checks which fields a planner has filled in and reports whether the row is
ready, partial or insufficient, with a coaching message for the next step.
Only presence checks are done here, no math, so it is cheap enough to run on
every rerun of the form.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from models.data_models import Channel


class OverallStatus(Enum):
    INSUFFICIENT = "insufficient"
    PARTIAL = "partial"
    READY = "ready"


class ActiveGroup(Enum):
    VOLUME_COST_CPM = "volume_costcpm"
    VOLUME_IMPRESSIONS = "volume_impressions"
    VOLUME_GRPS = "volume_grps"
    BREAKDOWN_REACH_FREQUENCY = "breakdown_reachfreq"


@dataclass
class RowInputStatus:
    """Readiness of one form row."""
    overall_status: OverallStatus
    guidance_message: str
    active_groups: List[ActiveGroup] = field(default_factory=list)
    has_started_input: bool = False


START_MESSAGE = "Start with what you know: Cost+CPM, GRPs, Impressions, or Reach%+Frequency."


def _is_present(value: Any, strictly_positive: bool = False) -> bool:
    """True when a form value holds a finite, non-negative number."""
    if value is None:
        return False
    text = str(value).strip()
    if not text:
        return False
    try:
        number = float(text)
    except ValueError:
        return False
    if not math.isfinite(number):
        return False
    return number > 0 if strictly_positive else number >= 0


def analyze_row_inputs(form: Dict[str, Any]) -> RowInputStatus:
    """
    Work out what a form row can compute from the fields filled in so far.

    Args:
        form: Raw form values keyed grps, grossImpressions, cost, cpm,
            reachPercent, frequency, and optionally channel

    Returns:
        RowInputStatus with status, coaching message and active field groups
    """
    has_grps = _is_present(form.get('grps'))
    has_impressions = _is_present(form.get('grossImpressions'))
    has_cost = _is_present(form.get('cost'))
    has_cpm = _is_present(form.get('cpm'), strictly_positive=True)
    has_reach = _is_present(form.get('reachPercent'))
    has_frequency = _is_present(form.get('frequency'))

    active_groups = []
    if has_cost or has_cpm:
        active_groups.append(ActiveGroup.VOLUME_COST_CPM)
    if has_impressions:
        active_groups.append(ActiveGroup.VOLUME_IMPRESSIONS)
    if has_grps:
        active_groups.append(ActiveGroup.VOLUME_GRPS)
    if has_reach or has_frequency:
        active_groups.append(ActiveGroup.BREAKDOWN_REACH_FREQUENCY)

    has_started = any([has_grps, has_impressions, has_cost, has_cpm, has_reach, has_frequency])

    cost_cpm_complete = has_cost and has_cpm
    cost_cpm_partial = (has_cost or has_cpm) and not cost_cpm_complete
    any_volume = has_grps or has_impressions or cost_cpm_complete
    any_breakdown = has_reach or has_frequency

    if has_reach and has_frequency:
        status = OverallStatus.READY
        message = "All set! Reach% + Frequency is enough to calculate everything."
    elif any_volume and any_breakdown:
        status = OverallStatus.READY
        message = "All set! You have enough data for a full calculation."
    elif any_volume:
        # TV rows get reach% from the reach curve
        if form.get('channel') == Channel.TV.value:
            status = OverallStatus.READY
            if has_grps:
                message = ("GRPs are in for TV. Reach% will be auto-estimated from the reach "
                           "curve, or add your own Reach%/Frequency.")
            elif has_impressions:
                message = "Got your impressions for TV. Reach% will be auto-estimated, or add your own."
            else:
                message = "Cost + CPM locked in for TV. Reach% will be auto-estimated, or add your own."
        else:
            status = OverallStatus.PARTIAL
            if has_grps:
                message = "Good, GRPs are in. Now add Reach% or Frequency so we can break that down."
            elif has_impressions:
                message = "Got your impressions. Now add Reach% or Frequency to complete the picture."
            else:
                message = "Cost + CPM locked in. Now add Reach% or Frequency and you're done."
    elif has_reach:
        status = OverallStatus.PARTIAL
        message = ("Have your Reach%. Add Frequency to complete the pair, or enter "
                   "GRPs/Impressions/Cost+CPM for volume.")
    elif has_frequency:
        status = OverallStatus.INSUFFICIENT
        message = ("Frequency alone isn't enough. Pair it with Reach%, or enter "
                   "GRPs/Impressions/Cost+CPM.")
    elif cost_cpm_partial:
        missing = "CPM" if has_cost else "Cost"
        status = OverallStatus.INSUFFICIENT
        message = f"Almost there: add {missing} to complete the Cost + CPM pair."
    else:
        status = OverallStatus.INSUFFICIENT
        message = START_MESSAGE

    return RowInputStatus(
        overall_status=status,
        guidance_message=message,
        active_groups=active_groups,
        has_started_input=has_started,
    )
