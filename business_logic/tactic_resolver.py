"""
Tactic resolver: derive every computable metric from a tactic's partial inputs.

Input sets a planner can supply:
    A) GRPs directly
    B) Gross impressions
    C) Cost + CPM
    D) Reach% + Frequency
    E) Reach% only (reach number only; no GRPs or frequency)

Volume sources are tried in order C, B, A, D. A later source overrides an
earlier one and the override is reported as a warning when the GRP value
moves by more than the tolerance. Once GRPs are known, reach and frequency
are split out from whichever of them was supplied, or estimated from the
channel's reach curve.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from models.data_models import (
    DerivationPath, EffectiveReachResult, ResolvedTactic, TacticInputs,
)
from .calculations import (
    InvalidInputError,
    average_frequency,
    effective_reach_3plus,
    gross_impressions_from_cost_cpm,
    grps_from_impressions,
    grps_from_reach_frequency,
    impressions_from_grps,
    reach_number,
)
from .reach_curve import estimate_reach_percent, get_reach_curve_k

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

GRPS_CONFLICT_TOLERANCE = 0.01

INSUFFICIENT_INPUT_MESSAGE = (
    "Insufficient inputs to compute GRPs. Provide one of: GRPs, Gross Impressions, "
    "Cost+CPM, or Reach%+Frequency."
)
REACH_ONLY_MESSAGE = (
    "Only Reach% provided. Cannot compute Frequency, GRPs, or Effective 3+ Reach "
    "without additional inputs (Frequency, GRPs, Impressions, or Cost+CPM)."
)
REACH_FREQUENCY_UNDETERMINED_MESSAGE = (
    "GRPs computed but Reach% and Frequency cannot be individually determined "
    "without at least one of them being provided."
)


class _StopResolution(Exception):
    """Ends the pipeline early; the state collected so far is the result."""
    pass


@dataclass
class _ResolutionState:
    """Working copy of a resolution, frozen into a ResolvedTactic at the end."""
    gross_impressions: Optional[float] = None
    grps: Optional[float] = None
    reach_percent: Optional[float] = None
    frequency: Optional[float] = None
    reach_number: Optional[int] = None
    effective_3plus: Optional[EffectiveReachResult] = None
    derivation: DerivationPath = DerivationPath.NONE
    derivation_notes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    is_fully_resolved: bool = False
    reach_percent_estimated: bool = False


class TacticResolver:
    """
    Runs the derivation pipeline for a single tactic.

    Each step reads the inputs, may set fields on the working state, and may
    stop the pipeline. A calculation precondition failure is recorded as an
    error and stops the pipeline with the partial state intact.
    """

    def __init__(self, grps_tolerance: float = GRPS_CONFLICT_TOLERANCE):
        self.grps_tolerance = grps_tolerance
        self._steps = [
            self._derive_from_cost_cpm,
            self._derive_from_impressions,
            self._derive_from_grps,
            self._derive_from_reach_frequency,
            self._resolve_reach_only,
            self._require_grps,
            self._split_reach_frequency,
            self._check_reach_bounds,
            self._derive_reach_number,
            self._derive_effective_reach,
        ]

    def resolve(self, inputs: TacticInputs) -> ResolvedTactic:
        """
        Resolve a tactic's inputs into the full set of derivable metrics.

        Args:
            inputs: The tactic's identity, audience size and known metrics

        Returns:
            A new ResolvedTactic; never raises for bad metric combinations
        """
        state = _ResolutionState()

        try:
            for step in self._steps:
                step(inputs, state)
            state.is_fully_resolved = (
                state.grps is not None
                and state.reach_percent is not None
                and state.frequency is not None
                and state.effective_3plus is not None
            )
        except _StopResolution:
            pass
        except InvalidInputError as e:
            state.errors.append(str(e))

        logger.debug(
            f"Resolved '{inputs.tactic_name}' via {state.derivation.name}: "
            f"{len(state.warnings)} warnings, {len(state.errors)} errors"
        )
        return self._freeze(inputs, state)

    # -- volume sources ------------------------------------------------------

    def _derive_from_cost_cpm(self, inputs: TacticInputs, state: _ResolutionState):
        if inputs.cost is None or inputs.cpm is None:
            return
        state.gross_impressions = gross_impressions_from_cost_cpm(inputs.cost, inputs.cpm)
        state.grps = grps_from_impressions(state.gross_impressions, inputs.audience_size)
        state.derivation = DerivationPath.COST_CPM

    def _derive_from_impressions(self, inputs: TacticInputs, state: _ResolutionState):
        if inputs.gross_impressions is None:
            return
        grps = grps_from_impressions(inputs.gross_impressions, inputs.audience_size)
        if state.derivation is DerivationPath.COST_CPM:
            self._warn_on_override(state, grps, "Gross Impressions", "Cost+CPM")
            state.derivation_notes.append("overrides Cost+CPM")
        state.gross_impressions = inputs.gross_impressions
        state.grps = grps
        state.derivation = DerivationPath.IMPRESSIONS

    def _derive_from_grps(self, inputs: TacticInputs, state: _ResolutionState):
        if inputs.grps is None:
            return
        if state.grps is not None:
            self._warn_on_override(state, inputs.grps, "GRPs input", "other inputs")
        state.grps = inputs.grps
        if not state.gross_impressions:
            state.gross_impressions = impressions_from_grps(inputs.grps, inputs.audience_size)
        state.derivation = DerivationPath.GRPS_DIRECT

    def _derive_from_reach_frequency(self, inputs: TacticInputs, state: _ResolutionState):
        if inputs.reach_percent is None or inputs.frequency is None:
            return
        derived = grps_from_reach_frequency(inputs.reach_percent, inputs.frequency)
        if state.grps is not None and abs(state.grps - derived) > self.grps_tolerance:
            state.warnings.append(
                f"GRPs derived from Reach×Frequency ({derived:.2f}) differ from other "
                f"inputs ({state.grps:.2f}). Using Reach×Frequency value."
            )
        state.grps = derived
        state.gross_impressions = impressions_from_grps(derived, inputs.audience_size)
        state.derivation = DerivationPath.REACH_FREQUENCY

    def _warn_on_override(self, state: _ResolutionState, new_grps: float,
                          source: str, previous_source: str):
        if state.grps is None or abs(state.grps - new_grps) <= self.grps_tolerance:
            return
        state.warnings.append(
            f"GRPs from {source} ({new_grps:.2f}) differ from {previous_source} "
            f"({state.grps:.2f}). Using {source} value."
        )

    # -- terminal checks -----------------------------------------------------

    def _resolve_reach_only(self, inputs: TacticInputs, state: _ResolutionState):
        if inputs.reach_percent is None or inputs.frequency is not None or state.grps is not None:
            return
        state.reach_percent = inputs.reach_percent
        state.reach_number = reach_number(inputs.reach_percent, inputs.audience_size)
        state.derivation = DerivationPath.REACH_ONLY
        state.warnings.append(REACH_ONLY_MESSAGE)
        raise _StopResolution()

    def _require_grps(self, inputs: TacticInputs, state: _ResolutionState):
        if state.grps is None:
            state.errors.append(INSUFFICIENT_INPUT_MESSAGE)
            raise _StopResolution()

    # -- reach / frequency split ---------------------------------------------

    def _split_reach_frequency(self, inputs: TacticInputs, state: _ResolutionState):
        grps = state.grps

        if inputs.reach_percent is not None:
            state.reach_percent = inputs.reach_percent
            state.frequency = average_frequency(grps, inputs.reach_percent)
            return

        if inputs.frequency is not None:
            if inputs.frequency <= 0:
                state.errors.append("Frequency must be > 0 to derive Reach%.")
                raise _StopResolution()
            state.reach_percent = grps / inputs.frequency
            state.frequency = inputs.frequency
            return

        curve_k = get_reach_curve_k(inputs.channel)
        if curve_k is not None and grps > 0:
            estimated = estimate_reach_percent(grps, curve_k)
            state.reach_percent = estimated
            state.frequency = average_frequency(grps, estimated)
            state.reach_percent_estimated = True
            state.derivation_notes.append("Reach% estimated via reach curve")
            state.warnings.append(
                f"Reach% ({estimated:.1f}%) was auto-estimated using a {inputs.channel} "
                f"reach curve. This is an approximation; actual reach varies by daypart, "
                f"network mix, and audience."
            )
        else:
            state.warnings.append(REACH_FREQUENCY_UNDETERMINED_MESSAGE)

    def _check_reach_bounds(self, inputs: TacticInputs, state: _ResolutionState):
        if state.reach_percent is not None and state.reach_percent > 100:
            state.errors.append(
                f"Computed Reach% ({state.reach_percent:.2f}%) exceeds 100%. Check your inputs."
            )
            raise _StopResolution()

    def _derive_reach_number(self, inputs: TacticInputs, state: _ResolutionState):
        if state.reach_percent is not None:
            state.reach_number = reach_number(state.reach_percent, inputs.audience_size)

    def _derive_effective_reach(self, inputs: TacticInputs, state: _ResolutionState):
        state.effective_3plus = effective_reach_3plus(state.grps)

    @staticmethod
    def _freeze(inputs: TacticInputs, state: _ResolutionState) -> ResolvedTactic:
        return ResolvedTactic(
            tactic_name=inputs.tactic_name,
            geo_name=inputs.geo_name,
            audience_name=inputs.audience_name,
            audience_size=inputs.audience_size,
            channel=inputs.channel,
            gross_impressions=state.gross_impressions,
            grps=state.grps,
            reach_percent=state.reach_percent,
            frequency=state.frequency,
            reach_number=state.reach_number,
            effective_3plus=state.effective_3plus,
            input_cost=inputs.cost,
            input_cpm=inputs.cpm,
            derivation=state.derivation,
            derivation_notes=list(state.derivation_notes),
            warnings=list(state.warnings),
            errors=list(state.errors),
            is_fully_resolved=state.is_fully_resolved,
            reach_percent_estimated=state.reach_percent_estimated,
            tactic_id=inputs.tactic_id,
        )


def resolve_tactic(inputs: TacticInputs,
                   grps_tolerance: float = GRPS_CONFLICT_TOLERANCE) -> ResolvedTactic:
    """Resolve one tactic with a fresh resolver."""
    return TacticResolver(grps_tolerance).resolve(inputs)
