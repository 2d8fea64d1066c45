"""
Core media planning calculations.

Closed-form conversions among cost, CPM, impressions, GRPs, reach% and
frequency, plus the Poisson approximation of effective 3+ reach. Every
function is pure and validates its own preconditions.
"""

import math

from models.data_models import EffectiveReachResult


class InvalidInputError(ValueError):
    """Raised when a calculation precondition is violated."""
    pass


# ---------------------------------------------------------------------------
# Basic conversions
# ---------------------------------------------------------------------------

def gross_impressions_from_cost_cpm(cost: float, cpm: float) -> float:
    """Gross impressions bought: (cost / CPM) * 1000."""
    if cpm <= 0:
        raise InvalidInputError("CPM must be greater than 0")
    if cost < 0:
        raise InvalidInputError("Cost cannot be negative")
    return (cost / cpm) * 1000


def grps_from_impressions(gross_impressions: float, audience_size: float) -> float:
    """GRPs delivered by an impression volume: (impressions / audience) * 100."""
    if audience_size <= 0:
        raise InvalidInputError("Audience size must be greater than 0")
    if gross_impressions < 0:
        raise InvalidInputError("Gross impressions cannot be negative")
    return (gross_impressions / audience_size) * 100


def grps_from_reach_frequency(reach_percent: float, frequency: float) -> float:
    """GRPs = reach% * average frequency."""
    if not 0 <= reach_percent <= 100:
        raise InvalidInputError("Reach% must be between 0 and 100")
    if frequency < 0:
        raise InvalidInputError("Frequency cannot be negative")
    return reach_percent * frequency


def average_frequency(grps: float, reach_percent: float) -> float:
    """Average frequency = GRPs / reach%."""
    if reach_percent <= 0:
        raise InvalidInputError("Reach% must be greater than 0 to compute frequency")
    if grps < 0:
        raise InvalidInputError("GRPs cannot be negative")
    return grps / reach_percent


def impressions_from_grps(grps: float, audience_size: float) -> float:
    """Gross impressions implied by a GRP level: (GRPs / 100) * audience."""
    return (grps / 100) * audience_size


def reach_number(reach_percent: float, audience_size: float) -> int:
    """Number of people reached, rounded to the nearest whole person."""
    # Halves round up
    return int(math.floor((reach_percent / 100) * audience_size + 0.5))


# ---------------------------------------------------------------------------
# Effective reach (Poisson approximation)
# ---------------------------------------------------------------------------

def effective_reach_3plus(grps: float) -> EffectiveReachResult:
    """
    Estimate the share of the audience exposed three or more times.

    Exposures per person are treated as Poisson distributed with mean
    lambda = GRPs / 100:

        P(0) = e^-lambda
        P(1) = lambda * e^-lambda
        P(2) = (lambda^2 / 2) * e^-lambda
        P(3+) = 1 - P(0) - P(1) - P(2)

    Args:
        grps: Gross rating points, must be non-negative

    Returns:
        EffectiveReachResult with lambda, the point masses and P(3+)

    Raises:
        InvalidInputError: If grps is negative
    """
    if grps < 0:
        raise InvalidInputError("GRPs cannot be negative")

    lam = grps / 100
    exp_neg_lambda = math.exp(-lam)

    p0 = exp_neg_lambda
    p1 = lam * exp_neg_lambda
    p2 = ((lam * lam) / 2) * exp_neg_lambda
    p3plus = 1 - (p0 + p1 + p2)

    # Floating-point overshoot at tiny or huge lambda
    clamped = max(0.0, min(1.0, p3plus))

    return EffectiveReachResult(
        lambda_=lam,
        p0=p0,
        p1=p1,
        p2=p2,
        p3plus=clamped,
        effective_3plus_percent=clamped * 100,
    )
