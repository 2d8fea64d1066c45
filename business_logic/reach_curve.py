"""
Exponential-saturation reach curves.

Estimates Reach% from GRPs as

    Reach% = 100 * (1 - e^(-k * GRPs / 100))

This is an industry approximation; real curves vary by daypart, network
mix, audience composition and market, so results are estimates.
"""

import math
from typing import Dict, Optional, Union

from models.data_models import Channel
from .calculations import InvalidInputError


DEFAULT_CURVE_K = 1.0

# Channels with a built-in curve and their steepness parameter
REACH_CURVE_K: Dict[Channel, float] = {
    Channel.TV: 1.0,
}


def estimate_reach_percent(grps: float, k: float = DEFAULT_CURVE_K) -> float:
    """
    Estimate Reach% from GRPs on an exponential saturation curve.

    Args:
        grps: Gross rating points (>= 0)
        k: Curve steepness (> 0)

    Returns:
        Estimated Reach% in [0, 100)
    """
    if grps < 0:
        raise InvalidInputError("GRPs cannot be negative")
    if k <= 0:
        raise InvalidInputError("k must be positive")
    return 100 * (1 - math.exp(-k * grps / 100))


def get_reach_curve_k(channel: Union[Channel, str]) -> Optional[float]:
    """Steepness for a channel's built-in curve, or None if it has none."""
    try:
        channel = Channel(channel)
    except ValueError:
        return None
    return REACH_CURVE_K.get(channel)
