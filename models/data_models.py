"""
Core data models for the Reach & Frequency Planner.

All types are value objects: the resolver and combiner build them fresh
for every call and never mutate them afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Channel(Enum):
    """Media channel a tactic runs on."""
    TV = "TV"
    RADIO = "Radio"
    OOH = "OOH"
    PRINT = "Print"
    SOCIAL = "Social"
    DIGITAL = "Digital"
    OTHER = "Other"

    @classmethod
    def names(cls) -> List[str]:
        return [channel.value for channel in cls]


class DerivationPath(Enum):
    """Computation route the resolver took to arrive at GRPs."""
    NONE = "No computation path"
    COST_CPM = "Cost + CPM → Impressions → GRPs"
    IMPRESSIONS = "Gross Impressions → GRPs"
    GRPS_DIRECT = "GRPs provided directly"
    REACH_FREQUENCY = "Reach% + Frequency → GRPs"
    REACH_ONLY = "Reach% only (insufficient to compute GRPs/Frequency)"


# Keys of a serialized tactic record (form rows and plan export files)
TACTIC_RECORD_FIELDS = (
    'id', 'tacticName', 'geoName', 'audienceName', 'audienceSize', 'channel',
    'grps', 'grossImpressions', 'cost', 'cpm', 'reachPercent', 'frequency',
)

METRIC_RECORD_FIELDS = ('grps', 'grossImpressions', 'cost', 'cpm', 'reachPercent', 'frequency')


@dataclass(frozen=True)
class TacticInputs:
    """One advertising line item with whichever metrics the planner knows."""
    tactic_name: str
    geo_name: str
    audience_name: str
    audience_size: int
    channel: str
    grps: Optional[float] = None
    gross_impressions: Optional[float] = None
    cost: Optional[float] = None
    cpm: Optional[float] = None
    reach_percent: Optional[float] = None
    frequency: Optional[float] = None
    tactic_id: Optional[str] = None


@dataclass(frozen=True)
class EffectiveReachResult:
    """Poisson breakdown of exposure counts for a GRP level."""
    lambda_: float
    p0: float
    p1: float
    p2: float
    p3plus: float
    effective_3plus_percent: float


@dataclass(frozen=True)
class ResolvedTactic:
    """Every metric the resolver could derive for one tactic."""
    tactic_name: str
    geo_name: str
    audience_name: str
    audience_size: int
    channel: str
    gross_impressions: Optional[float] = None
    grps: Optional[float] = None
    reach_percent: Optional[float] = None
    frequency: Optional[float] = None
    reach_number: Optional[int] = None
    effective_3plus: Optional[EffectiveReachResult] = None
    input_cost: Optional[float] = None
    input_cpm: Optional[float] = None
    derivation: DerivationPath = DerivationPath.NONE
    derivation_notes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    is_fully_resolved: bool = False
    reach_percent_estimated: bool = False
    tactic_id: Optional[str] = None

    @property
    def derivation_path(self) -> str:
        """Human-readable description of the computation route."""
        if self.derivation is DerivationPath.NONE and not self.derivation_notes:
            return ""
        label = self.derivation.value
        for note in self.derivation_notes:
            label += f" ({note})"
        return label

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class TacticReach:
    """Reach and volume of one tactic as fed to the combined-reach engine."""
    tactic_name: str
    reach_percent: float
    grps: float = 0.0


@dataclass(frozen=True)
class CombinedReachStep:
    """One row of the sequential-remainder trace."""
    tactic_name: str
    reach_percent: float
    remainder: float
    incremental: float
    running_total: float


@dataclass(frozen=True)
class CombinedReachResult:
    """Deduplicated reach across tactics plus the step trace."""
    steps: List[CombinedReachStep]
    combined_reach_percent: float


@dataclass(frozen=True)
class PlanSummaryResult:
    """Plan-level totals for a group of combinable tactics."""
    total_grps: float
    combined_reach_percent: float
    combined_reach_number: int
    combined_avg_frequency: float
    effective_3plus: EffectiveReachResult
    combined_reach_steps: List[CombinedReachStep]


@dataclass(frozen=True)
class CombinabilityResult:
    """Outcome of the geography / audience-size guardrail."""
    valid: bool
    error: Optional[str] = None
