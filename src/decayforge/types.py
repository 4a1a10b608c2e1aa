from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Literal, Mapping, Optional, Sequence

# Elapsed time is always in HOURS; wall-clock instants are datetimes.
Metabolism = Literal["fast", "typical", "slow"]


@dataclass(frozen=True)
class DoseEvent:
    """
    One discrete intake.

    amount      : quantity taken, in the profile's units (mg for caffeine)
    occurred_at : when it was taken (may lie in the future)
    source      : free-form label, e.g. "coffee"
    recorded_at : when the tracker logged it; audit only
    """
    amount: float
    occurred_at: datetime
    source: str = "unknown"
    recorded_at: Optional[datetime] = None


@dataclass(frozen=True)
class ThresholdBand:
    """Lower cut point (body load, inclusive) of one category."""
    lower_bound: float
    category: str
    description: str


@dataclass(frozen=True)
class DataPoint:
    time: float
    value: float


@dataclass(frozen=True)
class CurvePoint:
    time: float
    value: float
    percent: float
    half_lives: float


@dataclass(frozen=True)
class BatchPoint:
    time: float
    value: float
    percent: float


@dataclass(frozen=True)
class LinearizationResult:
    rate_constant: float
    initial_value: float
    r_squared: float
    is_exponential: bool


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float
    confidence: float


@dataclass(frozen=True)
class LevelSample:
    time: float
    level: float
    percent: float
    category: str


@dataclass(frozen=True)
class PhysiologicalState:
    level: float
    category: str
    description: str
    percent_of_peak: float


@dataclass(frozen=True)
class SleepForecast:
    """
    hours         : wait until the body load drops to the threshold (inf if never)
    target_time   : from_time + hours, None when hours is infinite
    already_below : True when no wait is needed
    current_level : concentration at from_time
    """
    hours: float
    target_time: Optional[datetime]
    already_below: bool
    current_level: float


@dataclass(frozen=True)
class DailyTotal:
    total: float
    breakdown: dict[str, float]
    safe: bool
    excessive: bool


@dataclass(frozen=True)
class ScheduledDose:
    time: float
    amount: float
    reason: str


@dataclass(frozen=True)
class TimelineSummary:
    peak_level: float
    peak_time_h: float
    auc: float


@dataclass(frozen=True)
class DomainProfile:
    """
    Everything domain-specific a DoseTracker needs.

    half_lives            : elimination half-life (h) per metabolism profile
    volume_per_kg         : distribution volume per kg of body weight (L/kg)
    sources               : unit amount per serving, by source name
    bands                 : threshold bands in ascending lower_bound order,
                            expressed as body load (level * volume)
    sleep_threshold       : body load considered safe for sleep
    daily_safe_limit      : totals strictly below this are "safe"
    daily_excessive_limit : totals strictly above this are "excessive"
    reference_peak_amount : amount whose fresh level counts as 100 % of peak
    default_curve_dose    : dose used by generate_decay_curve when none given
    recommend             : (profile, state, daily total, sleep forecast) -> advice
    """
    name: str
    half_lives: Mapping[str, float]
    volume_per_kg: float
    sources: Mapping[str, float]
    bands: Sequence[ThresholdBand]
    baseline_category: str = "baseline"
    baseline_description: str = "No significant effects"
    sleep_threshold: float = 10.0
    daily_safe_limit: float = float("inf")
    daily_excessive_limit: float = float("inf")
    reference_peak_amount: float = 100.0
    default_curve_dose: float = 100.0
    recommend: Optional[Callable[["DomainProfile", PhysiologicalState, DailyTotal, SleepForecast], list[str]]] = field(
        default=None, compare=False, repr=False
    )
