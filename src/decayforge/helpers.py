import math
from collections import defaultdict
from datetime import datetime, timedelta
from numbers import Integral, Real
from typing import Iterable

from .errors import InvalidArgument
from .types import DoseEvent


def breakdown_by_source(events: Iterable[DoseEvent]) -> dict[str, float]:
    """
    Sum dose amounts per source label, keeping first-seen order.
    """
    buckets: dict[str, float] = defaultdict(float)
    for e in events:
        buckets[e.source] += e.amount
    return dict(buckets)


def local_midnight(now: datetime) -> datetime:
    """Start of the calendar day containing `now` (tzinfo preserved)."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def hours_between(start: datetime, end: datetime) -> float:
    """Signed elapsed hours from start to end."""
    return (end - start) / timedelta(hours=1)


# --------------------------
# Small input validators
# --------------------------
def validate_number(name: str, x) -> float:
    if isinstance(x, bool) or not isinstance(x, Real) or math.isnan(x):
        raise InvalidArgument(f"{name} must be a number (got {x!r}).")
    return float(x)

def validate_positive(name: str, x) -> float:
    x = validate_number(name, x)
    if not (x > 0):
        raise InvalidArgument(f"{name} must be > 0 (got {x}).")
    return x

def validate_non_negative(name: str, x) -> float:
    x = validate_number(name, x)
    if x < 0:
        raise InvalidArgument(f"{name} must be >= 0 (got {x}).")
    return x

def validate_positive_int(name: str, x) -> int:
    if isinstance(x, bool) or not isinstance(x, Integral) or x <= 0:
        raise InvalidArgument(f"{name} must be a positive integer (got {x!r}).")
    return x

def validate_datetime(name: str, x) -> datetime:
    if not isinstance(x, datetime):
        raise InvalidArgument(f"{name} must be a datetime (got {x!r}).")
    return x
