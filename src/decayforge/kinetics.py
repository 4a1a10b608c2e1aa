# src/decayforge/kinetics.py
"""
Closed-form first-order kinetics.

    N(t) = N0 * exp(-k t)

Time units are whatever the caller uses for the rate (hours throughout the
tracker). Every function is pure: same inputs, same outputs, no clock.
"""
import math
from typing import Sequence

import numpy as np

from .errors import InvalidArgument
from .helpers import (
    validate_non_negative, validate_number, validate_positive, validate_positive_int,
)
from .types import BatchPoint, CurvePoint

LN2 = math.log(2.0)


def decay(initial: float, rate: float, time: float) -> float:
    """
    Amount remaining after `time` at decay constant `rate`.
    Example: decay(100, 0.1386, 5) ~= 50 (one 5 h half-life).
    """
    initial = validate_non_negative("initial", initial)
    rate = validate_non_negative("rate", rate)
    time = validate_non_negative("time", time)
    return initial * math.exp(-rate * time)


def percent_remaining(rate: float, time: float) -> float:
    """Percentage (0-100) of the starting amount left; validated like decay()."""
    rate = validate_non_negative("rate", rate)
    time = validate_non_negative("time", time)
    return 100.0 * math.exp(-rate * time)


def percent_of(current: float, initial: float) -> float:
    """current as a percentage of initial; 0 when initial is 0."""
    if initial == 0:
        return 0.0
    return current / initial * 100.0


def amount_at_percent(initial: float, percent: float) -> float:
    return initial * (percent / 100.0)


def rate_to_half_life(rate: float) -> float:
    """t1/2 = ln(2) / k"""
    return LN2 / validate_positive("rate", rate)


def half_life_to_rate(half_life: float) -> float:
    """k = ln(2) / t1/2"""
    return LN2 / validate_positive("half_life", half_life)


def time_constant(rate: float) -> float:
    """tau = 1 / k, the time to fall to 1/e (~36.8 %)."""
    return 1.0 / validate_positive("rate", rate)


def time_to_reach(initial: float, target: float, rate: float) -> float:
    """
    Time for `initial` to decay down to `target`.

    Branches are checked in this order:
      target >= initial -> 0.0 (already there)
      target <= 0       -> inf (exponential decay never reaches zero)
      rate <= 0         -> InvalidArgument
      otherwise         -> ln(initial / target) / rate
    """
    initial = validate_number("initial", initial)
    target = validate_number("target", target)
    if target >= initial:
        return 0.0
    if target <= 0:
        return math.inf
    rate = validate_positive("rate", rate)
    return math.log(initial / target) / rate


def half_lives_elapsed(time: float, half_life: float) -> float:
    return time / validate_positive("half_life", half_life)


def generate_curve(initial: float, rate: float, duration: float, steps: int = 100) -> list[CurvePoint]:
    """
    Sample decay() at steps+1 evenly spaced times over [0, duration].

    percent    : value / initial * 100 (0 for a zero initial amount)
    half_lives : time * rate / ln(2) (0 for rate 0, which never halves)
    """
    initial = validate_non_negative("initial", initial)
    rate = validate_non_negative("rate", rate)
    duration = validate_non_negative("duration", duration)
    steps = validate_positive_int("steps", steps)

    # i * dt keeps the last sample exactly on `duration`
    dt = duration / steps
    t = np.arange(steps + 1, dtype=float) * dt
    values = initial * np.exp(-rate * t)
    if initial > 0:
        percents = values / initial * 100.0
    else:
        percents = np.zeros_like(t)
    half_lives = t * rate / LN2

    return [
        CurvePoint(time=float(ti), value=float(v), percent=float(p), half_lives=float(h))
        for ti, v, p, h in zip(t, values, percents, half_lives)
    ]


def batch_calculate(initial: float, rate: float, times: Sequence[float]) -> list[BatchPoint]:
    """decay() and percent_remaining() at each time, in the order given."""
    return [
        BatchPoint(time=float(time), value=decay(initial, rate, time), percent=percent_remaining(rate, time))
        for time in times
    ]


def logistic_growth(initial: float, capacity: float, rate: float, time: float) -> float:
    """
    Capacity-limited growth:
      P(t) = K / (1 + ((K - P0) / P0) * exp(-r t))
    """
    capacity = validate_positive("capacity", capacity)
    initial = validate_positive("initial", initial)
    ratio = (capacity - initial) / initial
    return capacity / (1.0 + ratio * math.exp(-rate * time))


def bi_exponential(a: float, alpha: float, b: float, beta: float, time: float) -> float:
    """Two-pathway decay: A e^(-alpha t) + B e^(-beta t)."""
    return a * math.exp(-alpha * time) + b * math.exp(-beta * time)


def factorial(n: int) -> int:
    if isinstance(n, float) and n.is_integer():
        n = int(n)
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidArgument(f"n must be an integer (got {n!r}).")
    if n < 0:
        raise InvalidArgument(f"Factorial undefined for negative numbers (got {n}).")
    return math.factorial(n)


def poisson_probability(lam: float, time: float, n: int) -> float:
    """Probability of exactly n events in `time` for event rate `lam`."""
    lt = lam * time
    return (lt ** n) * math.exp(-lt) / factorial(n)


def mean_time_to_event(lam: float) -> float:
    """Expected wait for the first event of a Poisson process."""
    return 1.0 / validate_positive("lam", lam)


def composite_decay(initial: float, rates: Sequence[float], time: float) -> float:
    """Independent simultaneous mechanisms add their rate constants."""
    total_rate = sum(validate_number("rate", r) for r in rates)
    return decay(initial, total_rate, time)
