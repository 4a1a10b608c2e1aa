# src/decayforge/dosing.py
from __future__ import annotations

import logging

from .helpers import validate_non_negative, validate_positive
from .kinetics import time_to_reach
from .types import ScheduledDose

logger = logging.getLogger(__name__)

# Redose once the level has fallen to this fraction of the target
REDOSE_FRACTION = 0.7


def optimize_schedule(target_level: float, duration_h: float, max_single_dose: float,
                      rate_constant: float, volume: float) -> list[ScheduledDose]:
    """
    Greedy schedule that holds a concentration near `target_level`.

      1. dose at t=0 sized to reach the target (capped at max_single_dose)
      2. redose when the level would fall to 70 % of the target, sized to
         lift it back by the missing 30 % (also capped)
      3. repeat on a fixed interval until `duration_h` is covered

    The interval is computed once, from the decay of the initial dose alone,
    and reused for every redose. That is an approximation: later redoses
    start from a different level, so the true crossing times drift.

    target_level    : concentration to maintain (amount / volume)
    duration_h      : hours to cover
    max_single_dose : cap on any single dose (amount)
    rate_constant   : elimination constant (1/h)
    volume          : distribution volume
    """
    validate_positive("target_level", target_level)
    validate_non_negative("duration_h", duration_h)
    validate_positive("max_single_dose", max_single_dose)
    validate_positive("rate_constant", rate_constant)
    validate_positive("volume", volume)

    initial_dose = min(target_level * volume, max_single_dose)
    schedule = [ScheduledDose(time=0.0, amount=float(initial_dose),
                              reason="Initial dose to reach target")]

    redose_threshold = target_level * REDOSE_FRACTION
    interval = time_to_reach(initial_dose / volume, redose_threshold, rate_constant)
    if interval <= 0:
        # Capped initial dose starts below the redose mark; no interval exists.
        logger.warning(
            "Initial dose capped below redose threshold; schedule holds the initial dose only",
            extra={"target_level": target_level, "max_single_dose": max_single_dose},
        )
        return schedule

    boost_dose = min((target_level - redose_threshold) * volume, max_single_dose)
    current = interval
    while current < duration_h:
        schedule.append(ScheduledDose(time=float(current), amount=float(boost_dose),
                                      reason="Maintenance dose"))
        current += interval
    return schedule
