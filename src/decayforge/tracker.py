# src/decayforge/tracker.py
"""
DoseTracker: a log of discrete doses and the superposed level they produce.

Each dose decays independently from its own starting concentration
(amount / distribution volume); the level at any instant is the sum of the
contributions of every dose taken at or before that instant.

"Now" comes from the injected `clock` unless a method is handed an explicit
datetime, so every query can be replayed deterministically.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from .dosing import optimize_schedule
from .domains.registry import get_profile
from .errors import InvalidArgument, UnknownSource
from .helpers import (
    breakdown_by_source, hours_between, local_midnight,
    validate_datetime, validate_non_negative, validate_number, validate_positive,
)
from .kinetics import decay, generate_curve, half_life_to_rate, time_to_reach
from .settings import get_settings
from .snapshot import SNAPSHOT_VERSION, SnapshotModel, parse_snapshot
from .types import (
    DailyTotal, DomainProfile, DoseEvent, LevelSample, Metabolism, PhysiologicalState,
    ScheduledDose, SleepForecast,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class TrackerConfiguration:
    """
    Per-tracker parameters. rate_constant, half_life and distribution_volume
    are derived on access, so they always match body_weight and metabolism.
    """
    profile: DomainProfile
    body_weight: float
    metabolism: Metabolism

    def __post_init__(self):
        validate_positive("body_weight", self.body_weight)
        if self.metabolism not in self.profile.half_lives:
            raise InvalidArgument(
                f"metabolism must be one of {sorted(self.profile.half_lives)} (got {self.metabolism!r})."
            )

    @property
    def half_life(self) -> float:
        return self.profile.half_lives[self.metabolism]

    @property
    def rate_constant(self) -> float:
        return half_life_to_rate(self.half_life)

    @property
    def distribution_volume(self) -> float:
        return self.body_weight * self.profile.volume_per_kg


class DoseTracker:
    """
    Event log plus derived level queries for one subject.

    Not thread-safe; callers sharing a tracker serialize access themselves.
    """

    def __init__(self, profile: DomainProfile | None = None, *,
                 body_weight: float | None = None, metabolism: str | None = None,
                 clock: Clock | None = None):
        settings = get_settings()
        self.profile = profile if profile is not None else get_profile(settings.default_domain)
        self._config = TrackerConfiguration(
            profile=self.profile,
            body_weight=settings.default_body_weight if body_weight is None else body_weight,
            metabolism=settings.default_metabolism if metabolism is None else metabolism,
        )
        self._clock: Clock = clock if clock is not None else datetime.now
        self._events: list[DoseEvent] = []
        self._bands_desc = sorted(self.profile.bands, key=lambda b: b.lower_bound, reverse=True)
        # last (query time, level) pair; dropped on every mutation
        self._level_cache: Optional[tuple[datetime, float]] = None
        self._current_level: Optional[float] = 0.0

    # --------------------------
    # Read-only views
    # --------------------------
    @property
    def configuration(self) -> TrackerConfiguration:
        return self._config

    @property
    def events(self) -> tuple[DoseEvent, ...]:
        return tuple(self._events)

    @property
    def current_level(self) -> Optional[float]:
        """Last computed level; None once a mutation has made it stale."""
        return self._current_level

    def _now(self, when: datetime | None, name: str = "time") -> datetime:
        if when is None:
            return self._clock()
        return validate_datetime(name, when)

    def _invalidate(self) -> None:
        self._level_cache = None
        self._current_level = None

    # --------------------------
    # Mutations
    # --------------------------
    def add_dose(self, amount: float, time: datetime | None = None, source: str = "unknown") -> DoseEvent:
        """Log `amount` taken at `time` (default: now)."""
        amount = validate_non_negative("amount", amount)
        if not math.isfinite(amount):
            raise InvalidArgument(f"amount must be finite (got {amount}).")
        occurred_at = self._now(time)
        if self._events and (occurred_at.tzinfo is None) != (self._events[0].occurred_at.tzinfo is None):
            raise InvalidArgument("Cannot mix timezone-aware and naive dose times in one log.")

        event = DoseEvent(amount=amount, occurred_at=occurred_at, source=str(source),
                          recorded_at=self._clock())
        self._events.append(event)
        self._invalidate()
        logger.debug("Dose added", extra={"amount": amount, "source": event.source,
                                          "occurred_at": occurred_at.isoformat()})
        return event

    def add_by_source(self, source_name: str, servings: float = 1, time: datetime | None = None) -> DoseEvent:
        """Log `servings` of a registered source, e.g. add_by_source("espresso", 2)."""
        if source_name not in self.profile.sources:
            raise UnknownSource(source_name)
        servings = validate_non_negative("servings", servings)
        return self.add_dose(self.profile.sources[source_name] * servings, time, source_name)

    def clear_history(self) -> None:
        """Drop every logged dose. Irreversible."""
        dropped = len(self._events)
        self._events = []
        self._level_cache = None
        self._current_level = 0.0
        logger.debug("History cleared", extra={"dropped": dropped})

    def update_configuration(self, *, body_weight: float | None = None, metabolism: str | None = None) -> TrackerConfiguration:
        """Swap in a new configuration; derived fields follow automatically."""
        new_config = TrackerConfiguration(
            profile=self.profile,
            body_weight=self._config.body_weight if body_weight is None else body_weight,
            metabolism=self._config.metabolism if metabolism is None else metabolism,
        )
        self._config = new_config
        self._invalidate()
        logger.debug("Configuration updated", extra={"body_weight": new_config.body_weight,
                                                     "metabolism": new_config.metabolism})
        return new_config

    # --------------------------
    # Level queries
    # --------------------------
    def get_current_level(self, query_time: datetime | None = None) -> float:
        """
        Superposed concentration at `query_time` (default: now).
        Doses dated after `query_time` contribute nothing.
        """
        now = self._now(query_time, "query_time")
        if self._level_cache is not None and self._level_cache[0] == now:
            self._current_level = self._level_cache[1]
            return self._current_level

        volume = self._config.distribution_volume
        k = self._config.rate_constant
        total = 0.0
        for e in self._events:
            elapsed_h = hours_between(e.occurred_at, now)
            if elapsed_h >= 0:
                total += decay(e.amount / volume, k, elapsed_h)

        self._level_cache = (now, total)
        self._current_level = total
        return total

    def get_blood_level(self, amount: float, elapsed_hours: float) -> float:
        """Concentration `elapsed_hours` after a single dose; ignores the log."""
        amount = validate_non_negative("amount", amount)
        return decay(amount / self._config.distribution_volume, self._config.rate_constant, elapsed_hours)

    def _band_for(self, body_load: float) -> tuple[str, str]:
        for band in self._bands_desc:
            if body_load >= band.lower_bound:
                return band.category, band.description
        return self.profile.baseline_category, self.profile.baseline_description

    def classify(self, level: float) -> str:
        """Category of a concentration, judged on body load (level * volume)."""
        return self._band_for(level * self._config.distribution_volume)[0]

    def get_physiological_state(self, time: datetime | None = None) -> PhysiologicalState:
        now = self._now(time)
        level = self.get_current_level(now)
        category, description = self._band_for(level * self._config.distribution_volume)
        peak = self.profile.reference_peak_amount / self._config.distribution_volume
        percent_of_peak = min(100.0, level / peak * 100.0) if peak > 0 else 0.0
        return PhysiologicalState(level=level, category=category, description=description,
                                  percent_of_peak=percent_of_peak)

    def get_time_until_sleep(self, threshold: float | None = None,
                             from_time: datetime | None = None) -> SleepForecast:
        """
        Hours until the level drops to `threshold`, a concentration. The
        default is the profile's sleep threshold (a body load) divided by
        the distribution volume.
        """
        now = self._now(from_time, "from_time")
        if threshold is None:
            threshold = self.profile.sleep_threshold / self._config.distribution_volume
        else:
            threshold = validate_number("threshold", threshold)
        level = self.get_current_level(now)

        if level <= threshold:
            return SleepForecast(hours=0.0, target_time=now, already_below=True, current_level=level)

        hours = time_to_reach(level, threshold, self._config.rate_constant)
        target_time = now + timedelta(hours=hours) if math.isfinite(hours) else None
        return SleepForecast(hours=hours, target_time=target_time, already_below=False, current_level=level)

    def generate_decay_curve(self, dose_amount: float | None = None, duration: float = 24.0,
                             steps: int = 100) -> list[LevelSample]:
        """Level of one hypothetical dose over `duration` hours; ignores the log."""
        dose = self.profile.default_curve_dose if dose_amount is None else validate_non_negative("dose_amount", dose_amount)
        volume = self._config.distribution_volume
        curve = generate_curve(dose / volume, self._config.rate_constant, duration, steps)
        return [
            LevelSample(time=p.time, level=p.value, percent=p.percent,
                        category=self._band_for(p.value * volume)[0])
            for p in curve
        ]

    def generate_timeline(self, start: datetime | None = None, hours: float = 24.0,
                          resolution_minutes: float = 15.0) -> list[tuple[datetime, PhysiologicalState]]:
        """Log-aware state every `resolution_minutes`, from local midnight by default."""
        start = local_midnight(self._clock()) if start is None else validate_datetime("start", start)
        hours = validate_non_negative("hours", hours)
        resolution_minutes = validate_positive("resolution_minutes", resolution_minutes)
        steps = int(hours * 60 // resolution_minutes)
        return [
            (t, self.get_physiological_state(t))
            for t in (start + timedelta(minutes=i * resolution_minutes) for i in range(steps + 1))
        ]

    def get_today_total(self, now: datetime | None = None) -> DailyTotal:
        """Amounts taken between local midnight and `now`, inclusive."""
        now = self._now(now, "now")
        start = local_midnight(now)
        todays = [e for e in self._events if start <= e.occurred_at <= now]
        total = float(sum(e.amount for e in todays))
        return DailyTotal(
            total=total,
            breakdown=breakdown_by_source(todays),
            safe=total < self.profile.daily_safe_limit,
            excessive=total > self.profile.daily_excessive_limit,
        )

    def optimize_dosing(self, target_level: float, duration: float,
                        max_single_dose: float = 200.0) -> list[ScheduledDose]:
        """Greedy maintenance schedule; see dosing.optimize_schedule."""
        return optimize_schedule(target_level, duration, max_single_dose,
                                 self._config.rate_constant, self._config.distribution_volume)

    def get_recommendations(self, now: datetime | None = None) -> list[str]:
        now = self._now(now, "now")
        if self.profile.recommend is None:
            return []
        state = self.get_physiological_state(now)
        today = self.get_today_total(now)
        sleep = self.get_time_until_sleep(from_time=now)
        return list(self.profile.recommend(self.profile, state, today, sleep))

    # --------------------------
    # Persistence blob
    # --------------------------
    def export_state(self, now: datetime | None = None) -> dict[str, Any]:
        snapshot = SnapshotModel.model_validate({
            "version": SNAPSHOT_VERSION,
            "state": {
                "configuration": {
                    "domain": self.profile.name,
                    "body_weight": self._config.body_weight,
                    "metabolism": self._config.metabolism,
                },
                "event_log": [
                    {"amount": e.amount, "occurred_at": e.occurred_at,
                     "source": e.source, "recorded_at": e.recorded_at}
                    for e in self._events
                ],
            },
            "exported_at": self._now(now, "now"),
        })
        return snapshot.model_dump(mode="json")

    def import_state(self, blob: Mapping[str, Any]) -> None:
        """
        Replace configuration and log with an exported blob. Unknown versions,
        malformed shapes and other domains raise InvalidArgument and leave
        the tracker untouched.
        """
        snapshot = parse_snapshot(blob)
        cfg = snapshot.state.configuration
        if cfg.domain != self.profile.name:
            raise InvalidArgument(f"Snapshot is for domain {cfg.domain!r}, tracker is {self.profile.name!r}.")
        new_config = TrackerConfiguration(profile=self.profile, body_weight=cfg.body_weight,
                                          metabolism=cfg.metabolism)
        new_events = [
            DoseEvent(amount=e.amount, occurred_at=e.occurred_at, source=e.source, recorded_at=e.recorded_at)
            for e in snapshot.state.event_log
        ]
        if len({e.occurred_at.tzinfo is None for e in new_events}) > 1:
            logger.warning("Rejected snapshot mixing aware and naive dose times",
                           extra={"events": len(new_events)})
            raise InvalidArgument("Cannot mix timezone-aware and naive dose times in one log.")
        self._config = new_config
        self._events = new_events
        self._invalidate()
        logger.debug("State imported", extra={"events": len(new_events)})
