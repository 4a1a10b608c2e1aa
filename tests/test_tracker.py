import dataclasses
import math
from datetime import datetime, timedelta

import numpy as np
import pytest

from decayforge.domains.caffeine import CAFFEINE
from decayforge.errors import InvalidArgument, UnknownSource
from decayforge.tracker import DoseTracker

NOW = datetime(2026, 1, 1, 10, 0, 0)
LN2 = math.log(2.0)


def make_tracker(**kwargs) -> DoseTracker:
    """70 kg typical metabolizer with the clock pinned to NOW."""
    kwargs.setdefault("body_weight", 70)
    kwargs.setdefault("metabolism", "typical")
    return DoseTracker(CAFFEINE, clock=lambda: NOW, **kwargs)


def test_default_configuration():
    cfg = make_tracker().configuration
    assert cfg.distribution_volume == pytest.approx(42.0)
    assert cfg.half_life == 5.0
    assert np.isclose(cfg.rate_constant, 0.1386, atol=1e-3)


def test_single_dose_blood_levels():
    """100 mg in 42 L: 2.381 mg/L, halving every 5 h."""
    tr = make_tracker()
    assert np.isclose(tr.get_blood_level(100, 0), 100 / 42)
    assert np.isclose(tr.get_blood_level(100, 5), 1.190, atol=1e-3)
    assert np.isclose(tr.get_blood_level(100, 10), 0.595, atol=1e-3)
    assert tr.get_blood_level(0, 5) == 0.0
    assert math.isfinite(tr.get_blood_level(10_000, 0))


def test_superposition_of_two_doses():
    tr = make_tracker()
    first = datetime(2026, 1, 1, 8, 0)
    second = datetime(2026, 1, 1, 12, 0)
    tr.add_dose(100, first, "coffee")
    tr.add_dose(100, second, "coffee")
    level = tr.get_current_level(second)
    assert level == tr.get_blood_level(100, 4) + tr.get_blood_level(100, 0)


def test_future_doses_contribute_nothing():
    tr = make_tracker()
    tr.add_dose(100, NOW + timedelta(hours=1))
    assert tr.get_current_level() == 0.0
    assert tr.get_current_level(NOW + timedelta(hours=1)) == pytest.approx(100 / 42)


def test_empty_log_reads_as_baseline():
    tr = make_tracker()
    assert tr.get_current_level() == 0.0
    state = tr.get_physiological_state()
    assert state.category == "baseline"
    assert state.level == 0.0
    assert tr.get_today_total().total == 0.0


def test_current_level_is_idempotent_and_cache_invalidates():
    tr = make_tracker()
    tr.add_dose(100, NOW - timedelta(hours=2))
    assert tr.current_level is None
    a = tr.get_current_level(NOW)
    b = tr.get_current_level(NOW)
    assert a == b
    assert tr.current_level == a

    tr.add_dose(50, NOW - timedelta(hours=1))
    assert tr.current_level is None
    assert tr.get_current_level(NOW) > a

    tr.update_configuration(metabolism="fast")
    assert tr.current_level is None
    assert tr.get_current_level(NOW) < a + tr.get_blood_level(50, 1)


def test_add_dose_validation_leaves_log_untouched():
    tr = make_tracker()
    with pytest.raises(InvalidArgument):
        tr.add_dose(-5, NOW)
    with pytest.raises(InvalidArgument):
        tr.add_dose(float("inf"), NOW)
    with pytest.raises(InvalidArgument):
        tr.add_dose(10, "2026-01-01T08:00")
    assert tr.events == ()


def test_add_dose_defaults():
    tr = make_tracker()
    event = tr.add_dose(95)
    assert event.occurred_at == NOW
    assert event.recorded_at == NOW
    assert event.source == "unknown"
    assert tr.events == (event,)


def test_add_by_source():
    tr = make_tracker()
    espresso = tr.add_by_source("espresso", 2, NOW)
    assert espresso.amount == 128
    assert espresso.source == "espresso"
    tr.add_by_source("coffee", 1, NOW)
    assert tr.get_today_total().total == 223


def test_unknown_source_fails_without_logging_anything():
    tr = make_tracker()
    with pytest.raises(UnknownSource):
        tr.add_by_source("invalid_source")
    assert tr.events == ()


def test_today_total_excludes_previous_days():
    tr = make_tracker()
    tr.add_dose(100, NOW - timedelta(days=1), "coffee")
    tr.add_dose(95, NOW, "coffee")
    tr.add_dose(64, NOW, "espresso")
    today = tr.get_today_total()
    assert today.total == 159
    assert today.breakdown == {"coffee": 95, "espresso": 64}
    assert today.safe is True
    assert today.excessive is False


def test_today_total_limits():
    tr = make_tracker()
    tr.add_dose(650, NOW - timedelta(hours=3))
    today = tr.get_today_total()
    assert not today.safe
    assert today.excessive


@pytest.mark.parametrize("dose,category", [
    (400, "jittery"),
    (100, "alert"),
    (30, "mild"),
    (5, "minimal"),
    (0.5, "baseline"),
])
def test_physiological_state_bands(dose, category):
    tr = make_tracker()
    tr.add_dose(dose, NOW)
    assert tr.get_physiological_state(NOW).category == category


def test_band_boundaries_judged_on_body_load():
    tr = make_tracker()
    volume = tr.configuration.distribution_volume
    assert tr.classify(150.001 / volume) == "jittery"
    assert tr.classify(149.999 / volume) == "alert"
    assert tr.classify(0.999 / volume) == "baseline"


def test_percent_of_peak_is_capped():
    tr = make_tracker()
    tr.add_dose(100, NOW)
    assert tr.get_physiological_state(NOW).percent_of_peak == pytest.approx(50.0)
    tr.add_dose(500, NOW)
    assert tr.get_physiological_state(NOW).percent_of_peak == 100.0


def test_time_until_sleep():
    """Threshold is a concentration: 200 mg in 42 L falling to 1 mg/L."""
    tr = make_tracker()
    tr.add_dose(200, NOW, "coffee")
    forecast = tr.get_time_until_sleep(1.0)
    expected_h = math.log((200 / 42) / 1.0) / (LN2 / 5)
    assert not forecast.already_below
    assert np.isclose(forecast.hours, expected_h)
    assert forecast.target_time == NOW + timedelta(hours=forecast.hours)
    assert forecast.current_level == pytest.approx(200 / 42)


def test_time_until_sleep_compares_level_not_body_load():
    """100 mg gives 2.381 mg/L, already under a 10 mg/L threshold."""
    tr = make_tracker()
    tr.add_dose(100, NOW)
    forecast = tr.get_time_until_sleep(10, NOW)
    assert forecast.already_below
    assert forecast.hours == 0.0
    assert forecast.current_level == pytest.approx(100 / 42)


def test_time_until_sleep_default_threshold_is_profile_load_over_volume():
    tr = make_tracker()
    tr.add_dose(200, NOW)
    forecast = tr.get_time_until_sleep()
    assert np.isclose(forecast.hours, math.log(200 / CAFFEINE.sleep_threshold) / (LN2 / 5))
    assert np.isclose(forecast.hours, tr.get_time_until_sleep(CAFFEINE.sleep_threshold / 42).hours)


def test_time_until_sleep_already_below():
    tr = make_tracker()
    tr.add_dose(5, NOW)
    forecast = tr.get_time_until_sleep()
    assert forecast.already_below
    assert forecast.hours == 0
    assert forecast.target_time == NOW


def test_time_until_sleep_zero_threshold_is_never():
    tr = make_tracker()
    tr.add_dose(100, NOW)
    forecast = tr.get_time_until_sleep(0)
    assert forecast.hours == math.inf
    assert forecast.target_time is None


def test_metabolism_profiles_order_clearance():
    levels = {
        m: make_tracker(metabolism=m).get_blood_level(100, 5)
        for m in ("fast", "typical", "slow")
    }
    assert levels["fast"] < levels["typical"] < levels["slow"]


def test_update_configuration_recomputes_derived_fields():
    tr = make_tracker()
    cfg = tr.update_configuration(body_weight=80)
    assert cfg.distribution_volume == pytest.approx(48.0)
    cfg = tr.update_configuration(metabolism="slow")
    assert cfg.body_weight == 80
    assert cfg.half_life == 10.0
    assert np.isclose(cfg.rate_constant, LN2 / 10)
    assert tr.configuration is cfg


def test_update_configuration_rejects_bad_values_atomically():
    tr = make_tracker()
    before = tr.configuration
    with pytest.raises(InvalidArgument):
        tr.update_configuration(metabolism="glacial")
    with pytest.raises(InvalidArgument):
        tr.update_configuration(body_weight=0)
    assert tr.configuration is before


def test_generate_decay_curve():
    tr = make_tracker()
    curve = tr.generate_decay_curve(100, 24, 100)
    assert len(curve) == 101
    assert curve[0].percent == 100
    assert curve[-1].percent < 5
    assert curve[0].level > curve[-1].level
    assert curve[0].category == "alert"
    assert curve[-1].category == "minimal"
    # hypothetical curve never reads the log
    assert tr.events == ()


def test_generate_decay_curve_default_dose():
    tr = make_tracker()
    assert tr.generate_decay_curve(steps=4)[0].level == pytest.approx(CAFFEINE.default_curve_dose / 42)


def test_clear_history():
    tr = make_tracker()
    tr.add_dose(100, NOW)
    tr.get_current_level()
    tr.clear_history()
    assert tr.events == ()
    assert tr.current_level == 0.0
    assert tr.get_current_level() == 0.0


def test_recommendations_for_high_intake():
    tr = make_tracker()
    tr.add_dose(400, NOW)
    recs = tr.get_recommendations()
    assert any("High caffeine" in r for r in recs)
    assert any("before sleep" in r for r in recs)
    assert not any("exceeded" in r for r in recs)

    tr.add_dose(200, NOW)
    recs = tr.get_recommendations()
    assert any("exceeded" in r for r in recs)


def test_recommendations_when_clear():
    tr = make_tracker()
    assert tr.get_recommendations() == ["Good time for caffeine if needed"]


def test_generate_timeline():
    tr = make_tracker()
    tr.add_dose(200, datetime(2026, 1, 1, 1, 0))
    timeline = tr.generate_timeline(hours=2, resolution_minutes=30)
    assert [t for t, _ in timeline] == [datetime(2026, 1, 1, 0, 0) + timedelta(minutes=30 * i) for i in range(5)]
    assert timeline[0][1].category == "baseline"
    assert timeline[2][1].level == pytest.approx(200 / 42)


def test_clock_only_consulted_when_time_omitted():
    calls = []

    def clock():
        calls.append(1)
        return NOW

    tr = DoseTracker(CAFFEINE, body_weight=70, metabolism="typical", clock=clock)
    tr.get_current_level(NOW)
    tr.get_today_total(NOW)
    assert calls == []
    tr.get_current_level()
    assert calls == [1]


def test_mixed_timezone_awareness_rejected():
    from datetime import timezone
    tr = make_tracker()
    tr.add_dose(100, NOW)
    with pytest.raises(InvalidArgument):
        tr.add_dose(100, datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc))
    assert len(tr.events) == 1


def test_default_tracker_takes_profile_from_settings():
    from decayforge.domains.registry import get_profile
    tr = DoseTracker(clock=lambda: NOW)
    assert tr.profile is get_profile("caffeine")
    with pytest.raises(InvalidArgument):
        get_profile("tire-wear")


def test_level_cache_holds_only_the_last_query():
    ticks = iter(NOW + timedelta(seconds=i) for i in range(1000))
    tr = DoseTracker(CAFFEINE, body_weight=70, metabolism="typical", clock=lambda: next(ticks))
    tr.add_dose(100, NOW - timedelta(hours=1))
    for _ in range(998):
        level = tr.get_current_level()
    assert isinstance(tr._level_cache, tuple)
    assert tr._level_cache[1] == level == tr.current_level
    assert tr.get_current_level(tr._level_cache[0]) == level


def test_recommendations_follow_the_profile_passed_in():
    strict = dataclasses.replace(CAFFEINE, name="strict", daily_safe_limit=50.0,
                                 baseline_category="rested")
    tr = DoseTracker(strict, body_weight=70, metabolism="typical", clock=lambda: NOW)
    assert tr.get_physiological_state().category == "rested"
    assert tr.get_recommendations() == ["Good time for caffeine if needed"]

    tr.add_dose(60, NOW)
    assert any("daily limit (50mg)" in r for r in tr.get_recommendations())
    default = make_tracker()
    default.add_dose(60, NOW)
    assert not any("exceeded" in r for r in default.get_recommendations())
