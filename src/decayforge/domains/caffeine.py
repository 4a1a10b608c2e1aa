# src/decayforge/domains/caffeine.py
"""
Caffeine: one-compartment, first-order elimination.

    C(t) = (dose / Vd) * exp(-k t),   Vd = 0.6 L/kg * body weight

Half-lives of 2 / 5 / 10 h cover fast, typical and slow metabolizers.
Threshold bands are body load in mg (concentration * Vd).
"""
from ..types import DailyTotal, DomainProfile, PhysiologicalState, SleepForecast, ThresholdBand

# mg per serving
SOURCES = {
    "espresso": 64.0,        # single 30 ml shot
    "coffee": 95.0,          # 8 oz cup
    "tea_black": 47.0,       # 8 oz cup
    "tea_green": 28.0,       # 8 oz cup
    "energy_drink": 80.0,    # 8 oz can
    "cola": 34.0,            # 12 oz can
    "dark_chocolate": 12.0,  # 1 oz
}

BANDS = (
    ThresholdBand(1.0, "minimal", "Trace caffeine - negligible effects"),
    ThresholdBand(10.0, "mild", "Low caffeine - mild stimulation, may affect sleep"),
    ThresholdBand(50.0, "alert", "Moderate caffeine - increased alertness and focus"),
    ThresholdBand(150.0, "jittery", "High caffeine - anxiety, jitters, rapid heartbeat likely"),
)


def recommend(profile: DomainProfile, state: PhysiologicalState, today: DailyTotal,
              sleep: SleepForecast) -> list[str]:
    """Advice driven by the profile's bands and daily safe limit."""
    top = profile.bands[-1].category if profile.bands else None
    low = profile.bands[0].category if profile.bands else None
    recs: list[str] = []
    if top is not None and state.category == top:
        recs.append("High caffeine level - consider waiting before next dose")
        recs.append("Drink water to help with metabolism")
    if today.total > profile.daily_safe_limit:
        recs.append(f"You've exceeded the recommended daily limit ({profile.daily_safe_limit:g}mg)")
    if not sleep.already_below:
        recs.append(f"Wait {round(sleep.hours, 1)} hours before sleep for best rest")
    if state.category in (profile.baseline_category, low):
        recs.append("Good time for caffeine if needed")
    return recs


CAFFEINE = DomainProfile(
    name="caffeine",
    half_lives={"fast": 2.0, "typical": 5.0, "slow": 10.0},
    volume_per_kg=0.6,
    sources=SOURCES,
    bands=BANDS,
    baseline_category="baseline",
    baseline_description="No significant caffeine effects",
    sleep_threshold=10.0,
    daily_safe_limit=400.0,        # FDA guidance for healthy adults
    daily_excessive_limit=600.0,
    reference_peak_amount=200.0,   # about two cups of coffee
    default_curve_dose=100.0,
    recommend=recommend,
)
