# src/decayforge/simulate.py
from datetime import datetime, timedelta

import numpy as np

from .helpers import validate_non_negative, validate_positive
from .metrics import auc_trapz, cmax_tmax
from .tracker import DoseTracker
from .types import TimelineSummary


def run_timeline(tracker: DoseTracker, start: datetime, hours: float = 24.0,
                 resolution_minutes: float = 15.0):
    """
    Sample the tracker's superposed level on a regular grid.

    Returns:
      t : array of hours since `start`
      C : array of levels (concentration)
    """
    hours = validate_non_negative("hours", hours)
    resolution_minutes = validate_positive("resolution_minutes", resolution_minutes)
    n = int(hours * 60 // resolution_minutes)
    t = np.arange(n + 1, dtype=float) * (resolution_minutes / 60.0)
    C = np.array([tracker.get_current_level(start + timedelta(hours=float(h))) for h in t], dtype=float)
    return t, C


def summarize_timeline(t: np.ndarray, C: np.ndarray) -> TimelineSummary:
    """Peak level, when it happens, and the exposure (AUC) of a sampled timeline."""
    peak, peak_t = cmax_tmax(t, C)
    return TimelineSummary(peak_level=peak, peak_time_h=peak_t, auc=auc_trapz(t, C))
