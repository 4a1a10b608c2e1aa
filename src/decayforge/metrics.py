# src/decayforge/metrics.py
from typing import Sequence, Tuple

import numpy as np
from scipy import stats

from .errors import InvalidArgument
from .helpers import validate_non_negative, validate_number
from .types import ConfidenceInterval, DataPoint, LinearizationResult

# ln(value) vs time with R^2 above this is accepted as exponential decay
EXPONENTIAL_R2_THRESHOLD = 0.85


def calculate_r_squared(observed: Sequence[float], predicted: Sequence[float]) -> float:
    """
    Coefficient of determination, 1 - SS_res / SS_tot.

    When every observed value is identical SS_tot is 0 and the result is
    undefined: nan for a perfect prediction, -inf otherwise. It is returned
    as is rather than replaced by a sentinel.
    """
    if len(observed) != len(predicted):
        raise InvalidArgument(
            f"observed and predicted must have the same length ({len(observed)} != {len(predicted)})."
        )
    if len(observed) == 0:
        raise InvalidArgument("observed and predicted must not be empty.")

    y = np.asarray(observed, dtype=float)
    y_hat = np.asarray(predicted, dtype=float)
    ss_total = float(np.sum((y - y.mean()) ** 2))
    ss_residual = float(np.sum((y - y_hat) ** 2))
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(1.0 - np.float64(ss_residual) / np.float64(ss_total))


def linearization_test(data: Sequence[DataPoint]) -> LinearizationResult:
    """
    Check whether data follows exponential decay.

    If N(t) = N0 e^(-k t) then ln N is linear in t with slope -k and
    intercept ln N0. Fits ordinary least squares to (time, ln value).

    Raises InvalidArgument for non-positive values (log undefined) or
    fewer than two distinct time points.
    """
    t = np.asarray([validate_number("time", p.time) for p in data], dtype=float)
    v = np.asarray([validate_number("value", p.value) for p in data], dtype=float)
    if np.any(v <= 0):
        raise InvalidArgument("linearization_test requires strictly positive values.")
    if np.unique(t).size < 2:
        raise InvalidArgument("linearization_test requires at least two distinct time points.")

    fit = stats.linregress(t, np.log(v))
    r2 = float(fit.rvalue) ** 2
    return LinearizationResult(
        rate_constant=-float(fit.slope),
        initial_value=float(np.exp(fit.intercept)),
        r_squared=r2,
        is_exponential=r2 > EXPONENTIAL_R2_THRESHOLD,
    )


def find_rate_from_points(point1: DataPoint, point2: DataPoint) -> float:
    """Decay constant through two observations: ln(v1 / v2) / (t2 - t1)."""
    dt = point2.time - point1.time
    if not (dt > 0):
        raise InvalidArgument(
            f"point2 must be strictly after point1 (t1={point1.time}, t2={point2.time})."
        )
    if not (point1.value > 0 and point2.value > 0):
        raise InvalidArgument("Both point values must be > 0.")
    return float(np.log(point1.value / point2.value) / dt)


def rate_confidence_interval(rate: float, standard_error: float,
                             confidence: float = 0.95) -> ConfidenceInterval:
    """
    Normal-approximation interval rate +/- z * SE, with z the two-sided
    quantile for `confidence` (1.96 for 0.95).
    """
    standard_error = validate_non_negative("standard_error", standard_error)
    if not (0 < confidence < 1):
        raise InvalidArgument(f"confidence must be in (0, 1) (got {confidence}).")
    z = float(stats.norm.ppf(0.5 + confidence / 2.0))
    return ConfidenceInterval(lower=rate - z * standard_error,
                              upper=rate + z * standard_error,
                              confidence=confidence)


def cmax_tmax(t: np.ndarray, C: np.ndarray) -> Tuple[float, float]:
    """Return peak level and the time it occurs."""
    idx = np.argmax(C)
    return float(C[idx]), float(t[idx])


def auc_trapz(t: np.ndarray, C: np.ndarray) -> float:
    """Area under the level curve via the trapezoidal rule (level * h)."""
    return float(np.trapezoid(C, t))
