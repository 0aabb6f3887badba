"""
B-spline transformation model.

Fits a smoothing least-squares B-spline. The knot vector and coefficients
are stored in the fitted parameters so evaluation is self-contained.
"""

import logging
from typing import Any, Dict

import numpy as np
from scipy.interpolate import BSpline, make_lsq_spline

from ..core.data_structures import DataPointSet
from ..core.exceptions import ConfigurationError, DataValidationError
from .interpolated_models import unique_nodes

logger = logging.getLogger(__name__)

EXTRAPOLATION_MODES = ('linear', 'b_spline', 'constant', 'global_linear')


def _num_interior_knots(x: np.ndarray, params: Dict[str, Any]) -> int:
    num_nodes = int(params.get('num_nodes', 5))
    wavelength = float(params.get('wavelength', 0.0))
    if num_nodes < 2 and wavelength > 0:
        num_nodes = max(int(np.ptp(x) / wavelength) + 1, 2)
    return max(num_nodes - 2, 0)


def _lsq_spline(x: np.ndarray, y: np.ndarray, k: int, n_interior: int) -> BSpline:
    """Fit with as many interior knots as the data support."""
    while True:
        interior = np.quantile(x, np.linspace(0.0, 1.0, n_interior + 2)[1:-1])
        t = np.r_[[x[0]] * (k + 1), interior, [x[-1]] * (k + 1)]
        try:
            return make_lsq_spline(x, y, t, k=k)
        except (ValueError, np.linalg.LinAlgError):
            if n_interior == 0:
                raise
            n_interior -= 1
            logger.debug("Reducing interior knots to %d", n_interior)


def fit_spline(data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fit a cubic least-squares B-spline.

    Parameters read from ``params``:
        num_nodes: Number of breakpoints including both ends (default 5);
            fewer nodes give more smoothing
        wavelength: Breakpoint spacing used when ``num_nodes`` < 2
        extrapolate: 'linear', 'b_spline', 'constant' or 'global_linear'
    """
    extrapolate = str(params.get('extrapolate', 'linear'))
    if extrapolate not in EXTRAPOLATION_MODES:
        raise ConfigurationError(f"Unknown spline extrapolation '{extrapolate}'")

    x, y = unique_nodes(np.array([p.x for p in data], dtype=np.float64),
                         np.array([p.y for p in data], dtype=np.float64))
    if x.size < 2:
        raise DataValidationError("Spline model needs at least 2 distinct x values")

    k = min(3, x.size - 1)
    n_interior = min(_num_interior_knots(x, params), x.size - k - 1)
    try:
        spline = _lsq_spline(x, y, k, n_interior)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise DataValidationError(f"Spline fit failed: {e}")

    derivative = spline.derivative()
    global_slope, global_intercept = np.polyfit(x, y, 1)

    return {
        'num_nodes': int(params.get('num_nodes', 5)),
        'wavelength': float(params.get('wavelength', 0.0)),
        'extrapolate': extrapolate,
        'knots': spline.t.tolist(),
        'coefficients': spline.c.tolist(),
        'degree': int(spline.k),
        'x_min': float(x[0]),
        'x_max': float(x[-1]),
        'y_min_bound': float(spline(x[0])),
        'y_max_bound': float(spline(x[-1])),
        'slope_min': float(derivative(x[0])),
        'slope_max': float(derivative(x[-1])),
        'global_slope': float(global_slope),
        'global_intercept': float(global_intercept),
    }


def evaluate_spline(value: float, params: Dict[str, Any]) -> float:
    x_min, x_max = float(params['x_min']), float(params['x_max'])
    extrapolate = params.get('extrapolate', 'linear')

    if x_min <= value <= x_max or extrapolate == 'b_spline':
        spline = BSpline(np.asarray(params['knots'], dtype=np.float64),
                         np.asarray(params['coefficients'], dtype=np.float64),
                         int(params['degree']), extrapolate=True)
        return float(spline(value))

    if extrapolate == 'global_linear':
        return float(params['global_slope']) * value + float(params['global_intercept'])

    if value < x_min:
        bound, y_bound, slope = x_min, float(params['y_min_bound']), float(params['slope_min'])
    else:
        bound, y_bound, slope = x_max, float(params['y_max_bound']), float(params['slope_max'])
    if extrapolate == 'constant':
        return y_bound
    return y_bound + slope * (value - bound)
