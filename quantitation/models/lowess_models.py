"""
LOWESS transformation model.

The data are smoothed with locally weighted regression and the smoothed
curve is then treated as an interpolated model.
"""

from typing import Any, Dict

import numpy as np
from statsmodels.nonparametric.smoothers_lowess import lowess

from ..core.data_structures import DataPointSet
from ..core.exceptions import DataValidationError
from .interpolated_models import evaluate_interpolated, fit_nodes


def fit_lowess(data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Smooth the data with LOWESS and interpolate the smoothed values.

    Parameters read from ``params``:
        span: Fraction of points used for each local fit (default 2/3)
        num_iterations: Robustifying iterations (default 3)
        delta: Distance within which linear interpolation replaces a local
            fit; negative means 1% of the x range (default -1)
        interpolation_type, extrapolation_type: see the interpolated model
    """
    if len(data) < 2:
        raise DataValidationError(f"LOWESS model needs at least 2 data points, got {len(data)}")

    span = float(params.get('span', 2.0 / 3.0))
    num_iterations = int(params.get('num_iterations', 3))
    delta = float(params.get('delta', -1.0))

    x = np.array([p.x for p in data], dtype=np.float64)
    y = np.array([p.y for p in data], dtype=np.float64)
    if delta < 0:
        delta = 0.01 * float(np.ptp(x))

    smoothed = lowess(y, x, frac=span, it=num_iterations, delta=delta, return_sorted=True)
    if not np.all(np.isfinite(smoothed)):
        raise DataValidationError("LOWESS smoothing produced non-finite values, increase span")

    node_params = {
        'interpolation_type': params.get('interpolation_type', 'cspline'),
        'extrapolation_type': params.get('extrapolation_type', 'four-point-linear'),
    }
    fitted = fit_nodes(smoothed[:, 0], smoothed[:, 1], node_params)
    fitted.update({'span': span, 'num_iterations': num_iterations, 'delta': delta})
    return fitted


def evaluate_lowess(value: float, params: Dict[str, Any]) -> float:
    return evaluate_interpolated(value, params)
