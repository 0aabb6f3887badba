"""
Linear transformation model.
"""

from typing import Any, Dict

import numpy as np
from sklearn.linear_model import LinearRegression

from ..core.data_structures import DataPointSet
from ..core.exceptions import DataValidationError
from .registry import as_bool


def fit_linear(data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fit ``y = slope * x + intercept`` by least squares.

    With ``symmetric_regression`` the fit is done on ``y - x`` versus
    ``y + x`` and converted back, treating both axes as noisy. Without data
    the ``slope`` and ``intercept`` in ``params`` are taken as given.

    Args:
        data: Points to fit (already weighted)
        params: Model parameters

    Returns:
        Fitted parameters with ``slope``, ``intercept`` and
        ``symmetric_regression``
    """
    symmetric = as_bool(params.get('symmetric_regression', False))

    if not data:
        if 'slope' in params and 'intercept' in params:
            return {
                'slope': float(params['slope']),
                'intercept': float(params['intercept']),
                'symmetric_regression': symmetric,
            }
        raise DataValidationError("Linear model needs data points or a slope and intercept")

    if len(data) < 2:
        raise DataValidationError(f"Linear model needs at least 2 data points, got {len(data)}")

    x = np.array([p.x for p in data], dtype=np.float64)
    y = np.array([p.y for p in data], dtype=np.float64)
    if symmetric:
        x, y = y + x, y - x

    if np.ptp(x) == 0:
        raise DataValidationError("Cannot compute regression: all x values are identical")

    reg = LinearRegression().fit(x.reshape(-1, 1), y)
    slope = float(reg.coef_[0])
    intercept = float(reg.intercept_)

    if symmetric:
        if slope == 1.0:
            raise DataValidationError("Symmetric regression produced a vertical line")
        slope, intercept = (1.0 + slope) / (1.0 - slope), intercept / (1.0 - slope)

    return {'slope': slope, 'intercept': intercept, 'symmetric_regression': symmetric}


def evaluate_linear(value: float, params: Dict[str, Any]) -> float:
    return float(params['slope']) * value + float(params['intercept'])
