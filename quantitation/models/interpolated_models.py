"""
Interpolated transformation model.

The fitted parameters hold the node table itself, so the model can be
evaluated without the fitted data. Between the first and last node the
nodes are interpolated; outside that range a straight line is used.
"""

from typing import Any, Dict, Sequence, Tuple

import numpy as np
from scipy.interpolate import Akima1DInterpolator, CubicSpline

from ..core.data_structures import DataPointSet
from ..core.exceptions import ConfigurationError, DataValidationError

INTERPOLATION_TYPES = ('linear', 'cspline', 'akima')
EXTRAPOLATION_TYPES = ('two-point-linear', 'four-point-linear', 'global-linear')


def _interpolation_settings(params: Dict[str, Any]) -> Tuple[str, str]:
    interpolation = str(params.get('interpolation_type', 'cspline'))
    extrapolation = str(params.get('extrapolation_type', 'two-point-linear'))
    if interpolation not in INTERPOLATION_TYPES:
        raise ConfigurationError(f"Unknown interpolation_type '{interpolation}'")
    if extrapolation not in EXTRAPOLATION_TYPES:
        raise ConfigurationError(f"Unknown extrapolation_type '{extrapolation}'")
    return interpolation, extrapolation


def unique_nodes(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Sort by x and average the y values of duplicate x."""
    order = np.argsort(x, kind='stable')
    x_sorted, y_sorted = x[order], y[order]
    x_unique, inverse = np.unique(x_sorted, return_inverse=True)
    y_unique = np.bincount(inverse, weights=y_sorted) / np.bincount(inverse)
    return x_unique, y_unique


def _line(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
    slope, intercept = np.polyfit(x, y, 1)
    return float(slope), float(intercept)


def fit_nodes(x: Sequence[float], y: Sequence[float], params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build interpolated-model parameters from raw node coordinates.

    Args:
        x: Node x coordinates (any order, duplicates allowed)
        y: Node y coordinates
        params: Model parameters with ``interpolation_type`` and
            ``extrapolation_type``

    Returns:
        Fitted parameters including the node table and the extrapolation
        lines on both sides
    """
    interpolation, extrapolation = _interpolation_settings(params)
    x_nodes, y_nodes = unique_nodes(np.asarray(x, dtype=np.float64),
                                     np.asarray(y, dtype=np.float64))
    if x_nodes.size < 2:
        raise DataValidationError("Interpolated model needs at least 2 distinct x values")

    if extrapolation == 'two-point-linear':
        left = _line(x_nodes[:2], y_nodes[:2])
        right = _line(x_nodes[-2:], y_nodes[-2:])
    elif extrapolation == 'four-point-linear':
        left = _line(x_nodes[:4], y_nodes[:4])
        right = _line(x_nodes[-4:], y_nodes[-4:])
    else:
        left = right = _line(x_nodes, y_nodes)

    return {
        'interpolation_type': interpolation,
        'extrapolation_type': extrapolation,
        'x': x_nodes.tolist(),
        'y': y_nodes.tolist(),
        'left_slope': left[0],
        'left_intercept': left[1],
        'right_slope': right[0],
        'right_intercept': right[1],
    }


def fit_interpolated(data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
    """Interpolate between the data points."""
    return fit_nodes([p.x for p in data], [p.y for p in data], params)


def evaluate_interpolated(value: float, params: Dict[str, Any]) -> float:
    x_nodes = np.asarray(params['x'], dtype=np.float64)
    y_nodes = np.asarray(params['y'], dtype=np.float64)

    if value < x_nodes[0]:
        return float(params['left_slope']) * value + float(params['left_intercept'])
    if value > x_nodes[-1]:
        return float(params['right_slope']) * value + float(params['right_intercept'])

    interpolation = params.get('interpolation_type', 'cspline')
    if interpolation == 'linear' or x_nodes.size < 3:
        return float(np.interp(value, x_nodes, y_nodes))
    if interpolation == 'cspline':
        return float(CubicSpline(x_nodes, y_nodes, bc_type='natural')(value))
    return float(Akima1DInterpolator(x_nodes, y_nodes)(value))
