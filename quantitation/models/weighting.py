"""
Weighting transforms applied to calibration data before fitting.

A weight here is a transform of the x or y values (``1/x``, ``1/x2``,
``ln(x)`` and their y counterparts). Data are weighted before a fit and the
fitted output is unweighted after evaluation. Values near zero are clamped
to a lower bound so the transforms stay finite; unweighting does not undo
that clamping.
"""

import logging
import math
from typing import Any, Dict, List, Tuple

import numpy as np

from ..core.data_structures import DataPoint, DataPointSet
from ..core.exceptions import ConfigurationError, WeightDomainError

logger = logging.getLogger(__name__)

X_LOWER_BOUND = 1e-5
Y_LOWER_BOUND = 1e-8

DEFAULT_DATUM_MIN = 1e-15
DEFAULT_DATUM_MAX = 1e15

IDENTITY_WEIGHTS = ("", "none")

_WEIGHT_KINDS = {
    'ln({})': 'ln',
    '1/{}': 'inv',
    '1/{}2': 'inv2',
}


def valid_x_weights() -> List[str]:
    return ["", "none", "ln(x)", "1/x", "1/x2"]


def valid_y_weights() -> List[str]:
    return ["", "none", "ln(y)", "1/y", "1/y2"]


def check_valid_weight(weight: str, valid_weights: List[str]) -> bool:
    """Check whether ``weight`` is one of ``valid_weights``."""
    return weight in valid_weights


def _lower_bound(axis: str) -> float:
    if axis == 'x':
        return X_LOWER_BOUND
    if axis == 'y':
        return Y_LOWER_BOUND
    raise ConfigurationError(f"Unknown axis '{axis}', expected 'x' or 'y'")


def _parse_weight(weight: str, axis: str) -> str:
    """Resolve a weight string to its transform kind for the given axis."""
    _lower_bound(axis)
    weight = (weight or "").strip()
    if weight.lower() in IDENTITY_WEIGHTS:
        return 'none'
    for pattern, kind in _WEIGHT_KINDS.items():
        if weight == pattern.format(axis):
            return kind
    raise ConfigurationError(f"Weight '{weight}' is not supported for the {axis} axis")


def clamp_to_range(value: float, datum_min: float, datum_max: float) -> float:
    """Clamp ``value`` into ``[datum_min, datum_max]``."""
    if value < datum_min:
        return datum_min
    if value > datum_max:
        return datum_max
    return value


def apply_weight(value: float, axis: str, weight: str) -> float:
    """
    Apply a weighting transform to a single value.

    Args:
        value: Value to transform
        axis: 'x' or 'y', selects the near-zero clamp bound
        weight: Weight name ('', 'none', '1/x', '1/x2', 'ln(x)' or y forms)

    Returns:
        Weighted value

    Raises:
        WeightDomainError: If a negative value is passed to a log weight
        ConfigurationError: If the weight is unknown for the axis
    """
    kind = _parse_weight(weight, axis)
    value = float(value)
    if kind == 'none':
        return value

    bound = _lower_bound(axis)
    if kind == 'ln':
        if value < 0:
            raise WeightDomainError(value, weight)
        if axis == 'x' and value < bound:
            value = bound
        with np.errstate(divide='ignore'):
            return float(np.log(value))

    if abs(value) < bound:
        value = math.copysign(bound, value)
    if kind == 'inv':
        return 1.0 / abs(value)
    return 1.0 / (value * value)


def remove_weight(value: float, axis: str, weight: str) -> float:
    """
    Reverse a weighting transform for a single value.

    Clamping performed by ``apply_weight`` is not reversed.
    """
    kind = _parse_weight(weight, axis)
    value = float(value)
    if kind == 'none':
        return value

    with np.errstate(divide='ignore', over='ignore'):
        if kind == 'ln':
            return float(np.exp(value))
        if kind == 'inv':
            return float(np.divide(1.0, abs(value)))
        return float(np.sqrt(np.divide(1.0, abs(value))))


def get_weights(params: Dict[str, Any]) -> Tuple[str, str]:
    """
    Read the x and y weights from model parameters.

    Unsupported weights are logged and replaced by no weighting.
    """
    weights = []
    for axis, valid in (('x', valid_x_weights()), ('y', valid_y_weights())):
        weight = params.get(f'{axis}_weight', "") or ""
        if not check_valid_weight(weight, valid):
            logger.warning("%s weight '%s' is not supported, no weighting will be applied",
                           axis, weight)
            weight = ""
        weights.append("" if weight == "none" else weight)
    return weights[0], weights[1]


def _datum_range(params: Dict[str, Any], axis: str) -> Tuple[float, float]:
    return (float(params.get(f'{axis}_datum_min', DEFAULT_DATUM_MIN)),
            float(params.get(f'{axis}_datum_max', DEFAULT_DATUM_MAX)))


def weight_data(data: DataPointSet, params: Dict[str, Any]) -> DataPointSet:
    """
    Weight every point of a data set.

    Values are clamped to the configured datum range before a non-identity
    weight is applied.

    Args:
        data: Points to weight
        params: Model parameters holding ``x_weight``/``y_weight`` and the
            optional ``{x,y}_datum_{min,max}`` bounds

    Returns:
        New list of weighted points
    """
    x_weight, y_weight = get_weights(params)
    if not x_weight and not y_weight:
        return list(data)

    x_min, x_max = _datum_range(params, 'x')
    y_min, y_max = _datum_range(params, 'y')

    weighted = []
    for point in data:
        x, y = point.x, point.y
        if x_weight:
            x = apply_weight(clamp_to_range(x, x_min, x_max), 'x', x_weight)
        if y_weight:
            y = apply_weight(clamp_to_range(y, y_min, y_max), 'y', y_weight)
        weighted.append(DataPoint(x, y, point.note))
    return weighted


def unweight_data(data: DataPointSet, params: Dict[str, Any]) -> DataPointSet:
    """Reverse ``weight_data`` on every point of a data set."""
    x_weight, y_weight = get_weights(params)
    if not x_weight and not y_weight:
        return list(data)

    return [
        DataPoint(remove_weight(p.x, 'x', x_weight) if x_weight else p.x,
                  remove_weight(p.y, 'y', y_weight) if y_weight else p.y,
                  p.note)
        for p in data
    ]
