"""
Calibration method descriptor for a single analyte.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from ..core.data_structures import DataPointSet
from ..models import ModelRegistry
from ..models.weighting import (
    DEFAULT_DATUM_MAX,
    DEFAULT_DATUM_MIN,
    apply_weight,
    clamp_to_range,
    get_weights,
    remove_weight,
    weight_data,
)

logger = logging.getLogger(__name__)

WEIGHT_PARAM_KEYS = ('x_weight', 'y_weight', 'x_datum_min', 'x_datum_max',
                     'y_datum_min', 'y_datum_max')


@dataclass
class CalibrationMethod:
    """
    Calibration configuration of one analyte (component).

    Holds the limits of detection/quantitation, the internal standard the
    analyte is normalised by, and the transformation model that maps an
    intensity ratio to a concentration ratio.

    ``correlation_coefficient`` holds the squared Pearson correlation of the
    accepted calibration points.
    """

    component_name: str = ""
    is_name: str = ""
    feature_name: str = ""
    concentration_units: str = ""
    llod: float = 0.0
    ulod: float = 0.0
    lloq: float = 0.0
    uloq: float = 0.0
    actual_concentration: float = 0.0
    transformation_model: str = "identity"
    transformation_model_params: Dict[str, Any] = field(default_factory=dict)
    n_points: int = 0
    correlation_coefficient: float = 0.0

    @property
    def has_internal_standard(self) -> bool:
        return bool(self.is_name)

    @property
    def has_supported_model(self) -> bool:
        """Whether ``transformation_model`` names a registered model."""
        return ModelRegistry().has_model(self.transformation_model)

    def check_lod(self, value: float) -> bool:
        """Check whether ``value`` lies within the limits of detection (inclusive)."""
        return self.llod <= value <= self.ulod

    def check_loq(self, value: float) -> bool:
        """Check whether ``value`` lies within the limits of quantitation (inclusive)."""
        return self.lloq <= value <= self.uloq

    def fit(self, model_name: str, data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fit the named transformation model.

        Variants that work in weighted space get their data weighted first and
        the weighting settings are carried into the returned parameters.
        Unknown model names fall back to the identity model.

        Args:
            model_name: Transformation model name
            data: Points to fit
            params: Model parameters

        Returns:
            Fitted transformation model parameters
        """
        variant, _ = ModelRegistry().resolve(model_name)

        if not variant.weighted:
            if any(params.get(key) for key in ('x_weight', 'y_weight')):
                logger.warning("Model '%s' does not support weighting, weights are ignored for %s",
                               variant.kind.value, self.component_name or "<unnamed>")
            return variant.fit(data, params)

        fitted = variant.fit(weight_data(data, params), params)
        fitted.update({key: params[key] for key in WEIGHT_PARAM_KEYS if key in params})
        return fitted

    def evaluate(self, model_name: str, value: float, params: Dict[str, Any]) -> float:
        """
        Evaluate the named transformation model at ``value``.

        Unknown model names return ``value`` unchanged.
        """
        variant, _ = ModelRegistry().resolve(model_name)
        if not variant.weighted:
            return variant.evaluate(value, params)

        x_weight, y_weight = get_weights(params)
        x = value
        if x_weight:
            x = apply_weight(clamp_to_range(x,
                                            float(params.get('x_datum_min', DEFAULT_DATUM_MIN)),
                                            float(params.get('x_datum_max', DEFAULT_DATUM_MAX))),
                             'x', x_weight)
        y = variant.evaluate(x, params)
        return remove_weight(y, 'y', y_weight) if y_weight else y

    def apply(self, value: float) -> float:
        """Evaluate this method's own fitted transformation model."""
        return self.evaluate(self.transformation_model, value, self.transformation_model_params)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'component_name': self.component_name,
            'IS_name': self.is_name,
            'feature_name': self.feature_name,
            'concentration_units': self.concentration_units,
            'llod': self.llod,
            'ulod': self.ulod,
            'lloq': self.lloq,
            'uloq': self.uloq,
            'correlation_coefficient': self.correlation_coefficient,
            'actual_concentration': self.actual_concentration,
            'n_points': self.n_points,
            'transformation_model': self.transformation_model,
            'transformation_model_params': dict(self.transformation_model_params),
        }

    def __repr__(self) -> str:
        return (f"CalibrationMethod(component={self.component_name}, IS={self.is_name or None}, "
                f"model={self.transformation_model}, n_points={self.n_points})")
