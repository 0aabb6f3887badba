"""
Transformation models for calibration curves.
"""

from .registry import ModelRegistry, ModelKind, ModelVariant, IDENTITY_VARIANT
from .linear_models import fit_linear, evaluate_linear
from .spline_models import fit_spline, evaluate_spline
from .interpolated_models import fit_interpolated, evaluate_interpolated
from .lowess_models import fit_lowess, evaluate_lowess
from .registry import fit_identity, evaluate_identity
from .weighting import (
    apply_weight,
    remove_weight,
    clamp_to_range,
    weight_data,
    unweight_data,
    check_valid_weight,
    valid_x_weights,
    valid_y_weights,
)


# Register default models
def register_default_models():
    """Register all default models with the global registry."""
    registry = ModelRegistry()

    registry.register(ModelKind.IDENTITY, fit_identity, evaluate_identity)

    # Fitted in weighted space
    registry.register(ModelKind.LINEAR, fit_linear, evaluate_linear, weighted=True)

    registry.register(ModelKind.SPLINE, fit_spline, evaluate_spline)
    registry.register(ModelKind.INTERPOLATED, fit_interpolated, evaluate_interpolated)
    registry.register(ModelKind.LOWESS, fit_lowess, evaluate_lowess)

    return registry

# Auto-register on import
_default_registry = register_default_models()

__all__ = [
    'ModelRegistry',
    'ModelKind',
    'ModelVariant',
    'IDENTITY_VARIANT',
    'register_default_models',
    'apply_weight',
    'remove_weight',
    'clamp_to_range',
    'weight_data',
    'unweight_data',
    'check_valid_weight',
    'valid_x_weights',
    'valid_y_weights',
]
