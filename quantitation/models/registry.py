"""
Transformation model registry.

Each transformation model is a tag (``ModelKind``) paired with a ``fit``
and an ``evaluate`` function. Names are resolved against the fixed set of
tags; anything unrecognised falls back to the identity model.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from ..core.data_structures import DataPointSet

logger = logging.getLogger(__name__)

FitFunction = Callable[[DataPointSet, Dict[str, Any]], Dict[str, Any]]
EvaluateFunction = Callable[[float, Dict[str, Any]], float]


class ModelKind(str, Enum):
    """The supported transformation model variants."""

    IDENTITY = "identity"
    LINEAR = "linear"
    SPLINE = "spline"
    INTERPOLATED = "interpolated"
    LOWESS = "lowess"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional['ModelKind']:
        """
        Resolve a model name, accepting the long ``TransformationModel*`` forms.

        Returns:
            The matching kind, or None if the name is not recognised
        """
        key = (name or "").strip().lower()
        if key.startswith('transformationmodel'):
            key = key[len('transformationmodel'):] or 'identity'
        return _ALIASES.get(key)


_ALIASES = {
    'identity': ModelKind.IDENTITY,
    'linear': ModelKind.LINEAR,
    'spline': ModelKind.SPLINE,
    'bspline': ModelKind.SPLINE,
    'b_spline': ModelKind.SPLINE,
    'interpolated': ModelKind.INTERPOLATED,
    'lowess': ModelKind.LOWESS,
}


def as_bool(value: Any) -> bool:
    """Interpret a parameter value (possibly read from text) as a boolean."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def fit_identity(data: DataPointSet, params: Dict[str, Any]) -> Dict[str, Any]:
    """The identity model ignores data and parameters."""
    return {}


def evaluate_identity(value: float, params: Dict[str, Any]) -> float:
    return value


@dataclass(frozen=True)
class ModelVariant:
    """Fit/evaluate pair for one model kind."""

    kind: ModelKind
    fit: FitFunction
    evaluate: EvaluateFunction
    weighted: bool = False


IDENTITY_VARIANT = ModelVariant(ModelKind.IDENTITY, fit_identity, evaluate_identity)


class ModelRegistry:
    """Registry for managing available transformation models."""

    _instance = None

    def __new__(cls):
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._models = {}
        return cls._instance

    def register(self,
                 kind: ModelKind,
                 fit: FitFunction,
                 evaluate: EvaluateFunction,
                 weighted: bool = False):
        """
        Register a model variant.

        Args:
            kind: Model tag
            fit: Function fitting points to parameters
            evaluate: Function evaluating parameters at a value
            weighted: Whether the variant expects weighted input data
        """
        if not isinstance(kind, ModelKind):
            raise TypeError(f"{kind!r} is not a ModelKind")
        if not callable(fit) or not callable(evaluate):
            raise TypeError("fit and evaluate must be callable")

        self._models[kind] = ModelVariant(kind, fit, evaluate, weighted)

    def get_variant(self, kind: ModelKind) -> ModelVariant:
        """Get model variant by kind."""
        if kind not in self._models:
            raise KeyError(f"Model '{kind.value}' not found in registry")
        return self._models[kind]

    def resolve(self, name: Optional[str]) -> Tuple[ModelVariant, bool]:
        """
        Resolve a model name to a registered variant.

        Unknown or unregistered names resolve to the identity model.

        Returns:
            Tuple of (variant, recognised)
        """
        kind = ModelKind.from_name(name)
        if kind is None or kind not in self._models:
            logger.warning("Transformation model '%s' is not supported, "
                           "the identity model will be used", name)
            return IDENTITY_VARIANT, False
        return self._models[kind], True

    def list_models(self) -> List[str]:
        """List available model names."""
        return [kind.value for kind in self._models]

    def has_model(self, name: Optional[str]) -> bool:
        """Check if a model name resolves to a registered variant."""
        kind = ModelKind.from_name(name)
        return kind is not None and kind in self._models
