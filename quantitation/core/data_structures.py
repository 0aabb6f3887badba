"""
Core data structures for calibration and quantitation.

Provides lightweight containers for calibration points, measured features
and the results produced by fitting and quantifying them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any, Iterator
import math

from .exceptions import ArithmeticDegenerateError, DataValidationError


@dataclass(frozen=True, order=True)
class DataPoint:
    """A single (x, y) coordinate pair with an optional note."""

    x: float
    y: float
    note: str = ""

    def __post_init__(self):
        """Validate that both coordinates are finite."""
        x, y = float(self.x), float(self.y)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise DataValidationError(f"Data points must be finite, got ({self.x}, {self.y})")
        object.__setattr__(self, 'x', x)
        object.__setattr__(self, 'y', y)

    def as_tuple(self):
        return (self.x, self.y)


DataPointSet = List[DataPoint]


@dataclass
class Feature:
    """A measured sub-feature (transition) holding named values."""

    native_id: str
    values: Dict[str, Any] = field(default_factory=dict)

    def has_value(self, key: str) -> bool:
        return key in self.values

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self.values[key] = value

    def __contains__(self, key: str) -> bool:
        return self.has_value(key)

    def __repr__(self) -> str:
        return f"Feature(native_id='{self.native_id}', values={self.values})"


@dataclass
class FeatureGroup:
    """A group of sub-features measured together (e.g. one peptide/metabolite)."""

    group_id: str
    subordinates: List[Feature] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)

    def index_of(self, native_id: str) -> Optional[int]:
        """Return the position of the first sub-feature with ``native_id``."""
        for i, feature in enumerate(self.subordinates):
            if feature.native_id == native_id:
                return i
        return None

    def find(self, native_id: str) -> Optional[Feature]:
        idx = self.index_of(native_id)
        return None if idx is None else self.subordinates[idx]

    def set_value(self, key: str, value: Any) -> None:
        self.values[key] = value

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.subordinates)

    def __len__(self) -> int:
        return len(self.subordinates)


# A sample: ordered feature groups in their natural iteration order
FeatureMap = List[FeatureGroup]


@dataclass(frozen=True)
class CalibrationPoint:
    """One standard measurement of an analyte and its internal standard."""

    component_name: str
    feature: Feature
    actual_concentration: float
    is_component_name: str = ""
    is_feature: Optional[Feature] = None
    is_actual_concentration: Optional[float] = None
    concentration_units: str = ""
    sample_name: str = ""

    @property
    def actual_concentration_ratio(self) -> float:
        """
        Known analyte concentration normalised by the internal standard.

        Standards without an internal standard use the raw concentration.
        """
        if not self.is_component_name or self.is_actual_concentration is None:
            return float(self.actual_concentration)
        if self.is_actual_concentration == 0:
            raise ArithmeticDegenerateError(
                f"Internal standard {self.is_component_name} of {self.component_name} "
                f"has zero actual concentration"
            )
        return float(self.actual_concentration) / float(self.is_actual_concentration)


class IssueCategory(str, Enum):
    """Categories of per-analyte problems reported at the end of a batch."""

    CONFIGURATION_DEGRADED = "configuration_degraded"
    DOMAIN_ERROR = "domain_error"
    FIT_INFEASIBLE = "fit_infeasible"
    ARITHMETIC_DEGENERATE = "arithmetic_degenerate"


@dataclass(frozen=True)
class BatchIssue:
    """A non-fatal problem encountered while processing a batch."""

    category: IssueCategory
    message: str
    component_name: str = ""
    sample_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'component_name': self.component_name,
            'sample_name': self.sample_name,
            'message': self.message,
        }


@dataclass(frozen=True)
class QuantificationResult:
    """Calculated concentration of one analyte in one unknown sample."""

    component_name: str
    calculated_concentration: Optional[float]
    concentration_units: str = ""
    group_id: str = ""
    sample_name: str = ""
    bias: Optional[float] = None
    within_lod: Optional[bool] = None
    within_loq: Optional[bool] = None

    @property
    def is_computed(self) -> bool:
        return self.calculated_concentration is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sample_name': self.sample_name,
            'group_id': self.group_id,
            'component_name': self.component_name,
            'calculated_concentration': self.calculated_concentration,
            'concentration_units': self.concentration_units,
            'bias': self.bias,
            'within_lod': self.within_lod,
            'within_loq': self.within_loq,
        }


@dataclass
class QuantificationReport:
    """Results and issues collected over a quantification run."""

    results: List[QuantificationResult] = field(default_factory=list)
    issues: List[BatchIssue] = field(default_factory=list)

    def computed(self) -> List[QuantificationResult]:
        return [r for r in self.results if r.is_computed]

    def uncomputed(self) -> List[QuantificationResult]:
        return [r for r in self.results if not r.is_computed]

    def extend(self, other: 'QuantificationReport') -> None:
        self.results.extend(other.results)
        self.issues.extend(other.issues)

    def summary(self) -> Dict[str, Any]:
        """Get counts of computed results and issues by category."""
        by_category: Dict[str, int] = {}
        for issue in self.issues:
            by_category[issue.category.value] = by_category.get(issue.category.value, 0) + 1
        return {
            'n_results': len(self.results),
            'n_computed': len(self.computed()),
            'n_uncomputed': len(self.uncomputed()),
            'issues': by_category,
        }

    def __repr__(self) -> str:
        return (f"QuantificationReport(results={len(self.results)}, "
                f"computed={len(self.computed())}, issues={len(self.issues)})")


@dataclass
class CalibrationResult:
    """Outcome of fitting a calibration curve for a single analyte."""

    component_name: str
    transformation_model: str
    transformation_model_params: Dict[str, Any]
    points: List[CalibrationPoint]
    biases: List[float]
    r2: float
    excluded_points: List[CalibrationPoint] = field(default_factory=list)

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def max_bias(self) -> float:
        return max(self.biases) if self.biases else float('nan')

    @property
    def coverage(self) -> float:
        total = len(self.points) + len(self.excluded_points)
        return len(self.points) / total if total else 0.0

    def __repr__(self) -> str:
        return (f"CalibrationResult({self.component_name}, model={self.transformation_model}, "
                f"n_points={self.n_points}, R²={self.r2:.4f})")
