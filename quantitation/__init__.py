"""
Absolute quantitation of analytes from calibration standards.

Fits calibration curves (linear, B-spline, interpolated and LOWESS
transformation models with optional axis weighting) relating intensity
ratios to concentration ratios, trims outlying standards and applies the
curves to unknown samples.
"""

import logging

from .core import (
    CalibrationSearchConfig,
    RansacConfig,
    DataPoint,
    Feature,
    FeatureGroup,
    CalibrationPoint,
    CalibrationResult,
    QuantificationResult,
    QuantificationReport,
    BatchIssue,
    IssueCategory,
    QuantitationError,
    ConfigurationError,
    WeightDomainError,
    FitInfeasibleError,
    ArithmeticDegenerateError,
)
from .models import ModelRegistry, ModelKind
from .analysis import (
    AbsoluteQuantitation,
    CalibrationMethod,
    QuantitationContext,
    remove_outliers_ransac,
)
from .data import CSVStandardsLoader, MethodFile
from .utils import ResultsExporter

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'CalibrationSearchConfig',
    'RansacConfig',
    'DataPoint',
    'Feature',
    'FeatureGroup',
    'CalibrationPoint',
    'CalibrationResult',
    'QuantificationResult',
    'QuantificationReport',
    'BatchIssue',
    'IssueCategory',
    'QuantitationError',
    'ConfigurationError',
    'WeightDomainError',
    'FitInfeasibleError',
    'ArithmeticDegenerateError',
    'ModelRegistry',
    'ModelKind',
    'AbsoluteQuantitation',
    'CalibrationMethod',
    'QuantitationContext',
    'remove_outliers_ransac',
    'CSVStandardsLoader',
    'MethodFile',
    'ResultsExporter',
]
