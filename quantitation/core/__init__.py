"""
Core module for the quantitation system.

This module provides data structures, configuration, interfaces and
exceptions shared by the models, analysis and data layers.
"""

from .config import CalibrationSearchConfig, RansacConfig
from .data_structures import (
    DataPoint,
    DataPointSet,
    Feature,
    FeatureGroup,
    FeatureMap,
    CalibrationPoint,
    CalibrationResult,
    QuantificationResult,
    QuantificationReport,
    BatchIssue,
    IssueCategory,
)
from .exceptions import (
    QuantitationError,
    DataValidationError,
    FileProcessingError,
    ConfigurationError,
    WeightDomainError,
    ArithmeticDegenerateError,
    CalibrationCancelledError,
    FitInfeasibleError,
)
from .interfaces import IStandardsLoader, IMethodStore

__all__ = [
    'CalibrationSearchConfig',
    'RansacConfig',
    'DataPoint',
    'DataPointSet',
    'Feature',
    'FeatureGroup',
    'FeatureMap',
    'CalibrationPoint',
    'CalibrationResult',
    'QuantificationResult',
    'QuantificationReport',
    'BatchIssue',
    'IssueCategory',
    'QuantitationError',
    'DataValidationError',
    'FileProcessingError',
    'ConfigurationError',
    'WeightDomainError',
    'ArithmeticDegenerateError',
    'CalibrationCancelledError',
    'FitInfeasibleError',
    'IStandardsLoader',
    'IMethodStore',
]
