"""
Custom exceptions for the quantitation system.
"""

from typing import Any, Dict, List, Optional


class QuantitationError(Exception):
    """Base exception for quantitation-related errors."""
    pass


class DataValidationError(QuantitationError):
    """Raised when data validation fails."""
    pass


class FileProcessingError(QuantitationError):
    """Raised when file processing encounters an error."""
    pass


class ConfigurationError(QuantitationError, ValueError):
    """Raised when configuration is invalid."""
    pass


class WeightDomainError(QuantitationError, ValueError):
    """Raised when a value lies outside the domain of a weighting transform."""

    def __init__(self, value: float, weight: str):
        self.value = value
        self.weight = weight
        super().__init__(f"Value {value!r} is outside the domain of weight '{weight}'")


class ArithmeticDegenerateError(QuantitationError, ZeroDivisionError):
    """Raised when a calculation degenerates into a division by zero."""
    pass


class CalibrationCancelledError(QuantitationError):
    """Raised when a calibration search is cancelled between iterations."""
    pass


class FitInfeasibleError(QuantitationError):
    """
    Raised when a robust search cannot satisfy its acceptance thresholds.

    Attributes:
        thresholds: The thresholds that were attempted
        achieved: The best values that were reached, where known
        unmet: Names of the thresholds that were not satisfied
        component_name: Analyte the search was run for, if any
    """

    def __init__(self,
                 message: str,
                 thresholds: Optional[Dict[str, Any]] = None,
                 achieved: Optional[Dict[str, Any]] = None,
                 unmet: Optional[List[str]] = None,
                 component_name: Optional[str] = None):
        self.thresholds = dict(thresholds or {})
        self.achieved = dict(achieved or {})
        self.unmet = list(unmet or [])
        self.component_name = component_name
        super().__init__(message)
