"""
Utilities module for the quantitation system.
"""

from .metrics import (
    coefficient_of_determination,
    calculate_bias_array,
    calculate_calibration_metrics,
    compare_calibrations,
)
from .export import ResultsExporter

__all__ = [
    'coefficient_of_determination',
    'calculate_bias_array',
    'calculate_calibration_metrics',
    'compare_calibrations',
    'ResultsExporter'
]
