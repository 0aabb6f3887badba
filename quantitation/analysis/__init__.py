"""
Calibration and quantification of analytes.
"""

from .method import CalibrationMethod
from .context import QuantitationContext
from .absolute_quantitation import AbsoluteQuantitation
from .ransac import remove_outliers_ransac
from .isotope_labeling import (
    calculate_mdv,
    calculate_mdvs,
    isotopic_correction,
    isotopic_corrections,
    calculate_isotopic_purity,
    calculate_isotopic_purities,
    calculate_mdv_accuracy,
    calculate_mdv_accuracies,
)

__all__ = [
    'CalibrationMethod',
    'QuantitationContext',
    'AbsoluteQuantitation',
    'remove_outliers_ransac',
    'calculate_mdv',
    'calculate_mdvs',
    'isotopic_correction',
    'isotopic_corrections',
    'calculate_isotopic_purity',
    'calculate_isotopic_purities',
    'calculate_mdv_accuracy',
    'calculate_mdv_accuracies',
]
