"""
Mass distribution vectors (MDVs) for isotopic labeling experiments.

Each feature group is treated as one fragment whose sub-features are its
mass isotopomers (M+0, M+1, ...). Every function returns new groups and
leaves its input untouched.
"""

import copy
import logging
from typing import List, Sequence

import numpy as np

from ..core.data_structures import FeatureGroup, FeatureMap
from ..core.exceptions import ConfigurationError, DataValidationError

logger = logging.getLogger(__name__)

MASS_INTENSITY_TYPES = ('norm_max', 'norm_sum')


def _values(group: FeatureGroup, feature_name: str) -> np.ndarray:
    missing = [f.native_id for f in group.subordinates if not f.has_value(feature_name)]
    if missing:
        raise DataValidationError(
            f"Feature value '{feature_name}' missing for {', '.join(missing)} in group {group.group_id}")
    return np.array([float(f.get_value(feature_name)) for f in group.subordinates], dtype=np.float64)


def _with_values(group: FeatureGroup, feature_name: str, values: np.ndarray) -> FeatureGroup:
    result = copy.deepcopy(group)
    for feature, value in zip(result.subordinates, values):
        feature.set_value(feature_name, float(value))
    return result


def calculate_mdv(measured: FeatureGroup,
                  mass_intensity_type: str,
                  feature_name: str = 'intensity') -> FeatureGroup:
    """
    Normalise isotopomer intensities of one group.

    Args:
        measured: Group with measured intensities
        mass_intensity_type: 'norm_max' (divide by the largest intensity) or
            'norm_sum' (divide by the sum of intensities)
        feature_name: Value holding the intensity

    Returns:
        Copy of ``measured`` with normalised values
    """
    if mass_intensity_type not in MASS_INTENSITY_TYPES:
        raise ConfigurationError(
            f"Unknown mass intensity type '{mass_intensity_type}'. "
            f"Available: {', '.join(MASS_INTENSITY_TYPES)}")

    intensities = _values(measured, feature_name)
    if intensities.size == 0:
        return copy.deepcopy(measured)

    denominator = np.max(intensities) if mass_intensity_type == 'norm_max' else np.sum(intensities)
    if denominator == 0:
        raise DataValidationError(f"Cannot normalise group {measured.group_id}: intensities are zero")

    return _with_values(measured, feature_name, intensities / denominator)


def calculate_mdvs(measured: FeatureMap,
                   mass_intensity_type: str,
                   feature_name: str = 'intensity') -> FeatureMap:
    return [calculate_mdv(group, mass_intensity_type, feature_name) for group in measured]


def isotopic_correction(normalized: FeatureGroup,
                        correction_matrix: Sequence[Sequence[float]],
                        feature_name: str = 'intensity') -> FeatureGroup:
    """
    Correct an MDV for natural isotope abundance of the derivatization agent.

    Computes ``CM^-1 . MDV`` where ``CM`` is a square correction matrix with
    one row per isotopomer.
    """
    matrix = np.asarray(correction_matrix, dtype=np.float64)
    mdv = _values(normalized, feature_name)

    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ConfigurationError(f"Correction matrix must be square, got shape {matrix.shape}")
    if matrix.shape[0] != mdv.size:
        raise ConfigurationError(
            f"Correction matrix of size {matrix.shape[0]} does not match "
            f"{mdv.size} isotopomers in group {normalized.group_id}")

    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        raise ConfigurationError(f"Correction matrix is not invertible: {e}") from e

    return _with_values(normalized, feature_name, inverse @ mdv)


def isotopic_corrections(normalized: FeatureMap,
                         correction_matrix: Sequence[Sequence[float]],
                         feature_name: str = 'intensity') -> FeatureMap:
    return [isotopic_correction(group, correction_matrix, feature_name) for group in normalized]


def calculate_isotopic_purity(normalized: FeatureGroup,
                              experiment_data: Sequence[float],
                              isotopic_purity_name: str) -> FeatureGroup:
    """
    Isotopic purity of a tracer (atom % label).

    With ``n`` the index of the largest experiment value (M+n), the purity
    is ``n / (n + (M+n-1) / (M+n))``. It is stored on the group under
    ``isotopic_purity_name``. If the largest value is M+0 no purity is set.
    """
    data = np.asarray(experiment_data, dtype=np.float64)
    if data.size == 0:
        raise DataValidationError("Experiment data is empty")

    result = copy.deepcopy(normalized)
    n = int(np.argmax(data))
    if n == 0:
        logger.warning("Largest isotopomer of group %s is M+0, isotopic purity not set",
                       normalized.group_id)
        return result

    purity = n / (n + data[n - 1] / data[n])
    result.set_value(isotopic_purity_name, float(purity))
    return result


def calculate_isotopic_purities(normalized: FeatureMap,
                                experiment_data: Sequence[float],
                                isotopic_purity_name: str) -> FeatureMap:
    return [calculate_isotopic_purity(group, experiment_data, isotopic_purity_name)
            for group in normalized]


def calculate_mdv_accuracy(normalized: FeatureGroup,
                           measured: Sequence[float],
                           theoretical: Sequence[float]) -> FeatureGroup:
    """
    Accuracy of a measured MDV against its theoretical MDV.

    Each isotopomer gets its ``absolute_difference`` and the group gets the
    ``average_accuracy`` (mean absolute difference).
    """
    measured = np.asarray(measured, dtype=np.float64)
    theoretical = np.asarray(theoretical, dtype=np.float64)
    if measured.shape != theoretical.shape:
        raise DataValidationError(
            f"Measured ({measured.size}) and theoretical ({theoretical.size}) MDVs differ in length")
    if measured.size == 0:
        raise DataValidationError("MDVs are empty")

    differences = np.abs(measured - theoretical)
    result = copy.deepcopy(normalized)
    for feature, difference in zip(result.subordinates, differences):
        feature.set_value('absolute_difference', float(difference))
    result.set_value('average_accuracy', float(np.mean(differences)))
    return result


def calculate_mdv_accuracies(normalized: FeatureMap,
                             measured: Sequence[float],
                             theoretical: Sequence[float]) -> List[FeatureGroup]:
    return [calculate_mdv_accuracy(group, measured, theoretical) for group in normalized]
