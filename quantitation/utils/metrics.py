"""
Calibration quality metrics and comparison utilities.
"""

from typing import Any, Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ..core.exceptions import ArithmeticDegenerateError


def coefficient_of_determination(actual: Sequence[float], calculated: Sequence[float]) -> float:
    """
    Squared Pearson correlation between actual and calculated values.

    Returns 0.0 when the correlation is undefined (fewer than two points,
    constant input or non-finite values).
    """
    actual = np.asarray(actual, dtype=np.float64)
    calculated = np.asarray(calculated, dtype=np.float64)

    if actual.size < 2 or actual.size != calculated.size:
        return 0.0
    if not (np.all(np.isfinite(actual)) and np.all(np.isfinite(calculated))):
        return 0.0
    if np.ptp(actual) == 0 or np.ptp(calculated) == 0:
        return 0.0

    r, _ = stats.pearsonr(actual, calculated)
    return float(r) ** 2


def calculate_bias_array(actual: Sequence[float], calculated: Sequence[float]) -> np.ndarray:
    """
    Percent bias of each calculated value against its actual value.

    Raises:
        ArithmeticDegenerateError: If any actual value is zero
    """
    actual = np.asarray(actual, dtype=np.float64)
    calculated = np.asarray(calculated, dtype=np.float64)
    if np.any(actual == 0):
        raise ArithmeticDegenerateError("Bias is undefined for a zero actual concentration")
    return np.abs(actual - calculated) / actual * 100


def calculate_calibration_metrics(
    actual: Sequence[float],
    calculated: Sequence[float]
) -> Dict[str, float]:
    """
    Calculate summary metrics for a calibration curve.

    Args:
        actual: Known concentration ratios
        calculated: Concentration ratios calculated from the curve

    Returns:
        Dictionary of metrics
    """
    actual = np.asarray(actual, dtype=np.float64)
    calculated = np.asarray(calculated, dtype=np.float64)

    metrics = {'n_points': int(actual.size)}
    metrics['r2'] = coefficient_of_determination(actual, calculated)
    metrics['pearson_r'] = float(np.sqrt(metrics['r2']))

    finite = np.isfinite(calculated)
    if np.any(finite):
        metrics['rmse'] = float(np.sqrt(mean_squared_error(actual[finite], calculated[finite])))
        metrics['mae'] = float(mean_absolute_error(actual[finite], calculated[finite]))
    else:
        metrics['rmse'] = metrics['mae'] = np.nan

    if actual.size and np.all(actual != 0):
        bias = calculate_bias_array(actual, calculated)
        metrics['mean_bias'] = float(np.mean(bias))
        metrics['max_bias'] = float(np.max(bias))
    else:
        metrics['mean_bias'] = metrics['max_bias'] = np.nan

    return metrics


def compare_calibrations(
    calibration_results: Iterable[Any],
    sort_by: Optional[str] = 'r2'
) -> pd.DataFrame:
    """
    Compare calibration results across analytes.

    Args:
        calibration_results: CalibrationResult objects
        sort_by: Column to sort by (descending), or None to keep order

    Returns:
        DataFrame with one row per analyte
    """
    rows = []
    for result in calibration_results:
        rows.append({
            'component_name': result.component_name,
            'transformation_model': result.transformation_model,
            'n_points': result.n_points,
            'n_excluded': len(result.excluded_points),
            'coverage': result.coverage,
            'r2': result.r2,
            'max_bias': result.max_bias,
            'mean_bias': float(np.mean(result.biases)) if result.biases else np.nan,
        })

    df = pd.DataFrame(rows, columns=['component_name', 'transformation_model', 'n_points',
                                     'n_excluded', 'coverage', 'r2', 'max_bias', 'mean_bias'])
    if sort_by and not df.empty:
        df = df.sort_values(sort_by, ascending=False).reset_index(drop=True)
    return df
