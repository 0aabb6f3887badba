"""
RANSAC outlier rejection for paired measurements.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed
from sklearn.utils import check_random_state

from ..core.config import RansacConfig
from ..core.data_structures import DataPoint
from ..core.exceptions import DataValidationError, FitInfeasibleError
from ..models.linear_models import fit_linear
from ..utils.metrics import coefficient_of_determination

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    iteration: int
    inliers: np.ndarray
    r2: float

    @property
    def size(self) -> int:
        return int(self.inliers.size)


def _line(data: np.ndarray):
    params = fit_linear([DataPoint(float(a), float(b)) for a, b in data], {})
    return params['slope'], params['intercept']


def _evaluate_sample(data: np.ndarray, sample: np.ndarray, max_residual: float,
                     iteration: int) -> Optional[_Candidate]:
    """Fit a line to one random sample and collect its consensus set."""
    try:
        slope, intercept = _line(data[sample])
    except DataValidationError:
        return None

    residuals = np.abs(data[:, 1] - (slope * data[:, 0] + intercept))
    inliers = np.flatnonzero(residuals <= max_residual)
    if inliers.size < 2:
        return None

    consensus = data[inliers]
    return _Candidate(iteration, inliers, coefficient_of_determination(consensus[:, 0], consensus[:, 1]))


def _is_better(candidate: _Candidate, best: Optional[_Candidate]) -> bool:
    # larger consensus set, then higher R², then earlier iteration
    if best is None:
        return True
    return (candidate.size, candidate.r2) > (best.size, best.r2)


def remove_outliers_ransac(pairs: Sequence[Tuple[float, float]],
                           rsq_limit: float,
                           coverage_limit: float,
                           max_iterations: int,
                           max_residual: float,
                           sampling_size: int,
                           random_state=None,
                           n_jobs: int = 1) -> List[Tuple[float, float]]:
    """
    Remove outliers from ``(a, b)`` pairs by fitting ``b = slope * a + intercept``
    to random minimal samples.

    The consensus set of a sample is every pair whose absolute residual is at
    most ``max_residual``. The largest consensus set over all iterations is
    kept (ties go to the higher R², then the earlier iteration) and accepted
    only if its R² reaches ``rsq_limit`` and it covers at least
    ``coverage_limit`` of the input.

    Args:
        pairs: Paired values
        rsq_limit: Minimum squared Pearson correlation of the consensus set
        coverage_limit: Minimum fraction of pairs in the consensus set
        max_iterations: Number of random samples drawn
        max_residual: Largest absolute residual of an inlier
        sampling_size: Pairs per random sample
        random_state: Seed or ``numpy.random.RandomState`` for reproducible runs
        n_jobs: Number of parallel workers scoring samples

    Returns:
        The accepted pairs, sorted by ``a``

    Raises:
        ConfigurationError: If a parameter is out of range
        FitInfeasibleError: If no consensus set meets the thresholds
    """
    RansacConfig(rsq_limit=rsq_limit, coverage_limit=coverage_limit,
                 max_iterations=max_iterations, max_residual=max_residual,
                 sampling_size=sampling_size, n_jobs=n_jobs).validate()

    thresholds = {'rsq_limit': rsq_limit, 'coverage_limit': coverage_limit,
                  'sampling_size': sampling_size}
    data = np.asarray(pairs, dtype=np.float64).reshape(-1, 2)
    n_pairs = len(data)

    if n_pairs <= sampling_size:
        raise FitInfeasibleError(
            f"Need more than {sampling_size} pairs for RANSAC, got {n_pairs}",
            thresholds=thresholds, achieved={'n_pairs': n_pairs}, unmet=['sampling_size'])

    # Draw every sample up front so results do not depend on n_jobs
    rng = check_random_state(random_state)
    samples = [rng.choice(n_pairs, size=sampling_size, replace=False) for _ in range(max_iterations)]

    candidates = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_evaluate_sample)(data, sample, max_residual, i)
        for i, sample in enumerate(samples)
    )

    best = None
    for candidate in candidates:
        if candidate is not None and _is_better(candidate, best):
            best = candidate

    if best is None:
        raise FitInfeasibleError(
            "RANSAC did not find any consensus set",
            thresholds=thresholds, achieved={'coverage': 0.0, 'r2': 0.0},
            unmet=['rsq_limit', 'coverage_limit'])

    coverage = best.size / n_pairs
    achieved = {'coverage': coverage, 'r2': best.r2, 'iteration': best.iteration}
    unmet = []
    if best.r2 < rsq_limit:
        unmet.append('rsq_limit')
    if coverage < coverage_limit:
        unmet.append('coverage_limit')
    if unmet:
        raise FitInfeasibleError(
            f"RANSAC consensus set (coverage {coverage:.2f}, R² {best.r2:.4f}) "
            f"does not meet {', '.join(unmet)}",
            thresholds=thresholds, achieved=achieved, unmet=unmet)

    consensus = data[best.inliers]
    logger.info("RANSAC kept %d of %d pairs (R² %.4f, iteration %d)",
                best.size, n_pairs, best.r2, best.iteration)

    order = np.argsort(consensus[:, 0], kind='stable')
    return [(float(a), float(b)) for a, b in consensus[order]]
