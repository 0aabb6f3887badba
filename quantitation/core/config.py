"""
Configuration objects for calibration searches.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
import hashlib
import json

from .exceptions import ConfigurationError


@dataclass
class CalibrationSearchConfig:
    """Acceptance thresholds for the brute-force calibration search."""

    min_points: int = 4
    max_bias: float = 30.0
    min_r2: float = 0.9
    n_jobs: int = 1

    def to_hash(self) -> str:
        """Generate unique hash for configuration."""
        config_str = json.dumps(asdict(self), sort_keys=True, default=str)
        return hashlib.md5(config_str.encode()).hexdigest()

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.min_points < 2:
            raise ConfigurationError("min_points must be at least 2")
        if self.max_bias < 0:
            raise ConfigurationError("max_bias must be non-negative")
        if not 0.0 <= self.min_r2 <= 1.0:
            raise ConfigurationError("min_r2 must be between 0 and 1")
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")


@dataclass
class RansacConfig:
    """Parameters for RANSAC outlier rejection on paired values."""

    rsq_limit: float = 0.95
    coverage_limit: float = 0.6
    max_iterations: int = 1000
    max_residual: float = 1.0
    sampling_size: int = 5
    random_state: Optional[int] = None
    n_jobs: int = 1

    def to_hash(self) -> str:
        """Generate unique hash for configuration."""
        config_str = json.dumps(asdict(self), sort_keys=True, default=str)
        return hashlib.md5(config_str.encode()).hexdigest()

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not 0.0 <= self.rsq_limit <= 1.0:
            raise ConfigurationError("rsq_limit must be between 0 and 1")
        if not 0.0 <= self.coverage_limit <= 1.0:
            raise ConfigurationError("coverage_limit must be between 0 and 1")
        if self.max_iterations < 1:
            raise ConfigurationError("max_iterations must be at least 1")
        if self.max_residual <= 0:
            raise ConfigurationError("max_residual must be positive")
        if self.sampling_size < 2:
            raise ConfigurationError("sampling_size must be at least 2")
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")

    def to_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments accepted by ``remove_outliers_ransac``."""
        return asdict(self)
