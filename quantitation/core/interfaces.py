"""
Interfaces for the quantitation system.

Defines contracts for pluggable collaborators that feed the core.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Union

from .data_structures import CalibrationPoint


class IStandardsLoader(ABC):
    """Interface for loading calibration standard measurements."""

    @abstractmethod
    def load_standards(self, source: Union[str, Path]) -> Dict[str, List[CalibrationPoint]]:
        """
        Load standards grouped by analyte.

        Args:
            source: Location of the standards

        Returns:
            Mapping of component name to its calibration points
        """
        pass

    @abstractmethod
    def validate_format(self, source: Union[str, Path]) -> bool:
        """Validate source format."""
        pass


class IMethodStore(ABC):
    """Interface for loading and storing calibration methods."""

    @abstractmethod
    def load(self, filepath: Union[str, Path]) -> list:
        """Load calibration methods."""
        pass

    @abstractmethod
    def store(self, filepath: Union[str, Path], methods: list) -> None:
        """Store calibration methods."""
        pass
