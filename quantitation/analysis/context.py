"""
Read-only lookup of calibration methods used during quantification.
"""

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from .method import CalibrationMethod


class QuantitationContext:
    """
    Calibration methods keyed by component name.

    Built once from a batch of methods and only read afterwards, so it can
    be shared between workers without locking.
    """

    def __init__(self, methods: Iterable[CalibrationMethod]):
        self._methods = MappingProxyType({m.component_name: m for m in methods})

    @property
    def methods(self) -> Mapping[str, CalibrationMethod]:
        return self._methods

    def get(self, component_name: str) -> Optional[CalibrationMethod]:
        return self._methods.get(component_name)

    def __contains__(self, component_name: str) -> bool:
        return component_name in self._methods

    def __iter__(self) -> Iterator[str]:
        return iter(self._methods)

    def __len__(self) -> int:
        return len(self._methods)

    def __repr__(self) -> str:
        return f"QuantitationContext(n_methods={len(self._methods)})"
