"""
Data loading for standards, samples and quantitation methods.
"""

from .loader import CSVStandardsLoader, MethodFile

__all__ = ['CSVStandardsLoader', 'MethodFile']
