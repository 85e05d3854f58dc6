"""
Core facetfilter Package

Contains core infrastructure components: configuration, events, state
management, and error handling.
"""

from facetfilter.core.exceptions import (
    FacetFilterError,
    ConfigurationError,
    CodecError,
    SnapshotError,
    ErrorCode,
    ErrorContext,
)

__version__ = "0.1.0"

__all__ = [
    'FacetFilterError',
    'ConfigurationError',
    'CodecError',
    'SnapshotError',
    'ErrorCode',
    'ErrorContext',
]
