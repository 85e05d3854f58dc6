"""
Error types for facetfilter.

Engine operations mostly degrade to a safe default rather than raise.
These exceptions surface where a caller must decide what to do
(configuration loading, snapshot and preset files) and inside the codec,
which turns them into a default state.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Numeric codes grouped by the layer that raises them."""

    # Configuration (3xxx)
    CONFIG_INVALID_FORMAT = 3001
    CONFIG_INVALID_VALUE = 3003
    CONFIG_FILE_NOT_FOUND = 3004
    CONFIG_SCHEMA_VALIDATION = 3006

    # Parameter codec (6xxx)
    CODEC_INVALID_PARAMS = 6001
    CODEC_MALFORMED_ENTRY = 6002

    # Snapshots and presets (7xxx)
    SNAPSHOT_CORRUPT = 7001
    SNAPSHOT_WRITE_FAILED = 7003
    PRESET_NOT_FOUND = 7004

    UNKNOWN_ERROR = 9000


@dataclass
class ErrorContext:
    """Where an error happened and on what input."""

    operation: str = ""
    key: Optional[str] = None
    value: Optional[Any] = None
    file_path: Optional[str] = None
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FacetFilterError(Exception):
    """
    Base exception for all facetfilter errors.

    Subclasses set ``default_code`` and ``operation``; callers may pass a
    more specific code and the key/value or file the error concerns.
    """

    default_code = ErrorCode.UNKNOWN_ERROR
    operation = ""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        *,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
        key: Optional[str] = None,
        value: Any = None,
        file_path: Optional[str] = None,
    ):
        """
        Args:
            message: Human-readable error description
            error_code: Specific code, defaults to the class's ``default_code``
            context: Prebuilt context; otherwise one is made from key/value/file_path
            cause: Exception that triggered this one
            recoverable: Whether the caller can fall back to a default
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.cause = cause
        self.recoverable = recoverable

        self.context = context or ErrorContext(operation=self.operation)
        if key is not None:
            self.context.key = key
            self.context.value = value
        if file_path is not None:
            self.context.file_path = str(file_path)

    def get_user_message(self) -> str:
        """Multi-line message suitable for printing to a terminal."""
        lines = [f"Error: {self.message}"]
        if self.error_code is not ErrorCode.UNKNOWN_ERROR:
            lines.append(f"Error Code: {self.error_code.value}")
        if self.context.key:
            lines.append(f"Key: {self.context.key}")
        if self.context.file_path:
            lines.append(f"File: {self.context.file_path}")
        return "\n".join(lines)

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            'error_type': type(self).__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'recoverable': self.recoverable,
            'context': self.context.to_dict(),
            'cause': {
                'type': type(self.cause).__name__ if self.cause else None,
                'message': str(self.cause) if self.cause else None,
            },
        }


class ConfigurationError(FacetFilterError):
    """Configuration file, environment variable or value is unusable."""

    default_code = ErrorCode.CONFIG_INVALID_FORMAT
    operation = "configuration"


class CodecError(FacetFilterError):
    """A parameter map, or one entry of it, cannot be decoded."""

    default_code = ErrorCode.CODEC_INVALID_PARAMS
    operation = "codec"


class SnapshotError(FacetFilterError):
    """A snapshot or preset file cannot be read or written."""

    default_code = ErrorCode.SNAPSHOT_CORRUPT
    operation = "snapshot"
