"""
Tests for the facetfilter exception hierarchy.
"""

import pytest

from facetfilter.core.exceptions import (
    CodecError, ConfigurationError, ErrorCode, ErrorContext, FacetFilterError, SnapshotError,
)


class TestErrorContext:
    def test_to_dict(self):
        context = ErrorContext(operation="codec", key="page", value="x")
        data = context.to_dict()
        assert data["operation"] == "codec"
        assert data["key"] == "page"
        assert data["value"] == "x"


class TestFacetFilterError:
    """Test the base exception."""

    def test_defaults(self):
        error = FacetFilterError("something failed")
        assert str(error) == "something failed"
        assert error.error_code == ErrorCode.UNKNOWN_ERROR
        assert error.recoverable is True
        assert len(error.context.correlation_id) == 8

    def test_user_message(self):
        error = SnapshotError("Corrupt snapshot", file_path="/tmp/state.json")
        message = error.get_user_message()
        assert "Error: Corrupt snapshot" in message
        assert f"Error Code: {ErrorCode.SNAPSHOT_CORRUPT.value}" in message
        assert "File: /tmp/state.json" in message

    def test_debug_info(self):
        cause = ValueError("bad number")
        error = CodecError("Invalid page", ErrorCode.CODEC_MALFORMED_ENTRY, key="page",
                           value="x", cause=cause)
        info = error.get_debug_info()
        assert info["error_type"] == "CodecError"
        assert info["error_code"] == ErrorCode.CODEC_MALFORMED_ENTRY.value
        assert info["context"]["key"] == "page"
        assert info["cause"] == {"type": "ValueError", "message": "bad number"}


class TestSubclasses:
    @pytest.mark.parametrize("error_class,operation,default_code", [
        (ConfigurationError, "configuration", ErrorCode.CONFIG_INVALID_FORMAT),
        (CodecError, "codec", ErrorCode.CODEC_INVALID_PARAMS),
        (SnapshotError, "snapshot", ErrorCode.SNAPSHOT_CORRUPT),
    ])
    def test_defaults(self, error_class, operation, default_code):
        error = error_class("failed")
        assert isinstance(error, FacetFilterError)
        assert error.context.operation == operation
        assert error.error_code == default_code

    def test_configuration_key(self):
        error = ConfigurationError("bad", key="FACETFILTER_DEBUG", value="maybe")
        assert error.context.key == "FACETFILTER_DEBUG"
        assert error.context.value == "maybe"
        assert "Key: FACETFILTER_DEBUG" in error.get_user_message()

    def test_explicit_context(self):
        context = ErrorContext(operation="import")
        error = SnapshotError("failed", context=context, file_path="a.json")
        assert error.context is context
        assert context.file_path == "a.json"
