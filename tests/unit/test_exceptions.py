"""Unit tests for exceptions module."""

from unittest.mock import Mock

import pytest
from azure.core.exceptions import HttpResponseError

from aztoolkit.exceptions import (
    ConfigurationError,
    InvariantViolation,
    RemoteOperationError,
    ToolkitError,
    remote_call,
)


class TestRemoteCall:
    def test_wraps_foreign_errors(self):
        original = OSError("network unreachable")
        with pytest.raises(RemoteOperationError, match="Failed to list servers: network unreachable") as exc_info:
            with remote_call("list servers"):
                raise original
        assert exc_info.value.cause is original
        assert exc_info.value.__cause__ is original

    @pytest.mark.parametrize("error", [ConfigurationError("no rg"), InvariantViolation("bad")])
    def test_toolkit_errors_pass_through(self, error):
        with pytest.raises(type(error)) as exc_info:
            with remote_call("anything"):
                raise error
        assert exc_info.value is error

    def test_status_code_from_azure_error(self):
        error = HttpResponseError(message="conflict")
        error.status_code = 409

        with pytest.raises(RemoteOperationError) as exc_info:
            with remote_call("create server"):
                raise error

        assert exc_info.value.status_code == 409
        assert str(exc_info.value).endswith("(HTTP 409)")

    def test_status_code_from_requests_style_error(self):
        error = Exception("bad gateway")
        error.response = Mock(status_code=502)
        assert RemoteOperationError("kudu failed", cause=error).status_code == 502

    def test_no_status_code(self):
        error = RemoteOperationError("plain")
        assert error.status_code is None
        assert str(error) == "plain"

    def test_hierarchy(self):
        for cls in (ConfigurationError, InvariantViolation, RemoteOperationError):
            assert issubclass(cls, ToolkitError)
