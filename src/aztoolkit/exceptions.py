"""Error taxonomy for aztoolkit.

Absent results (point lookup misses, files not found) are returned as None,
never raised. Everything that talks to Azure and fails surfaces as
RemoteOperationError with the original error attached.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class ToolkitError(Exception):
    """Base exception for aztoolkit errors."""

    pass


class ConfigurationError(ToolkitError):
    """Required context is missing (resource group, resolved parent, config value)."""

    pass


class ConfigError(ConfigurationError):
    """Configuration file could not be read, parsed or written."""

    pass


class InvariantViolation(ToolkitError):
    """Programming error: illegal state transition, reused draft, blank identifier."""

    pass


class RemoteOperationError(ToolkitError):
    """A call to Azure (management plane or Kudu) failed.

    Attributes:
        cause: The underlying transport or SDK exception
        status_code: HTTP status code when the transport reported one
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code if status_code is not None else _status_code_of(cause)

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            return f"{message} (HTTP {self.status_code})"
        return message


@contextmanager
def remote_call(action: str) -> Iterator[None]:
    """Translate any non-toolkit failure inside the block into RemoteOperationError.

    Example:
        >>> with remote_call("delete server 'pg1'"):
        ...     client.servers.begin_delete(rg, "pg1").result()
    """
    try:
        yield
    except ToolkitError:
        raise
    except Exception as e:
        raise RemoteOperationError(f"Failed to {action}: {e}", cause=e) from e


def _status_code_of(error: Any) -> int | None:
    """Pull an HTTP status code out of an azure-core or requests exception."""
    if error is None:
        return None
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    response = getattr(error, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


__all__ = [
    "ConfigError",
    "ConfigurationError",
    "InvariantViolation",
    "RemoteOperationError",
    "ToolkitError",
    "remote_call",
]
