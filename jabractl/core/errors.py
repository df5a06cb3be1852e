"""Domain-specific errors for jabractl."""

from __future__ import annotations

from jabractl.native.base import ReturnCode


class JabraError(Exception):
    """Base error for jabractl."""


class NativeError(JabraError):
    """Base for errors reported by the native SDK through a return code."""

    code: ReturnCode = ReturnCode.FAILED


class InvalidParameterError(NativeError):
    """Raised when a parameter is rejected, locally or by the SDK."""

    code = ReturnCode.INVALID_PARAMETER


class NoDeviceError(NativeError):
    """Raised when the SDK reports that the device is gone."""

    code = ReturnCode.NO_DEVICE


class NotSupportedError(NativeError):
    """Raised when the device does not support the requested operation."""

    code = ReturnCode.NOT_SUPPORTED


class FailedError(NativeError):
    """Raised on generic SDK failures and unexpected native data."""

    code = ReturnCode.FAILED


class NotInitializedError(JabraError):
    """Raised when an operation needs an initialized SDK session."""


class AlreadyInitializedError(JabraError):
    """Raised when the SDK session is already initialized."""


class UnknownDeviceError(JabraError):
    """Raised when a device handle is not in the registry."""


class OwnershipViolationError(JabraError):
    """Raised when native memory ownership rules are broken.

    This is a programming-contract breach and is never retried or masked.
    """


class ConfigError(JabraError):
    """Raised when the configuration file cannot be read or is invalid."""


class LibraryLoadError(JabraError):
    """Raised when the native Jabra library cannot be located or loaded."""


_ERRORS_BY_CODE: dict[ReturnCode, type[NativeError]] = {
    ReturnCode.INVALID_PARAMETER: InvalidParameterError,
    ReturnCode.NO_DEVICE: NoDeviceError,
    ReturnCode.NOT_SUPPORTED: NotSupportedError,
    ReturnCode.FAILED: FailedError,
}


def raise_for_return_code(code: int, operation: str) -> None:
    """Raise the error matching a native return code; return on success."""
    if code == ReturnCode.SUCCESS:
        return
    try:
        known = ReturnCode(code)
    except ValueError:
        raise FailedError(f"{operation} returned unknown code {code}") from None
    raise _ERRORS_BY_CODE[known](f"{operation} failed: {known.name}")
