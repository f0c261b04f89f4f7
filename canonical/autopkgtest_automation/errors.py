"""Exceptions raised when talking to the autopkgtest service."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from canonical.autopkgtest_automation.models.trigger_result import TestStatus


class AutopkgtestError(Exception):
    """Base class for all autopkgtest client errors."""


class ValidationError(AutopkgtestError, ValueError):
    """Link request is missing a required field."""


class NetworkError(AutopkgtestError):
    """HTTP transport failure."""


class UpstreamStatusError(AutopkgtestError):
    """Service answered with a non-200 status code."""

    def __init__(self, status_code: int, url: str = "") -> None:
        """Initialize with the HTTP status code and requested URL."""
        self.status_code = status_code
        self.url = url
        super().__init__(f"unexpected status code: {status_code}")


class TriggerError(AutopkgtestError):
    """Base class for rejected or unrecognised test submissions."""


class MalformedSuccessResponseError(TriggerError):
    """Submission looked successful but the UUID could not be extracted."""

    def __init__(self) -> None:
        """Initialize with a fixed message."""
        super().__init__("test submission response parsed but UUID not found")


class InvalidRequestError(TriggerError):
    """Service rejected the request with an explanation."""

    def __init__(self, message: str) -> None:
        """Initialize with the server-provided explanation."""
        self.message = message
        super().__init__(f"invalid request: {message}")


class AlreadyRunningError(TriggerError):
    """An equivalent test is already in flight."""

    def __init__(self) -> None:
        """Initialize with a fixed message."""
        super().__init__(
            "test already running for this package/release/arch combination"
        )


class AuthenticationRequiredError(TriggerError):
    """Session cookie is missing or expired."""

    def __init__(self) -> None:
        """Initialize with a fixed message."""
        super().__init__("authentication required: please authenticate first")


class UnexpectedResponseError(TriggerError):
    """Response matched none of the known patterns."""

    def __init__(self) -> None:
        """Initialize with a fixed message."""
        super().__init__("unexpected response from server")


class RunningTestNotFoundError(AutopkgtestError):
    """No in-flight test matched the package/release/arch combination."""

    def __init__(self, package: str, release: str, arch: str) -> None:
        """Initialize with the searched combination."""
        self.package = package
        self.release = release
        self.arch = arch
        super().__init__(f"no running test found for {package}/{release}/{arch}")


class PollTimeoutError(AutopkgtestError, TimeoutError):
    """Polling deadline elapsed before the test reached a terminal state."""

    def __init__(self, timeout: float, last_status: TestStatus) -> None:
        """Initialize with the timeout and the last observed status."""
        self.timeout = timeout
        self.last_status = last_status
        super().__init__(
            f"timeout reached after {timeout} seconds "
            f"(last status: {last_status.status})"
        )
