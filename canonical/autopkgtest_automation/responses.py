"""Classify and extract data from autopkgtest web responses.

These functions only look at text; they never perform I/O. The client
turns their results into return values or exceptions.
"""

import enum
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from canonical.autopkgtest_automation import markers
from canonical.autopkgtest_automation.models.trigger_result import (
    RunStatus,
    TriggerResult,
)


class ResponseKind(enum.Enum):
    """Outcome of a request.cgi submission."""

    SUCCESS = "success"
    ALREADY_RUNNING = "already_running"
    INVALID_REQUEST = "invalid_request"
    AUTH_REQUIRED = "auth_required"
    MALFORMED_SUCCESS = "malformed_success"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class TriggerResponse:
    """Classified submission response."""

    kind: ResponseKind
    result: TriggerResult | None = None
    message: str = ""


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    if match is None:
        return ""
    return next((group for group in match.groups() if group), "").strip()


def extract_trigger_result(body: str) -> TriggerResult | None:
    """Extract the fields of a 'Test request submitted' page.

    Returns None when the UUID is missing.
    """
    uuid = _first_group(markers.SUBMITTED_UUID_RE, body)
    if not uuid:
        return None

    return TriggerResult(
        uuid=uuid,
        result_url=_first_group(markers.SUBMITTED_RESULT_URL_RE, body),
        history_url=_first_group(markers.SUBMITTED_HISTORY_URL_RE, body),
        package=_first_group(markers.SUBMITTED_PACKAGE_RE, body),
        release=_first_group(markers.SUBMITTED_RELEASE_RE, body),
        arch=_first_group(markers.SUBMITTED_ARCH_RE, body),
        requester=_first_group(markers.SUBMITTED_REQUESTER_RE, body),
        triggers=_first_group(markers.SUBMITTED_TRIGGERS_RE, body),
    )


def classify_trigger_response(body: str, final_url: str = "") -> TriggerResponse:
    """Classify a request.cgi response body.

    The invalid-request check runs before the login check because error
    pages also carry navigation links mentioning login.

    Args:
        body: Response body, HTML or plain text
        final_url: URL of the response after redirects

    Returns:
        The classified response, with the parsed result on success

    """
    if markers.SUBMITTED_MARKER in body:
        result = extract_trigger_result(body)
        if result is None:
            return TriggerResponse(ResponseKind.MALFORMED_SUCCESS)
        return TriggerResponse(ResponseKind.SUCCESS, result=result)

    if markers.INVALID_REQUEST_MARKER in body:
        if markers.ALREADY_RUNNING_MARKER in body:
            return TriggerResponse(ResponseKind.ALREADY_RUNNING)
        message = _first_group(markers.INVALID_REQUEST_MESSAGE_RE, body)
        return TriggerResponse(
            ResponseKind.INVALID_REQUEST,
            message=message or "details not available",
        )

    if markers.LOGIN_PATH_MARKER in urlsplit(final_url).path or (
        markers.LOGIN_MARKER in body and markers.LOGOUT_MARKER not in body
    ):
        return TriggerResponse(ResponseKind.AUTH_REQUIRED)

    return TriggerResponse(ResponseKind.UNEXPECTED)


def parse_run_status(body: str) -> RunStatus:
    """Map a /run/<uuid> page to a run state."""
    match = markers.RESULT_ROW_RE.search(body)
    if match is not None:
        verdict = (match.group(1) or match.group(2) or "").lower()
        for token, status in markers.RESULT_VERDICTS:
            if token in verdict:
                return status  # type: ignore[return-value]

    if markers.IN_PROGRESS_MARKER in body:
        return "running"
    if markers.QUEUED_MARKER in body:
        return "queued"
    return "unknown"


def parse_duration(body: str) -> str | None:
    """Return the run duration shown on a /run/<uuid> page, if any."""
    duration = _first_group(markers.DURATION_RE, body)
    return duration or None
