"""Data models for results, link requests, runs and client configuration."""

from canonical.autopkgtest_automation.models.client_config import (
    ClientConfig,
    SessionCookie,
)
from canonical.autopkgtest_automation.models.link_request import (
    LinkRequest,
    LinkResponse,
)
from canonical.autopkgtest_automation.models.test_result import (
    PackageResults,
    ResultFilter,
    TestResult,
)
from canonical.autopkgtest_automation.models.trigger_result import (
    TERMINAL_STATUSES,
    TestStatus,
    TriggerResult,
)

__all__ = [
    "TERMINAL_STATUSES",
    "ClientConfig",
    "LinkRequest",
    "LinkResponse",
    "PackageResults",
    "ResultFilter",
    "SessionCookie",
    "TestResult",
    "TestStatus",
    "TriggerResult",
]
