"""Models for submitted test runs and their status."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from canonical.autopkgtest_automation.markers import UUID_PATTERN

RunStatus = Literal[
    "queued", "running", "pass", "fail", "neutral", "tmpfail", "unknown"
]
TERMINAL_STATUSES: frozenset[str] = frozenset({"pass", "fail", "neutral", "tmpfail"})


class TriggerResult(BaseModel):
    """Fields of the 'Test request submitted' page."""

    uuid: str = Field(..., pattern=rf"^{UUID_PATTERN}$", description="Run UUID")
    result_url: str = Field(default="", description="URL of the run result page")
    history_url: str = Field(default="", description="URL of the result history")
    package: str = Field(default="", description="Source package name")
    release: str = Field(default="", description="Release codename")
    arch: str = Field(default="", description="Architecture")
    requester: str = Field(default="", description="Launchpad user who requested")
    triggers: str = Field(default="", description="Triggers as echoed by the server")


class TestStatus(BaseModel):
    """State of a single test run."""

    __test__ = False

    uuid: str = Field(..., description="Run UUID")
    status: RunStatus = Field(..., description="Run state")
    start_time: datetime | None = Field(default=None, description="Start time")
    duration: str | None = Field(default=None, description="Duration when known")
    log_url: str = Field(default="", description="URL of the run page")

    @property
    def is_terminal(self) -> bool:
        """Whether the run has reached a final verdict."""
        return self.status in TERMINAL_STATUSES
