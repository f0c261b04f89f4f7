"""Submit generated trigger URLs one after another and monitor the runs."""

import logging
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit

from canonical.autopkgtest_automation.client import AutopkgtestClient
from canonical.autopkgtest_automation.errors import (
    AlreadyRunningError,
    AutopkgtestError,
    RunningTestNotFoundError,
)
from canonical.autopkgtest_automation.models.link_request import (
    LinkRequest,
    LinkResponse,
)
from canonical.autopkgtest_automation.models.trigger_result import (
    TestStatus,
    TriggerResult,
)

logger = logging.getLogger(__name__)


def extract_arch_from_url(url: str) -> str:
    """Return the arch parameter of a trigger URL, or 'all' if it has none."""
    values = parse_qs(urlsplit(url).query).get("arch")
    return values[0] if values else "all"


@dataclass
class SubmissionOutcome:
    """Runs submitted or recovered, and URLs that had to be skipped."""

    submitted: list[TriggerResult] = field(default_factory=list)
    skipped: list[tuple[str, AutopkgtestError]] = field(default_factory=list)


@dataclass
class CompletionOutcome:
    """Final state of one monitored run."""

    result: TriggerResult
    status: TestStatus | None = None
    error: AutopkgtestError | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the run finished without a failing verdict."""
        return self.status is not None and self.status.status in {"pass", "neutral"}


class TriggerOrchestrator:
    """Drives a client over the URLs of a link response, in order."""

    def __init__(self, client: AutopkgtestClient) -> None:
        """Initialize orchestrator with an open client."""
        self.client = client

    async def submit(
        self, request: LinkRequest, response: LinkResponse
    ) -> SubmissionOutcome:
        """Trigger every URL of the response sequentially.

        Already-running tests are recovered through the package pages and
        kept for monitoring; a failed recovery only skips that URL. Any
        other error aborts the remaining submissions.
        """
        outcome = SubmissionOutcome()
        total = len(response.urls)

        for index, url in enumerate(response.urls, start=1):
            logger.info(f"[{index}/{total}] Triggering test: {url}")
            try:
                result = await self.client.trigger_test(url)
            except AlreadyRunningError:
                arch = extract_arch_from_url(url)
                logger.warning(
                    f"Test already running for {request.package}/{request.suite}/"
                    f"{arch}, looking up its UUID"
                )
                try:
                    result = await self._recover(request, arch)
                except RunningTestNotFoundError as e:
                    logger.warning(f"Could not find running test UUID: {e}")
                    outcome.skipped.append((url, e))
                    continue

            outcome.submitted.append(result)

        return outcome

    async def _recover(self, request: LinkRequest, arch: str) -> TriggerResult:
        """Build a result for a test that was already in flight."""
        uuid = await self.client.find_running_test(
            request.package, request.suite, arch
        )
        base_url = self.client.base_url
        return TriggerResult(
            uuid=uuid,
            result_url=f"{base_url}/run/{uuid}",
            history_url=(
                f"{base_url}/packages/{request.package}/{request.suite}/{arch}"
            ),
            package=request.package,
            release=request.suite,
            arch=arch,
        )

    async def wait_all(
        self,
        results: list[TriggerResult],
        poll_interval: float = 60,
        timeout: float = 7200,
    ) -> list[CompletionOutcome]:
        """Wait for each run in turn, recording failures instead of raising."""
        outcomes: list[CompletionOutcome] = []
        for result in results:
            logger.info(
                f"Waiting for {result.package} [{result.release}/{result.arch}] "
                f"UUID {result.uuid}"
            )
            try:
                status = await self.client.wait_for_completion(
                    result.uuid, poll_interval=poll_interval, timeout=timeout
                )
            except AutopkgtestError as e:
                logger.error(f"Monitoring {result.uuid} failed: {e}")
                outcomes.append(CompletionOutcome(result=result, error=e))
                continue

            logger.info(f"Run {result.uuid} finished: {status.status}")
            outcomes.append(CompletionOutcome(result=result, status=status))

        return outcomes
