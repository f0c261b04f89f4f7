"""Authenticated client for submitting and monitoring autopkgtest runs."""

import asyncio
import functools
import logging
from collections.abc import Mapping
from http.cookies import Morsel, SimpleCookie
from types import TracebackType

import aiohttp
from aiohttp.typedefs import LooseCookies
from publicsuffixlist import PublicSuffixList
from yarl import URL

from canonical.autopkgtest_automation import markers
from canonical.autopkgtest_automation.errors import (
    AlreadyRunningError,
    AutopkgtestError,
    AuthenticationRequiredError,
    InvalidRequestError,
    MalformedSuccessResponseError,
    NetworkError,
    PollTimeoutError,
    RunningTestNotFoundError,
    UnexpectedResponseError,
)
from canonical.autopkgtest_automation.models.client_config import (
    ClientConfig,
    SessionCookie,
)
from canonical.autopkgtest_automation.models.trigger_result import (
    TestStatus,
    TriggerResult,
)
from canonical.autopkgtest_automation.responses import (
    ResponseKind,
    classify_trigger_response,
    parse_duration,
    parse_run_status,
)

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = frozenset({"running", "queued"})


@functools.cache
def _public_suffixes() -> PublicSuffixList:
    return PublicSuffixList()


class PublicSuffixCookieJar(aiohttp.CookieJar):
    """Cookie jar that refuses cookies scoped to a public suffix.

    aiohttp only checks that the host ends with the cookie domain, which
    would let a cookie for e.g. ``co.uk`` reach every site under it.
    Host-only cookies carry no domain attribute and are kept.
    """

    def update_cookies(
        self, cookies: LooseCookies, response_url: URL = URL()
    ) -> None:
        """Store cookies, dropping those whose domain is a public suffix."""
        items = cookies.items() if isinstance(cookies, Mapping) else cookies
        accepted = []
        for name, cookie in items:
            domain = cookie["domain"] if isinstance(cookie, Morsel) else ""
            domain = domain.strip(".").lower()
            if domain and _public_suffixes().is_public(domain):
                logger.warning(f"Rejecting cookie {name} for public suffix {domain}")
                continue
            accepted.append((name, cookie))

        super().update_cookies(accepted, response_url)


class AutopkgtestClient:
    """Client for autopkgtest.ubuntu.com authenticated by session cookies.

    Use as an async context manager; the cookie jar lives as long as the
    client is open.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        cookies: list[SessionCookie] | None = None,
    ) -> None:
        """Initialize client with connection settings and session cookies."""
        self.config = config or ClientConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self._cookies = list(cookies or [])
        self._session: aiohttp.ClientSession | None = None
        self._cookie_jar: PublicSuffixCookieJar | None = None

    async def __aenter__(self) -> "AutopkgtestClient":
        """Open the HTTP session."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the HTTP session."""
        await self.close()

    async def open(self) -> None:
        """Create the HTTP session and seed its cookie jar."""
        if self._session is not None:
            return

        # Domain matching keeps the session cookie on the service host
        # and its subdomains, including across redirects.
        self._cookie_jar = PublicSuffixCookieJar()
        for cookie in self._cookies:
            self._cookie_jar.update_cookies(
                _to_simple_cookie(cookie), response_url=URL(self.base_url)
            )

        self._session = aiohttp.ClientSession(
            cookie_jar=self._cookie_jar,
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def get_cookies(self) -> list[Morsel[str]]:
        """Return the cookies that would be sent to the base URL."""
        if self._cookie_jar is None:
            raise RuntimeError("client is not open")
        return list(self._cookie_jar.filter_cookies(URL(self.base_url)).values())

    async def _get(self, url: str) -> tuple[str, str]:
        """GET a URL and return the body and the final URL after redirects."""
        await self.open()
        assert self._session is not None

        try:
            async with self._session.get(
                url, max_redirects=self.config.max_redirects
            ) as response:
                body = await response.text(errors="replace")
                return body, str(response.url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"request to {url} failed: {e}") from e

    async def trigger_test(self, url: str) -> TriggerResult:
        """Submit a trigger URL generated by the link generator.

        Args:
            url: request.cgi URL

        Returns:
            Details of the submitted run

        Raises:
            AlreadyRunningError: If the same test is already in flight
            InvalidRequestError: If the service rejected the request
            AuthenticationRequiredError: If the session is missing or expired
            MalformedSuccessResponseError: If the UUID could not be parsed
            UnexpectedResponseError: If the response is not recognised
            NetworkError: On transport failure

        """
        logger.info(f"Submitting test request: {url}")
        body, final_url = await self._get(url)
        response = classify_trigger_response(body, final_url)

        if response.kind is ResponseKind.SUCCESS and response.result is not None:
            logger.info(f"Test request submitted with UUID {response.result.uuid}")
            return response.result
        if response.kind is ResponseKind.ALREADY_RUNNING:
            raise AlreadyRunningError()
        if response.kind is ResponseKind.INVALID_REQUEST:
            raise InvalidRequestError(response.message)
        if response.kind is ResponseKind.AUTH_REQUIRED:
            raise AuthenticationRequiredError()
        if response.kind is ResponseKind.MALFORMED_SUCCESS:
            raise MalformedSuccessResponseError()
        raise UnexpectedResponseError()

    async def get_test_status(self, uuid: str) -> TestStatus:
        """Read the state of a run from its /run/<uuid> page."""
        url = f"{self.base_url}/run/{uuid}"
        body, _ = await self._get(url)

        status = TestStatus(
            uuid=uuid,
            status=parse_run_status(body),
            duration=parse_duration(body),
            log_url=url,
        )
        logger.debug(f"Run {uuid} status: {status.status}")
        return status

    async def find_running_test(self, package: str, release: str, arch: str) -> str:
        """Find the UUID of an in-flight run for package/release/arch.

        Used after an AlreadyRunningError so the caller can still monitor
        the test. The package page is searched first, then /running.

        Raises:
            RunningTestNotFoundError: If no matching queued or running test
                exists, or a lookup page could not be fetched

        """
        try:
            body, _ = await self._get(f"{self.base_url}/packages/{package}")
        except NetworkError as e:
            raise RunningTestNotFoundError(package, release, arch) from e

        checked: set[str] = set()
        for uuid in self._running_candidates(body, release, arch):
            if uuid in checked:
                continue
            checked.add(uuid)
            if await self._is_active(uuid):
                logger.info(f"Found running test {uuid} on package page")
                return uuid

        try:
            body, _ = await self._get(f"{self.base_url}/running")
        except NetworkError as e:
            raise RunningTestNotFoundError(package, release, arch) from e

        if package in body:
            for uuid in dict.fromkeys(markers.RUN_HREF_RE.findall(body)):
                if uuid in checked:
                    continue
                checked.add(uuid)
                if await self._is_active(uuid):
                    logger.info(f"Found running test {uuid} on running page")
                    return uuid

        raise RunningTestNotFoundError(package, release, arch)

    def _running_candidates(self, body: str, release: str, arch: str) -> list[str]:
        """Collect UUIDs of running-test blocks matching release and arch.

        Each block lists Release/Architecture rows above a UUID row, with
        a 'Running for:' row a few lines below the UUID.
        """
        release_re = markers.running_field_re("Release", release)
        arch_re = markers.running_field_re("Architecture", arch)
        lines = body.split("\n")
        candidates: list[str] = []

        for index, line in enumerate(lines):
            if markers.RUNNING_FOR_MARKER not in line:
                continue

            start = max(index - markers.RUNNING_LOOKBACK_LINES, 0)
            for header_line in range(index - 1, start - 1, -1):
                if not markers.UUID_HEADER_RE.search(lines[header_line]):
                    continue

                uuid_line = header_line
                match = markers.UUID_CELL_RE.search(lines[header_line])
                if match is None and header_line + 1 < len(lines):
                    uuid_line = header_line + 1
                    match = markers.UUID_CELL_RE.search(lines[uuid_line])
                if match is None:
                    continue

                context = "\n".join(
                    lines[
                        max(uuid_line - markers.RUNNING_CONTEXT_BEFORE, 0) : uuid_line
                        + markers.RUNNING_CONTEXT_AFTER
                    ]
                )
                if release_re.search(context) and arch_re.search(context):
                    candidates.append(match.group(1))

        return candidates

    async def _is_active(self, uuid: str) -> bool:
        try:
            status = await self.get_test_status(uuid)
        except AutopkgtestError as e:
            logger.warning(f"Could not check status of candidate {uuid}: {e}")
            return False
        return status.status in _ACTIVE_STATUSES

    async def wait_for_completion(
        self,
        uuid: str,
        poll_interval: float = 60,
        timeout: float = 7200,
    ) -> TestStatus:
        """Poll a run until it reaches a terminal state.

        Args:
            uuid: Run UUID
            poll_interval: Seconds between polls (default: 1 minute)
            timeout: Maximum wait time in seconds (default: 2 hours)

        Returns:
            Final run status (pass, fail, neutral or tmpfail)

        Raises:
            PollTimeoutError: If the run is still not finished after timeout
            NetworkError: If any poll fails

        """
        loop = asyncio.get_running_loop()
        end_time = loop.time() + timeout

        while True:
            status = await self.get_test_status(uuid)
            if status.is_terminal:
                return status

            remaining = end_time - loop.time()
            if remaining <= 0:
                final_status = await self.get_test_status(uuid)
                if final_status.is_terminal:
                    return final_status
                raise PollTimeoutError(timeout, final_status)

            await asyncio.sleep(min(poll_interval, remaining))


def _to_simple_cookie(cookie: SessionCookie) -> SimpleCookie:
    simple_cookie: SimpleCookie = SimpleCookie()
    simple_cookie[cookie.name] = cookie.value
    morsel = simple_cookie[cookie.name]
    morsel["domain"] = cookie.domain
    morsel["path"] = cookie.path
    morsel["secure"] = cookie.secure
    morsel["httponly"] = cookie.http_only
    return simple_cookie
