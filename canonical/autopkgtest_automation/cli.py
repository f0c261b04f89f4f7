"""CLI entry point for autopkgtest automation."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import typer

from canonical.autopkgtest_automation.client import AutopkgtestClient
from canonical.autopkgtest_automation.cookies import load_cookies_from_file
from canonical.autopkgtest_automation.errors import (
    AuthenticationRequiredError,
    AutopkgtestError,
    InvalidRequestError,
    ValidationError,
)
from canonical.autopkgtest_automation.link_generator import generate_links
from canonical.autopkgtest_automation.models.client_config import (
    ClientConfig,
    SessionCookie,
)
from canonical.autopkgtest_automation.models.link_request import (
    LinkRequest,
    LinkResponse,
)
from canonical.autopkgtest_automation.models.test_result import ResultFilter
from canonical.autopkgtest_automation.orchestrator import (
    CompletionOutcome,
    TriggerOrchestrator,
)
from canonical.autopkgtest_automation.scraper import ResultScraper

VERSION = "0.1.0"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Autopkgtest automation tool")


def _client_config() -> ClientConfig:
    """Build client configuration, honouring AUTOPKGTEST_BASE_URL."""
    config = ClientConfig()
    if "AUTOPKGTEST_BASE_URL" in os.environ:
        config.base_url = os.environ["AUTOPKGTEST_BASE_URL"]
    return config


def _split_list(value: str) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _build_link_request(
    package: str,
    suite: str,
    version: str,
    arch: str,
    trigger: str,
    ppa: str,
    all_proposed: bool,
) -> LinkRequest:
    return LinkRequest(
        package=package,
        suite=suite,
        version=version or None,
        triggers=_split_list(trigger),
        architectures=_split_list(arch),
        ppa=ppa or None,
        all_proposed=all_proposed,
    )


def _generate_or_exit(request: LinkRequest) -> LinkResponse:
    request_url = f"{_client_config().base_url.rstrip('/')}/request.cgi"
    try:
        return generate_links(request, request_url)
    except ValidationError as e:
        typer.echo(f"Error generating trigger links: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def check(
    package: str = typer.Option(..., help="Package name to check"),
    verbose: bool = typer.Option(
        False, help="Show all test results, not just errors"
    ),
    release: str = typer.Option("", help="Filter by release (e.g., noble, jammy)"),
    arch: str = typer.Option("", help="Filter by architecture (e.g., amd64, arm64)"),
) -> None:
    """Check autopkgtest results for a package."""
    typer.echo(f"Checking autopkgtest results for package: {package}")
    result_filter = None
    if release or arch:
        filters = []
        if release:
            filters.append(f"release={release}")
        if arch:
            filters.append(f"arch={arch}")
        typer.echo(f"Filters: {' '.join(filters)}")
        result_filter = ResultFilter(release=release or None, architecture=arch or None)
    typer.echo("")

    config = _client_config()
    scraper = ResultScraper(config.base_url, timeout=config.request_timeout)
    try:
        results = asyncio.run(scraper.fetch_package_results(package, result_filter))
    except AutopkgtestError as e:
        logger.error(f"Failed to fetch results for {package}: {e}")
        typer.echo(f"Error fetching results: {e}", err=True)
        raise typer.Exit(code=1)

    if verbose:
        typer.echo(f"Total tests found: {len(results.tests)}\n")
        if results.tests:
            typer.echo("All test results:")
            for index, test in enumerate(results.tests, start=1):
                typer.echo(f"\nTest {index}:")
                typer.echo(test.describe(), nl=False)
            typer.echo("")

    typer.echo(results.report_errors())

    if results.errors:
        raise typer.Exit(code=1)


@app.command()
def generate_trigger_link(
    package: str = typer.Option(..., help="Package name"),
    suite: str = typer.Option(..., help="Ubuntu release (e.g., noble, jammy)"),
    version: str = typer.Option("", help="Package version"),
    arch: str = typer.Option("", help="Comma-separated architectures"),
    trigger: str = typer.Option(
        "", help="Comma-separated triggers, overrides package/version"
    ),
    ppa: str = typer.Option("", help="PPA to test against (user/ppa-name)"),
    all_proposed: bool = typer.Option(
        False, help="Install all packages from proposed pocket"
    ),
) -> None:
    """Generate autopkgtest trigger URL(s)."""
    request = _build_link_request(
        package, suite, version, arch, trigger, ppa, all_proposed
    )
    response = _generate_or_exit(request)

    typer.echo(f"Generated autopkgtest trigger URL(s) for package: {package}\n")
    typer.echo("Visit the following URL(s) in your browser:")
    typer.echo("(You must be logged into Launchpad with appropriate permissions)\n")
    for url in response.urls:
        typer.echo(url)


@app.command()
def trigger(
    package: str = typer.Option(..., help="Package name"),
    suite: str = typer.Option(..., help="Ubuntu release (e.g., noble, jammy)"),
    version: str = typer.Option("", help="Package version"),
    arch: str = typer.Option("", help="Comma-separated architectures"),
    trigger: str = typer.Option(
        "", help="Comma-separated triggers, overrides package/version"
    ),
    ppa: str = typer.Option("", help="PPA to test against (user/ppa-name)"),
    all_proposed: bool = typer.Option(
        False, help="Install all packages from proposed pocket"
    ),
    credentials: Path | None = typer.Option(  # noqa: B008
        None, help="Path to cookie file with the autopkgtest session"
    ),
    wait: bool = typer.Option(False, help="Wait for test completion"),
    timeout: float = typer.Option(7200, help="Maximum seconds to wait"),
    poll_interval: float = typer.Option(60, help="Seconds between status checks"),
) -> None:
    """Trigger autopkgtest runs using an authenticated session."""
    request = _build_link_request(
        package, suite, version, arch, trigger, ppa, all_proposed
    )
    response = _generate_or_exit(request)

    cookies: list[SessionCookie] = []
    if credentials is not None:
        try:
            cookies = load_cookies_from_file(credentials)
            typer.echo(f"Loaded {len(cookies)} cookie(s) from {credentials}\n")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cookies from {credentials}: {e}")
            typer.echo(
                f"Warning: Failed to load cookies from {credentials}: {e}\n"
                "Will attempt to trigger without authentication (may fail)\n",
                err=True,
            )

    exit_code = asyncio.run(
        _run_trigger(request, response, cookies, wait, poll_interval, timeout)
    )
    if exit_code:
        raise typer.Exit(code=exit_code)


async def _run_trigger(
    request: LinkRequest,
    response: LinkResponse,
    cookies: list[SessionCookie],
    wait: bool,
    poll_interval: float,
    timeout: float,
) -> int:
    """Submit the generated URLs and optionally wait; return the exit code."""
    async with AutopkgtestClient(_client_config(), cookies) as client:
        orchestrator = TriggerOrchestrator(client)
        try:
            outcome = await orchestrator.submit(request, response)
        except AuthenticationRequiredError:
            _echo_auth_help(client.base_url, response.urls)
            return 1
        except InvalidRequestError as e:
            typer.echo(f"✗ {e}", err=True)
            return 1
        except AutopkgtestError as e:
            typer.echo(f"Error triggering test: {e}", err=True)
            return 1

        for url, error in outcome.skipped:
            typer.echo(f"Could not find running test UUID: {error}", err=True)
            typer.echo(f"\tTrigger URL: {url}", err=True)

        for result in outcome.submitted:
            typer.echo(f"✓ {result.package} [{result.release}/{result.arch}]")
            typer.echo(f"\tUUID:     {result.uuid}")
            typer.echo(f"\tResults:  {result.result_url}\n")

        if not outcome.submitted:
            typer.echo("No tests were triggered.", err=True)
            return 1

        if not wait:
            typer.echo("Tests triggered. Check status and logs at:")
            for result in outcome.submitted:
                typer.echo(
                    f"  • {result.package} ({result.release}/{result.arch}) - "
                    f"{client.base_url}/packages/{result.package}"
                )
            typer.echo("\nTip: Use --wait to monitor test completion automatically.")
            return 0

        typer.echo(
            f"Waiting for test completion (timeout: {timeout}s, "
            f"poll interval: {poll_interval}s)...\n"
        )
        outcomes = await orchestrator.wait_all(
            outcome.submitted, poll_interval=poll_interval, timeout=timeout
        )

    for completion in outcomes:
        _echo_completion(completion)

    if all(completion.succeeded for completion in outcomes):
        typer.echo("All tests completed successfully.")
        return 0

    typer.echo("One or more tests failed or timed out.", err=True)
    return 1


def _echo_auth_help(base_url: str, urls: list[str]) -> None:
    typer.echo(
        "\nAuthentication required!\n\n"
        "Please authenticate in your browser:\n"
        f"\t1. Visit: {base_url}/login\n"
        "\t2. Log in with your Launchpad credentials\n"
        "\t3. Save the value of the 'session' cookie to a file\n"
        "\t4. Retry with: --credentials <cookie-file>\n\n"
        "Alternatively, open the URL(s) manually in your browser:",
        err=True,
    )
    for url in urls:
        typer.echo(f"  {url}", err=True)


def _echo_completion(completion: CompletionOutcome) -> None:
    result = completion.result
    typer.echo(f"{result.package} [{result.release}/{result.arch}] {result.uuid}")

    if completion.status is None:
        typer.echo(f"Error monitoring test: {completion.error}\n", err=True)
        return

    status = completion.status
    labels = {"pass": "✓ PASS", "fail": "✗ FAIL", "neutral": "○ NEUTRAL"}
    line = labels.get(status.status, f"? {status.status.upper()}")
    if status.duration:
        line += f" (Duration: {status.duration})"
    typer.echo(line)
    typer.echo(f"Results: {status.log_url}\n")


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"autopkgtest-cli version {VERSION}")


if __name__ == "__main__":  # pragma: no cover
    app()
