"""Tests for the results matrix scraper."""

import aiohttp
import pytest
from aioresponses import aioresponses

from canonical.autopkgtest_automation.errors import NetworkError, UpstreamStatusError
from canonical.autopkgtest_automation.models.test_result import ResultFilter
from canonical.autopkgtest_automation.scraper import ResultScraper, normalize_status

OVN_PAGE = """
<!DOCTYPE html>
<html>
<head><title>autopkgtest results for ovn</title></head>
<body>
<h1>Package: ovn</h1>
<table class="table" style="width: auto">
  <tbody>
  <tr>
    <th></th>
    <th>focal</th><th>jammy</th><th>noble</th>
  </tr>
  <tr>
    <th>amd64</th>
    <td class="pass">
      <a href="ovn/focal/amd64">pass</a>
    </td>
    <td class="pass">
      <a href="ovn/jammy/amd64">pass</a>
    </td>
    <td class="fail">
      <a href="ovn/noble/amd64">fail</a>
    </td>
  </tr>
  <tr>
    <th>arm64</th>
    <td class="pass">
      <a href="ovn/focal/arm64">pass</a>
    </td>
    <td class="regression">
      <a href="ovn/jammy/arm64">regression</a>
    </td>
    <td class="pass">
      <a href="ovn/noble/arm64">pass</a>
    </td>
  </tr>
  </tbody>
</table>
</body>
</html>
"""

PASSING_PAGE = """
<html><body>
<table class="table">
  <tr><th></th><th>focal</th><th>jammy</th></tr>
  <tr>
    <th>amd64</th>
    <td><a href="/packages/t/test-pkg/focal/amd64">✔ pass</a></td>
    <td><a href="/packages/t/test-pkg/jammy/amd64">😐 neutral</a></td>
  </tr>
  <tr>
    <th>arm64</th>
    <td>pass</td>
    <td>neutral</td>
  </tr>
</table>
</body></html>
"""


@pytest.fixture
def scraper() -> ResultScraper:
    """Create scraper against the default service URL."""
    return ResultScraper()


def test_parse_html_matrix_with_errors(scraper: ResultScraper) -> None:
    """parse_html maps each cell to its release and architecture."""
    results = scraper.parse_html(OVN_PAGE, "ovn")

    assert results.package == "ovn"
    assert len(results.tests) == 6
    assert [(t.architecture, t.release, t.status) for t in results.tests] == [
        ("amd64", "focal", "pass"),
        ("amd64", "jammy", "pass"),
        ("amd64", "noble", "fail"),
        ("arm64", "focal", "pass"),
        ("arm64", "jammy", "regression"),
        ("arm64", "noble", "pass"),
    ]

    assert len(results.errors) == 2
    assert (results.errors[0].release, results.errors[0].architecture) == (
        "noble",
        "amd64",
    )
    assert results.errors[0].status == "fail"
    assert (results.errors[1].release, results.errors[1].architecture) == (
        "jammy",
        "arm64",
    )
    assert results.errors[1].status == "regression"


def test_parse_html_resolves_links(scraper: ResultScraper) -> None:
    """parse_html resolves relative and absolute links against the base URL."""
    results = scraper.parse_html(OVN_PAGE, "ovn")
    assert results.tests[0].log_url == "https://autopkgtest.ubuntu.com/ovn/focal/amd64"

    results = scraper.parse_html(PASSING_PAGE, "test-pkg")
    assert (
        results.tests[0].log_url
        == "https://autopkgtest.ubuntu.com/packages/t/test-pkg/focal/amd64"
    )
    assert results.tests[2].log_url is None


def test_parse_html_pass_and_neutral_are_not_errors(scraper: ResultScraper) -> None:
    """Pass and neutral statuses, with or without emoji, are not errors."""
    results = scraper.parse_html(PASSING_PAGE, "test-pkg")

    assert len(results.tests) == 4
    assert results.tests[0].status == "✔ pass"
    assert results.tests[1].status == "😐 neutral"
    assert results.errors == []


def test_parse_html_empty(scraper: ResultScraper) -> None:
    """Empty documents parse to no results."""
    assert scraper.parse_html("", "pkg").tests == []
    assert scraper.parse_html("   \n", "pkg").tests == []


@pytest.mark.parametrize("body", ["<!DOCTYPE html>", "<!-- nothing -->"])
def test_parse_html_without_elements(scraper: ResultScraper, body: str) -> None:
    """Documents without any element parse to no results."""
    results = scraper.parse_html(body, "ovn")

    assert results.tests == []
    assert results.errors == []


def test_parse_html_without_matrix(scraper: ResultScraper) -> None:
    """Pages without a matrix table parse to no results."""
    page = "<html><body><h1>No results found</h1></body></html>"
    results = scraper.parse_html(page, "pkg")

    assert results.tests == []
    assert results.errors == []


def test_parse_html_skips_tables_without_matrix_content(
    scraper: ResultScraper,
) -> None:
    """Tables lacking the class or the release/arch names are ignored."""
    page = """
    <html><body>
    <table class="table"><tr><th>Name</th></tr><tr><td>value</td></tr></table>
    <table><tr><th></th><th>noble</th></tr><tr><th>amd64</th><td>fail</td></tr></table>
    <table class="table striped">
      <tr><th></th><th>noble</th></tr>
      <tr><th>amd64</th><td>pass</td></tr>
    </table>
    </body></html>
    """
    results = scraper.parse_html(page, "pkg")

    assert len(results.tests) == 1
    assert results.tests[0].status == "pass"


def test_parse_html_header_only(scraper: ResultScraper) -> None:
    """A matrix with only the release header yields no results."""
    page = """
    <table class="table">
      <tr><th></th><th>jammy</th><th>noble</th><th>amd64</th></tr>
    </table>
    """
    assert scraper.parse_html(page, "pkg").tests == []


def test_parse_html_truncates_long_rows(scraper: ResultScraper) -> None:
    """Cells beyond the release header are dropped."""
    page = """
    <table class="table">
      <thead><tr><td></td><td>noble</td></tr></thead>
      <tbody>
        <tr><td>amd64</td><td>pass</td><td>fail</td><td>fail</td></tr>
      </tbody>
    </table>
    """
    results = scraper.parse_html(page, "pkg")

    assert len(results.tests) == 1
    assert results.tests[0].release == "noble"
    assert results.errors == []


def test_parse_html_skips_empty_cells_and_rows(scraper: ResultScraper) -> None:
    """Rows without architecture and cells without status are skipped."""
    page = """
    <table class="table">
      <tr><th></th><th>jammy</th><th>noble</th></tr>
      <tr><th></th><td>fail</td><td>fail</td></tr>
      <tr><th>s390x</th><td>  </td><td>always
          failed</td></tr>
    </table>
    """
    results = scraper.parse_html(page, "pkg")

    assert len(results.tests) == 1
    assert results.tests[0].architecture == "s390x"
    assert results.tests[0].release == "noble"
    assert results.tests[0].status == "always failed"


def test_parse_html_with_filter(scraper: ResultScraper) -> None:
    """Filters match release and architecture case-insensitively."""
    results = scraper.parse_html(
        OVN_PAGE, "ovn", ResultFilter(release="NOBLE", architecture="amd64")
    )

    assert len(results.tests) == 1
    assert results.tests[0].status == "fail"
    assert len(results.errors) == 1

    results = scraper.parse_html(OVN_PAGE, "ovn", ResultFilter(architecture="arm64"))
    assert len(results.tests) == 3
    assert [e.status for e in results.errors] == ["regression"]


def test_normalize_status() -> None:
    """normalize_status collapses whitespace and keeps emoji."""
    assert normalize_status("\n  ✖\tfail \n ") == "✖ fail"
    assert normalize_status("pass") == "pass"


async def test_fetch_package_results_success() -> None:
    """fetch_package_results fetches the package page and parses it."""
    scraper = ResultScraper()

    with aioresponses() as m:
        m.get("https://autopkgtest.ubuntu.com/packages/ovn", status=200, body=OVN_PAGE)

        results = await scraper.fetch_package_results("ovn")

    assert len(results.tests) == 6
    assert len(results.errors) == 2


async def test_fetch_package_results_filtered() -> None:
    """fetch_package_results applies the filter after parsing."""
    scraper = ResultScraper()

    with aioresponses() as m:
        m.get("https://autopkgtest.ubuntu.com/packages/ovn", status=200, body=OVN_PAGE)

        results = await scraper.fetch_package_results(
            "ovn", ResultFilter(release="focal")
        )

    assert len(results.tests) == 2
    assert results.errors == []


async def test_fetch_package_results_not_found() -> None:
    """fetch_package_results raises UpstreamStatusError on non-200."""
    scraper = ResultScraper()

    with aioresponses() as m:
        m.get("https://autopkgtest.ubuntu.com/packages/nope", status=404)

        with pytest.raises(UpstreamStatusError) as exc_info:
            await scraper.fetch_package_results("nope")

    assert exc_info.value.status_code == 404
    assert "unexpected status code: 404" in str(exc_info.value)


async def test_fetch_package_results_network_error() -> None:
    """fetch_package_results wraps transport failures in NetworkError."""
    scraper = ResultScraper(base_url="https://autopkgtest.example.com/")

    with aioresponses() as m:
        m.get(
            "https://autopkgtest.example.com/packages/ovn",
            exception=aiohttp.ClientConnectionError("connection refused"),
        )

        with pytest.raises(NetworkError, match="connection refused"):
            await scraper.fetch_package_results("ovn")


async def test_fetch_package_results_invalid_utf8() -> None:
    """Undecodable bytes are replaced instead of failing the fetch."""
    scraper = ResultScraper()

    with aioresponses() as m:
        m.get(
            "https://autopkgtest.ubuntu.com/packages/ovn",
            status=200,
            body=b"<html>\xff\xfe</html>",
            content_type="text/html",
        )

        results = await scraper.fetch_package_results("ovn")

    assert results.tests == []
