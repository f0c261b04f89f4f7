"""Fetch and parse the autopkgtest results matrix of a package."""

import asyncio
import logging
import re
from collections.abc import Iterator
from urllib.parse import urljoin

import aiohttp
import lxml.etree
import lxml.html
from lxml.html import HtmlElement

from canonical.autopkgtest_automation.errors import NetworkError, UpstreamStatusError
from canonical.autopkgtest_automation.markers import (
    DEFAULT_BASE_URL,
    KNOWN_ARCHITECTURES,
    KNOWN_RELEASES,
    MATRIX_TABLE_CLASS,
)
from canonical.autopkgtest_automation.models.test_result import (
    PackageResults,
    ResultFilter,
    TestResult,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_ROW_SECTIONS = ("thead", "tbody", "tfoot")


def normalize_status(text: str) -> str:
    """Collapse whitespace in a status cell, keeping emoji and prefixes."""
    text = text.replace("\n", " ").replace("\t", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


class ResultScraper:
    """Reads the release x architecture matrix from /packages/<package>."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30) -> None:
        """Initialize scraper with the service base URL."""
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch_package_results(
        self, package: str, result_filter: ResultFilter | None = None
    ) -> PackageResults:
        """Fetch the package page and parse its results matrix.

        Args:
            package: Source package name
            result_filter: Optional release/architecture restriction

        Returns:
            Parsed results with the derived error list

        Raises:
            NetworkError: On transport failure
            UpstreamStatusError: If the page is not served with HTTP 200

        """
        url = f"{self.base_url}/packages/{package}"
        logger.debug(f"Fetching package results from {url}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise UpstreamStatusError(response.status, url)
                    body = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"failed to fetch package results: {e}") from e

        return self.parse_html(body, package, result_filter)

    def parse_html(
        self, body: str, package: str, result_filter: ResultFilter | None = None
    ) -> PackageResults:
        """Extract results from a package page.

        A page without a recognisable matrix yields no results.
        """
        if not body.strip():
            return PackageResults(package=package)

        try:
            document = lxml.html.document_fromstring(body)
        except lxml.etree.ParserError:
            logger.debug(f"No HTML content in page for {package}")
            return PackageResults(package=package)

        table = self._find_matrix_table(document)
        if table is None:
            logger.debug(f"No results matrix found for {package}")
            return PackageResults(package=package)

        tests = list(self._parse_matrix(table, package))
        if result_filter is not None:
            tests = [test for test in tests if result_filter.matches(test)]

        return PackageResults.from_tests(package, tests)

    def _find_matrix_table(self, document: HtmlElement) -> HtmlElement | None:
        """Return the first table that looks like the results matrix."""
        for table in document.iter("table"):
            classes = (table.get("class") or "").split()
            if MATRIX_TABLE_CLASS not in classes:
                continue

            text = table.text_content()
            has_release = any(release in text for release in KNOWN_RELEASES)
            has_arch = any(arch in text for arch in KNOWN_ARCHITECTURES)
            if has_release and has_arch:
                return table

        return None

    def _iter_rows(self, table: HtmlElement) -> Iterator[tuple[HtmlElement, bool]]:
        """Yield (row, in_thead) for rows directly under the table or a section."""
        for child in table:
            if child.tag == "tr":
                yield child, False
            elif child.tag in _ROW_SECTIONS:
                for row in child:
                    if row.tag == "tr":
                        yield row, child.tag == "thead"

    def _parse_matrix(
        self, table: HtmlElement, package: str
    ) -> Iterator[TestResult]:
        """Yield one result per populated cell.

        The header row keeps its leading corner cell, so the cell at
        column ``k`` of a body row belongs to ``releases[k]`` and column
        0 holds the architecture.
        """
        releases: list[str] | None = None

        for row, in_thead in self._iter_rows(table):
            cells = [cell for cell in row if cell.tag in ("th", "td")]
            if releases is None:
                if in_thead or any(cell.tag == "th" for cell in cells):
                    releases = [cell.text_content().strip() for cell in cells]
                continue

            if not cells:
                continue
            architecture = cells[0].text_content().strip()
            if not architecture:
                continue

            for column, cell in enumerate(cells[1 : len(releases)], start=1):
                release = releases[column]
                status = normalize_status(cell.text_content())
                if not release or not status:
                    continue

                yield TestResult(
                    package=package,
                    release=release,
                    architecture=architecture,
                    status=status,
                    log_url=self._extract_link(cell),
                )

    def _extract_link(self, cell: HtmlElement) -> str | None:
        """Return the first link in a cell as an absolute URL."""
        for anchor in cell.iter("a"):
            href = anchor.get("href")
            if href:
                return urljoin(f"{self.base_url}/", href)
        return None
