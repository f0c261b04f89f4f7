"""Text markers and patterns scraped from autopkgtest.ubuntu.com pages.

The service has no API; these strings are the contract with its HTML.
Keep every page-specific token here so layout changes only touch this
module.
"""

import re

DEFAULT_BASE_URL = "https://autopkgtest.ubuntu.com"
REQUEST_URL = f"{DEFAULT_BASE_URL}/request.cgi"
DEFAULT_TRIGGER = "migration-reference/0"

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
UUID_RE = re.compile(rf"^{UUID_PATTERN}$")

# Results matrix
KNOWN_RELEASES = (
    "trusty",
    "xenial",
    "bionic",
    "focal",
    "jammy",
    "kinetic",
    "lunar",
    "mantic",
    "noble",
    "oracular",
    "plucky",
    "questing",
    "resolute",
)
KNOWN_ARCHITECTURES = (
    "amd64",
    "arm64",
    "armhf",
    "i386",
    "ppc64el",
    "riscv64",
    "s390x",
)
MATRIX_TABLE_CLASS = "table"
PASSING_STATUSES = frozenset({"pass", "✔ pass", "neutral", "😐 neutral"})

# request.cgi responses
SUBMITTED_MARKER = "Test request submitted"
INVALID_REQUEST_MARKER = "You submitted an invalid request"
ALREADY_RUNNING_MARKER = "Test already running"
LOGIN_PATH_MARKER = "/login"
LOGIN_MARKER = "login"
LOGOUT_MARKER = "Logout"


def _submitted_field(label: str, value: str = r"([^<\s]+)") -> re.Pattern[str]:
    """Match a field of the submission block in plain text or <dl> form."""
    return re.compile(
        rf"(?:^[ \t]*{label}[ \t]*\n\s*"
        rf"|<dt>\s*{label}\s*</dt>\s*<dd>\s*(?:<a[^>]*>)?)"
        rf"{value}",
        re.MULTILINE,
    )


SUBMITTED_UUID_RE = _submitted_field("UUID", rf"({UUID_PATTERN})")
SUBMITTED_RESULT_URL_RE = _submitted_field("Result url")
SUBMITTED_HISTORY_URL_RE = _submitted_field("Result history")
SUBMITTED_PACKAGE_RE = _submitted_field("package")
SUBMITTED_RELEASE_RE = _submitted_field("release")
SUBMITTED_ARCH_RE = _submitted_field("arch")
SUBMITTED_REQUESTER_RE = _submitted_field("requester")
SUBMITTED_TRIGGERS_RE = _submitted_field("triggers", r"([^\n<]+?)\s*(?:</dd>|\n|$)")

INVALID_REQUEST_MESSAGE_RE = re.compile(
    rf"{INVALID_REQUEST_MARKER}:\s*([^<\n]+)",
)

# /run/<uuid> page
RESULT_ROW_RE = re.compile(
    r"\|\s*Result\s*\|([^|]*)\|"
    r"|<t[hd][^>]*>\s*Result:?\s*</t[hd]>\s*<td[^>]*>(.*?)</td>",
    re.IGNORECASE | re.DOTALL,
)
# Most specific first: "tmpfail" contains "fail".
RESULT_VERDICTS = (
    ("tmpfail", "tmpfail"),
    ("fail", "fail"),
    ("pass", "pass"),
    ("neutral", "neutral"),
)
IN_PROGRESS_MARKER = "In progress"
QUEUED_MARKER = "Queued"
DURATION_RE = re.compile(r"Duration\s*(?::|\|)\s*([^|\n<]+)")

# /packages/<package> and /running pages
RUNNING_FOR_MARKER = "Running for:"
UUID_HEADER_RE = re.compile(r"<th>\s*UUID:\s*</th>")
UUID_CELL_RE = re.compile(rf"<td>\s*({UUID_PATTERN})\s*</td>")
RUN_HREF_RE = re.compile(rf"/run/({UUID_PATTERN})")
RUNNING_LOOKBACK_LINES = 20
RUNNING_CONTEXT_BEFORE = 50
RUNNING_CONTEXT_AFTER = 10


def running_field_re(label: str, value: str) -> re.Pattern[str]:
    """Match a ``<th>label:</th><td>value</td>`` pair across whitespace."""
    return re.compile(rf"<th>\s*{label}:\s*</th>\s*<td>\s*{re.escape(value)}\s*</td>")
