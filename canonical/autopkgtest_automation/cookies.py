"""Load session cookies exported from a browser."""

from pathlib import Path

from canonical.autopkgtest_automation.models.client_config import SessionCookie


def load_cookies_from_file(path: Path) -> list[SessionCookie]:
    """Read a session cookie value from a plain text file.

    Args:
        path: File containing the value of the ``session`` cookie

    Returns:
        Cookies to seed the client with

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty

    """
    value = path.read_text().strip()
    if not value:
        raise ValueError(f"cookie file is empty: {path}")

    return [SessionCookie(value=value)]
