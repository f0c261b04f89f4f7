"""Tests for cookie file loading."""

from pathlib import Path

import pytest

from canonical.autopkgtest_automation.cookies import load_cookies_from_file


def test_load_cookies_from_file(tmp_path: Path) -> None:
    """The file content becomes the session cookie value."""
    cookie_file = tmp_path / "cookies.txt"
    cookie_file.write_text("  abc123-session\n")

    cookies = load_cookies_from_file(cookie_file)

    assert len(cookies) == 1
    assert cookies[0].name == "session"
    assert cookies[0].value == "abc123-session"


def test_load_cookies_from_empty_file(tmp_path: Path) -> None:
    """load_cookies_from_file raises ValueError for empty files."""
    cookie_file = tmp_path / "cookies.txt"
    cookie_file.write_text("\n")

    with pytest.raises(ValueError, match="cookie file is empty"):
        load_cookies_from_file(cookie_file)


def test_load_cookies_from_missing_file(tmp_path: Path) -> None:
    """load_cookies_from_file raises FileNotFoundError for missing files."""
    with pytest.raises(FileNotFoundError):
        load_cookies_from_file(tmp_path / "missing.txt")
