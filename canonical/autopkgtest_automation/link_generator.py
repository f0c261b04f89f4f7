"""Build request.cgi URLs that trigger autopkgtest runs.

The generated URLs must be opened by a user logged into Launchpad with
upload rights for the package, either in a browser or through
``AutopkgtestClient.trigger_test``.
"""

from urllib.parse import urlencode

from canonical.autopkgtest_automation.errors import ValidationError
from canonical.autopkgtest_automation.markers import DEFAULT_TRIGGER, REQUEST_URL
from canonical.autopkgtest_automation.models.link_request import (
    LinkRequest,
    LinkResponse,
)


def resolve_trigger(request: LinkRequest) -> str:
    """Pick the trigger parameter: explicit triggers, then version, then default."""
    if request.triggers:
        return " ".join(request.triggers)
    if request.version:
        return f"{request.package}/{request.version}"
    return DEFAULT_TRIGGER


def build_url(
    request: LinkRequest,
    trigger: str,
    arch: str | None = None,
    base_url: str = REQUEST_URL,
) -> str:
    """Build a single trigger URL, optionally restricted to one architecture."""
    params = {
        "release": request.suite,
        "package": request.package,
        "trigger": trigger,
    }
    if arch is not None:
        params["arch"] = arch
    if request.ppa:
        params["ppa"] = request.ppa
    if request.all_proposed:
        params["all-proposed"] = "1"

    return f"{base_url}?{urlencode(params)}"


def generate_links(request: LinkRequest, base_url: str = REQUEST_URL) -> LinkResponse:
    """Generate one trigger URL per architecture, or one for all of them.

    Args:
        request: Package, suite and optional trigger details
        base_url: request.cgi endpoint

    Returns:
        Generated URLs in architecture order and a summary message

    Raises:
        ValidationError: If package, suite or an architecture entry is empty

    """
    if not request.package:
        raise ValidationError("package name is required")
    if not request.suite:
        raise ValidationError("suite (release) is required")
    if any(not arch for arch in request.architectures):
        raise ValidationError("architecture entries must not be empty")

    trigger = resolve_trigger(request)

    if request.architectures:
        urls = [
            build_url(request, trigger, arch, base_url)
            for arch in request.architectures
        ]
        message = (
            f"Generated {len(urls)} trigger URL(s) for package '{request.package}' "
            f"on {request.suite} ({', '.join(request.architectures)})"
        )
    else:
        urls = [build_url(request, trigger, base_url=base_url)]
        message = (
            f"Generated trigger URL for package '{request.package}' "
            f"on {request.suite} (all architectures)"
        )

    return LinkResponse(urls=urls, message=message)
