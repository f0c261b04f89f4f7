"""Models for autopkgtest trigger link generation."""

from pydantic import BaseModel, Field


class LinkRequest(BaseModel):
    """Parameters of a request.cgi test request.

    Required fields are checked by the link generator rather than by the
    model so that callers get a ``ValidationError`` from this package.
    """

    package: str = Field(default="", description="Source package name (required)")
    suite: str = Field(default="", description="Release codename (required)")
    version: str | None = Field(default=None, description="Package version")
    triggers: list[str] = Field(
        default_factory=list, description="Explicit triggers, override version"
    )
    architectures: list[str] = Field(
        default_factory=list, description="Architectures, one URL per entry"
    )
    ppa: str | None = Field(default=None, description="PPA as owner/name")
    all_proposed: bool = Field(
        default=False, description="Install all packages from -proposed"
    )

    def describe(self) -> str:
        """Render a tab-separated summary of the request."""
        lines = [f"Package:\t{self.package}", f"Suite:\t{self.suite}"]
        if self.version:
            lines.append(f"Version:\t{self.version}")
        if self.triggers:
            lines.append(f"Trigger(s):\t{', '.join(self.triggers)}")
        if self.architectures:
            lines.append(f"Arch(s):\t{', '.join(self.architectures)}")
        else:
            lines.append("Arch(s):\tall")
        if self.ppa:
            lines.append(f"PPA:\t{self.ppa}")
        if self.all_proposed:
            lines.append("All-Proposed:\tyes")
        return "\n".join(lines) + "\n"


class LinkResponse(BaseModel):
    """Generated trigger URLs."""

    urls: list[str] = Field(default_factory=list, description="Trigger URLs")
    message: str = Field(default="", description="Human-readable summary")

    def describe(self) -> str:
        """Render the message followed by the URL list."""
        lines = [self.message, ""]
        if len(self.urls) == 1:
            lines += ["Trigger URL:", self.urls[0]]
        else:
            lines.append("Trigger URLs:")
            lines += [f"{index}. {url}" for index, url in enumerate(self.urls, 1)]
        return "\n".join(lines) + "\n"
