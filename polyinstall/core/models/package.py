"""
Package models — what the user asked to install, and with which tool.
"""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class PackageManager(StrEnum):
    """Supported package managers, in probe order."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"


DEFAULT_MANAGER = PackageManager.NPM


class InstallationKind(StrEnum):
    """Where a package lands."""

    LOCAL = "local"
    GLOBAL = "global"
    DEV = "dev"


# "@scope/name@1.2.3", "name@^2", "name"
_SPEC_RE = re.compile(r"^(?P<name>@?[^@\s]+)(?:@(?P<version>[^@\s]+))?$")


class PackageSpec(BaseModel):
    """A single requested package. Immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: str | None = None
    kind: InstallationKind = InstallationKind.LOCAL
    optional: bool = False

    @property
    def requirement(self) -> str:
        """The token handed to the package manager (``name@version``)."""
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name

    @classmethod
    def parse(
        cls,
        text: str,
        kind: InstallationKind = InstallationKind.LOCAL,
        optional: bool = False,
    ) -> PackageSpec:
        """Parse ``name[@version]``, including scoped names.

        Raises:
            ValueError: If the text is not a package requirement.
        """
        m = _SPEC_RE.match(text.strip())
        if not m:
            raise ValueError(f"Invalid package requirement: {text!r}")
        return cls(
            name=m.group("name"),
            version=m.group("version"),
            kind=kind,
            optional=optional,
        )

    def __str__(self) -> str:
        return self.requirement
