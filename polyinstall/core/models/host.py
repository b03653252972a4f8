"""
HostFacts — synchronous snapshot of the machine we are installing on.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class OSKind(StrEnum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


class ArchKind(StrEnum):
    X64 = "x64"
    X86 = "x86"
    ARM64 = "arm64"
    ARM = "arm"
    UNKNOWN = "unknown"


class HostFacts(BaseModel):
    """Facts gathered once per run by the host-environment probe."""

    os_kind: OSKind = OSKind.UNKNOWN
    arch_kind: ArchKind = ArchKind.UNKNOWN
    is_container: bool = False
    is_ci: bool = False
    has_elevated_privileges: bool = False

    @property
    def is_unix(self) -> bool:
        return self.os_kind in (OSKind.LINUX, OSKind.MACOS)
