"""
Host detection — OS, architecture, container, CI and privilege facts.

Read-only probes. Every probe is best-effort: anything that cannot be
determined falls back to the conservative answer (unknown / False).
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

from polyinstall.core.models.host import ArchKind, HostFacts, OSKind

logger = logging.getLogger(__name__)


_OS_MAP: dict[str, OSKind] = {
    "linux": OSKind.LINUX,
    "darwin": OSKind.MACOS,
    "windows": OSKind.WINDOWS,
}

# Architecture name normalization (uname -m / platform.machine()).
_ARCH_MAP: dict[str, ArchKind] = {
    "x86_64": ArchKind.X64,
    "amd64": ArchKind.X64,      # Windows / WSL2
    "i386": ArchKind.X86,
    "i686": ArchKind.X86,
    "x86": ArchKind.X86,
    "aarch64": ArchKind.ARM64,
    "arm64": ArchKind.ARM64,    # macOS (Darwin reports arm64)
    "armv7l": ArchKind.ARM,
    "armv6l": ArchKind.ARM,
    "arm": ArchKind.ARM,
}

_CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_ID",
    "BUILD_NUMBER",
    "JENKINS_URL",
    "TRAVIS",
    "CIRCLECI",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "TF_BUILD",             # Azure Pipelines
)


def detect_os() -> OSKind:
    kind = _OS_MAP.get(platform.system().lower(), OSKind.UNKNOWN)
    if kind == OSKind.UNKNOWN:
        logger.warning("Unknown platform: %s", platform.system())
    return kind


def detect_arch() -> ArchKind:
    machine = platform.machine().lower()
    kind = _ARCH_MAP.get(machine, ArchKind.UNKNOWN)
    if kind == ArchKind.UNKNOWN:
        logger.warning("Unknown architecture: %s", machine)
    return kind


def detect_container(root: Path = Path("/")) -> bool:
    """Docker / Kubernetes confinement markers."""
    if (root / ".dockerenv").exists():
        return True
    if (root / "var/run/secrets/kubernetes.io").exists():
        return True
    try:
        cgroup = (root / "proc/1/cgroup").read_text()
    except OSError:
        return False
    return "docker" in cgroup or "kubepods" in cgroup or "containerd" in cgroup


def detect_ci(environ: dict[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return any(env.get(name) for name in _CI_ENV_VARS)


def has_elevated_privileges() -> bool:
    """root on Unix, Administrator on Windows."""
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0
    try:
        import ctypes

        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return False


def describe_host() -> HostFacts:
    """Synchronous facts snapshot of the current host."""
    facts = HostFacts(
        os_kind=detect_os(),
        arch_kind=detect_arch(),
        is_container=detect_container(),
        is_ci=detect_ci(),
        has_elevated_privileges=has_elevated_privileges(),
    )
    logger.debug("Host facts: %s", facts.model_dump(mode="json"))
    return facts
