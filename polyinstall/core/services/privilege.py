"""
Privilege escalation — run unprivileged first, elevate only on a
detected permission failure.

Elevation is interactive (it may block on a password prompt), so it is
never attempted speculatively.

Security invariants:
- The sudo password only ever travels on stdin (see ``UnixElevator``)
- It is never logged and never placed in argv
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from polyinstall.adapters.base import CommandRunner
from polyinstall.adapters.shell.elevation import Elevator
from polyinstall.core.models.command import CommandOptions, CommandOutcome
from polyinstall.core.models.host import HostFacts, OSKind

_log = logging.getLogger(__name__)


# Case-insensitive substrings of stdout/stderr that mark a permission failure.
PERMISSION_SIGNATURES: tuple[str, ...] = (
    "eacces",
    "eperm",
    "permission denied",
    "access denied",
    "operation not permitted",
    "requires administrator",
    "requires root",
    "run as administrator",
)


def looks_like_permission_error(outcome: CommandOutcome) -> bool:
    """Whether a failed outcome carries a permission-failure signature."""
    text = outcome.combined_output().lower()
    return any(sig in text for sig in PERMISSION_SIGNATURES)


@dataclass(frozen=True)
class ElevatedOutcome:
    """Final outcome of a possibly-elevated command."""

    outcome: CommandOutcome
    elevation_used: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome.ok


class PrivilegeEscalator:
    """Runs commands, re-running them elevated after a permission failure."""

    def __init__(
        self,
        runner: CommandRunner,
        elevator: Elevator,
        logger: logging.Logger | None = None,
    ):
        self._runner = runner
        self._elevator = elevator
        self._log = logger or _log

    @property
    def method(self) -> str:
        return self._elevator.name

    async def run_elevated_if_needed(
        self,
        argv: Sequence[str],
        options: CommandOptions | None = None,
        *,
        require_privileges: bool = False,
        password: str = "",
    ) -> ElevatedOutcome:
        """Run ``argv``; on a permission-class failure retry it elevated.

        If both attempts fail, the elevated attempt's outcome is returned.
        """
        first = await self._runner.execute(argv, options)
        if first.ok:
            return ElevatedOutcome(first, elevation_used=False)

        if not (looks_like_permission_error(first) or require_privileges):
            return ElevatedOutcome(first, elevation_used=False)

        self._log.warning(
            "Permission error running %s, retrying with %s",
            argv[0] if argv else "?",
            self._elevator.name,
        )
        elevated = await self._elevator.elevate(argv, options, password=password)
        if elevated.ok:
            self._log.info("Elevated command succeeded: %s", argv[0])
        else:
            self._log.error(
                "Elevated command failed (exit %d): %s",
                elevated.exit_code,
                elevated.error_text(200),
            )
        return ElevatedOutcome(elevated, elevation_used=True)


# ── Host helpers ────────────────────────────────────────────────


def sudo_available() -> bool:
    return shutil.which("sudo") is not None


def test_sudo_access(timeout: int = 5) -> bool:
    """Whether sudo works without a password prompt (cached or NOPASSWD)."""
    if not sudo_available():
        return False
    try:
        result = subprocess.run(
            ["sudo", "-n", "true"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


def escalation_method(host: HostFacts) -> str:
    """Display name of the elevation path this host would use."""
    if host.has_elevated_privileges:
        return "already elevated"
    if host.os_kind == OSKind.WINDOWS:
        return "UAC (User Account Control)"
    if host.is_unix:
        if sudo_available():
            return "sudo"
        if shutil.which("pkexec"):
            return "pkexec"
        return "none"
    return "unknown"


def check_write_access(directory: str | Path) -> bool:
    """Whether the current user can create files in ``directory``."""
    path = Path(directory)
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)
