"""
Privilege elevation — one implementation per platform family.

An ``Elevator`` re-runs a command with higher OS privileges. It is picked
ONCE at startup from the host facts (``select_elevator``) and never
re-dispatched per call.

Each family tries its interactive prompt first and falls back to the
OS-native mechanism:

    Unix     sudo (password via stdin when supplied)  →  pkexec
    Windows  gsudo / sudo                             →  PowerShell RunAs

Security invariants:
- Password piped via stdin only (``sudo -S``)
- ``-k`` invalidates cached credentials every time
- Password never logged, never written to disk, never in argv
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from polyinstall.adapters.base import CommandRunner
from polyinstall.core.models.command import (
    EXIT_CANNOT_EXECUTE,
    CommandOptions,
    CommandOutcome,
)
from polyinstall.core.models.host import HostFacts, OSKind

logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]


class Elevator(ABC):
    """Capability: run a command with elevated privileges."""

    def __init__(self, runner: CommandRunner, which: Which = shutil.which):
        self._runner = runner
        self._which = which

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name of the mechanism (e.g. 'sudo', 'UAC')."""

    @abstractmethod
    async def elevate(
        self,
        argv: Sequence[str],
        options: CommandOptions | None = None,
        *,
        password: str = "",
    ) -> CommandOutcome:
        """Run ``argv`` elevated. Never raises for command failures."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class DirectElevator(Elevator):
    """Process already runs as root/admin; no prefix needed."""

    @property
    def name(self) -> str:
        return "already elevated"

    async def elevate(self, argv, options=None, *, password=""):
        logger.debug("Already have elevated privileges, executing directly")
        return await self._runner.execute(argv, options)


class UnixElevator(Elevator):
    """sudo first, pkexec as the OS-native fallback."""

    @property
    def name(self) -> str:
        return "sudo"

    async def elevate(self, argv, options=None, *, password=""):
        options = options or CommandOptions()
        argv = list(argv)

        if self._which("sudo"):
            if password:
                # Password on stdin only; never in argv, never logged.
                cmd = ["sudo", "-S", "-k", *argv]
                opts = options.model_copy(update={"input": password + "\n"})
            else:
                cmd = ["sudo", *argv]
                opts = options
            logger.info("Requesting elevation via sudo for: %s", argv[0])
            outcome = await self._runner.execute(cmd, opts)
            if password and _wrong_password(outcome):
                outcome = outcome.model_copy(
                    update={"stderr": outcome.stderr + "\nWrong sudo password."},
                )
            return outcome

        if self._which("pkexec"):
            logger.info("sudo not available, trying pkexec for: %s", argv[0])
            return await self._runner.execute(["pkexec", *argv], options)

        return CommandOutcome.failure(
            argv,
            EXIT_CANNOT_EXECUTE,
            "No privilege elevation mechanism found (tried sudo, pkexec)",
        )


class WindowsElevator(Elevator):
    """gsudo/sudo first, PowerShell ``Start-Process -Verb RunAs`` fallback."""

    @property
    def name(self) -> str:
        return "UAC (User Account Control)"

    async def elevate(self, argv, options=None, *, password=""):
        options = options or CommandOptions()
        argv = list(argv)

        for prompt in ("gsudo", "sudo"):
            if self._which(prompt):
                logger.info("Requesting elevation via %s for: %s", prompt, argv[0])
                return await self._runner.execute([prompt, *argv], options)

        logger.info("No sudo front end found, trying PowerShell RunAs for: %s", argv[0])
        return await self._runner.execute(
            powershell_runas_args(argv, options.cwd),
            options,
        )


class UnsupportedElevator(Elevator):
    """Unknown platform: elevation always fails, with an explanation."""

    @property
    def name(self) -> str:
        return "unknown"

    async def elevate(self, argv, options=None, *, password=""):
        return CommandOutcome.failure(
            list(argv),
            EXIT_CANNOT_EXECUTE,
            "Privilege elevation is not supported on this platform",
        )


def select_elevator(
    host: HostFacts,
    runner: CommandRunner,
    which: Which = shutil.which,
) -> Elevator:
    """Pick the elevation capability for this host."""
    if host.has_elevated_privileges:
        return DirectElevator(runner, which)
    if host.os_kind in (OSKind.LINUX, OSKind.MACOS):
        return UnixElevator(runner, which)
    if host.os_kind == OSKind.WINDOWS:
        return WindowsElevator(runner, which)
    logger.warning("No elevation support for OS kind: %s", host.os_kind)
    return UnsupportedElevator(runner, which)


# ── Helpers ─────────────────────────────────────────────────────


def _ps_quote(value: str) -> str:
    """Single-quote a value for PowerShell."""
    return "'" + value.replace("'", "''") + "'"


def powershell_runas_args(argv: Sequence[str], cwd: str | None = None) -> list[str]:
    """Build a PowerShell command that runs ``argv`` through UAC and
    propagates its exit code."""
    parts = [f"$p = Start-Process -FilePath {_ps_quote(argv[0])}"]
    if len(argv) > 1:
        parts.append("-ArgumentList @(" + ", ".join(_ps_quote(a) for a in argv[1:]) + ")")
    if cwd:
        parts.append(f"-WorkingDirectory {_ps_quote(cwd)}")
    parts.append("-Verb RunAs -Wait -PassThru; exit $p.ExitCode")
    return [
        "powershell.exe",
        "-NoProfile",
        "-ExecutionPolicy", "Bypass",
        "-Command", " ".join(parts),
    ]


def _wrong_password(outcome: CommandOutcome) -> bool:
    stderr = outcome.stderr.lower()
    return not outcome.ok and ("incorrect password" in stderr or "sorry" in stderr)
