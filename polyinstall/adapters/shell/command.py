"""
Subprocess runner — execute argument lists and capture their output.

This is the SINGLE PLACE where child processes are spawned for install
operations. One call spawns exactly one process. No retry here.

Invariants:
- Commands are argument lists, never shell strings.
- Output is kept as a bounded tail per stream; overflow truncates, it
  never fails the command.
- A command exceeding its timeout is killed and reaped, and reported
  with ``timed_out=True`` and exit code 124.
- Stdin input (e.g. a sudo password) is never logged.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import time
from collections.abc import Sequence

from polyinstall.adapters.base import CommandRunner
from polyinstall.core.models.command import (
    EXIT_CANNOT_EXECUTE,
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    CommandOptions,
    CommandOutcome,
)

logger = logging.getLogger(__name__)

# Per-stream output ceiling (bytes).
DEFAULT_MAX_OUTPUT = 10 * 1024 * 1024

# How long to wait for pipes to close after killing a timed-out process.
# Grandchildren may keep them open.
_DRAIN_GRACE = 2.0

_CHUNK = 64 * 1024


def command_exists(name: str) -> bool:
    """Host executable lookup."""
    return shutil.which(name) is not None


class _TailBuffer:
    """Keeps the last ``limit`` bytes fed to it."""

    def __init__(self, limit: int):
        self.limit = limit
        self.data = bytearray()
        self.truncated = False

    def feed(self, chunk: bytes) -> None:
        self.data += chunk
        overflow = len(self.data) - self.limit
        if overflow > 0:
            del self.data[:overflow]
            self.truncated = True

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


async def _drain(stream: asyncio.StreamReader | None, buf: _TailBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK)
        if not chunk:
            return
        buf.feed(chunk)


class SubprocessRunner(CommandRunner):
    """Run commands with ``asyncio.create_subprocess_exec``."""

    def __init__(self, max_output: int = DEFAULT_MAX_OUTPUT):
        self._max_output = max_output

    @property
    def name(self) -> str:
        return "subprocess"

    def is_available(self) -> bool:
        return True

    async def execute(
        self,
        argv: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandOutcome:
        options = options or CommandOptions()
        argv = list(argv)
        if not argv:
            return CommandOutcome.failure(argv, EXIT_CANNOT_EXECUTE, "Empty command")

        # ── Environment ──
        env = os.environ.copy()
        for key, value in options.env.items():
            env[key] = os.path.expandvars(value)

        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), options.cwd)
        start = time.monotonic()

        # ── Spawn ──
        program = argv[0]
        if os.name == "nt":
            # npm, yarn, pnpm ship as .cmd shims on Windows
            program = shutil.which(program) or program
        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *argv[1:],
                stdin=asyncio.subprocess.PIPE if options.input is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.cwd,
                env=env,
            )
        except FileNotFoundError:
            return CommandOutcome.failure(
                argv, EXIT_NOT_FOUND, f"Command not found: {argv[0]}",
                duration_ms=_elapsed_ms(start),
            )
        except PermissionError as e:
            return CommandOutcome.failure(
                argv, EXIT_CANNOT_EXECUTE, f"Permission denied: {e}",
                duration_ms=_elapsed_ms(start),
            )
        except Exception as e:
            logger.exception("Subprocess spawn error: %s", argv[0])
            return CommandOutcome.failure(
                argv, EXIT_CANNOT_EXECUTE, f"Command execution error: {e}",
                duration_ms=_elapsed_ms(start),
            )

        out_buf = _TailBuffer(self._max_output)
        err_buf = _TailBuffer(self._max_output)
        readers = [
            asyncio.ensure_future(_drain(proc.stdout, out_buf)),
            asyncio.ensure_future(_drain(proc.stderr, err_buf)),
        ]

        # ── Wait ──
        timed_out = False
        try:
            await asyncio.wait_for(
                self._feed_and_wait(proc, options.input),
                timeout=options.timeout,
            )
        except TimeoutError:
            timed_out = True
            logger.warning("Command timed out after %ss: %s", options.timeout, argv[0])
            _kill(proc)
            await proc.wait()

        _, pending = await asyncio.wait(readers, timeout=_DRAIN_GRACE)
        for task in pending:
            task.cancel()

        elapsed_ms = _elapsed_ms(start)
        exit_code = EXIT_TIMEOUT if timed_out else proc.returncode

        logger.debug("Command finished: exit=%d in %dms", exit_code, elapsed_ms)
        return CommandOutcome(
            argv=argv,
            exit_code=exit_code,
            stdout=out_buf.text(),
            stderr=err_buf.text(),
            duration_ms=elapsed_ms,
            timed_out=timed_out,
            truncated=out_buf.truncated or err_buf.truncated,
        )

    @staticmethod
    async def _feed_and_wait(
        proc: asyncio.subprocess.Process,
        data: str | None,
    ) -> None:
        if data is not None and proc.stdin is not None:
            try:
                proc.stdin.write(data.encode())
                await proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                pass  # process exited before reading its input
            finally:
                proc.stdin.close()
        await proc.wait()


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
