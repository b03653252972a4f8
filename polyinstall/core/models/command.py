"""
Command models — the execution contract between the engine and runners.

The engine hands a runner an argument list plus ``CommandOptions`` and
always gets a ``CommandOutcome`` back. Runners never raise: a missing
executable, a timeout, or a non-zero exit are all captured here.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Sentinel exit codes (shell conventions).
EXIT_TIMEOUT = 124
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127


class CommandOptions(BaseModel):
    """How a single command should be executed."""

    cwd: str | None = None
    timeout: float = 300.0          # seconds
    env: dict[str, str] = Field(default_factory=dict)
    input: str | None = Field(default=None, repr=False)  # piped to stdin, never logged


class CommandOutcome(BaseModel):
    """Result of one command execution. Ephemeral."""

    argv: list[str] = Field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False
    truncated: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited cleanly."""
        return self.exit_code == 0 and not self.timed_out

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)

    def combined_output(self) -> str:
        """stdout and stderr joined, for signature matching."""
        return f"{self.stdout}\n{self.stderr}"

    def error_text(self, limit: int = 2000) -> str:
        """Best human-readable failure description (tail of stderr)."""
        if self.timed_out:
            return f"Command timed out: {self.command_line}"
        text = (self.stderr or self.stdout).strip()
        if not text:
            return f"Command exited with code {self.exit_code}"
        return text[-limit:]

    @classmethod
    def failure(
        cls,
        argv: list[str],
        exit_code: int,
        stderr: str,
        **kwargs,
    ) -> CommandOutcome:
        """Create a failure outcome without a process having run."""
        return cls(argv=list(argv), exit_code=exit_code, stderr=stderr, **kwargs)
