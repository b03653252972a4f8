"""
Mock runner — universal test double for command execution.

Used in tests (and ``--mock`` style dry wiring) to simulate package
manager behaviour without spawning anything. Configurable to return
success, failure, or scripted sequences of outcomes per command prefix.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from polyinstall.adapters.base import CommandRunner
from polyinstall.core.models.command import CommandOptions, CommandOutcome


class MockRunner(CommandRunner):
    """Universal mock runner for testing.

    By default, every command succeeds. Responses are keyed by an
    argv prefix; the longest matching prefix wins. When several outcomes
    are queued for one prefix they are returned in order, and the last
    one repeats.
    """

    def __init__(
        self,
        runner_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = runner_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[tuple[str, ...], deque[CommandOutcome]] = {}
        self._call_log: list[tuple[list[str], CommandOptions]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[list[str], CommandOptions]]:
        """All (argv, options) pairs this mock has received."""
        return self._call_log

    @property
    def commands(self) -> list[list[str]]:
        """Just the argv of every call, in order."""
        return [argv for argv, _ in self._call_log]

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(self, prefix: Sequence[str] | str, *outcomes: CommandOutcome) -> None:
        """Script the outcome(s) for commands starting with ``prefix``."""
        if not outcomes:
            raise ValueError("set_response needs at least one outcome")
        key = tuple(prefix.split()) if isinstance(prefix, str) else tuple(prefix)
        self._responses[key] = deque(outcomes)

    def set_failure(
        self,
        prefix: Sequence[str] | str,
        stderr: str = "Mock failure",
        exit_code: int = 1,
    ) -> None:
        """Configure commands starting with ``prefix`` to fail."""
        self.set_response(prefix, CommandOutcome(exit_code=exit_code, stderr=stderr))

    def reset(self) -> None:
        """Clear the call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()

    async def execute(
        self,
        argv: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandOutcome:
        argv = list(argv)
        self._call_log.append((argv, options or CommandOptions()))

        match = self._match(argv)
        if match is not None:
            queue = self._responses[match]
            outcome = queue.popleft() if len(queue) > 1 else queue[0]
            return outcome.model_copy(update={"argv": argv})

        # Default: success
        return CommandOutcome(argv=argv, stdout=self._default_output)

    def _match(self, argv: list[str]) -> tuple[str, ...] | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(argv[: len(prefix)]) != prefix:
                continue
            if best is None or len(prefix) > len(best):
                best = prefix
        return best
