"""
Runner base — the protocol contract between the engine and processes.

The engine never spawns processes itself. It hands an argument list to
a ``CommandRunner`` and gets a ``CommandOutcome`` back. Runners NEVER
raise: non-zero exits, timeouts and spawn errors are all captured in
the outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from polyinstall.core.models.command import CommandOptions, CommandOutcome


class CommandRunner(ABC):
    """Abstract base class for command runners.

    To create a new runner:
        1. Subclass CommandRunner
        2. Implement name, is_available, execute
        3. Pass it to the Installer (or the escalator) explicitly
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this runner can spawn anything at all. Never raises."""

    @abstractmethod
    async def execute(
        self,
        argv: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandOutcome:
        """Run exactly one command and return its outcome.

        MUST never raise for command failures. No retry at this layer.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
