"""
InstallationRun — the mutable state of one orchestration.

Created at run start, mutated only by the engine, and handed back to the
caller as the run's result. Never persisted.

Stage machine:
    initializing → preflight → installing → verifying → completed
    any non-terminal stage → failed
    (preflight may be skipped: initializing → installing)
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, computed_field

from polyinstall.core.models.host import HostFacts
from polyinstall.core.models.package import PackageManager, PackageSpec


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Stage(StrEnum):
    INITIALIZING = "initializing"
    PREFLIGHT = "preflight"
    INSTALLING = "installing"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({Stage.COMPLETED, Stage.FAILED})

_TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.INITIALIZING: frozenset({Stage.PREFLIGHT, Stage.INSTALLING, Stage.FAILED}),
    Stage.PREFLIGHT: frozenset({Stage.INSTALLING, Stage.FAILED}),
    Stage.INSTALLING: frozenset({Stage.VERIFYING, Stage.FAILED}),
    Stage.VERIFYING: frozenset({Stage.COMPLETED, Stage.FAILED}),
    Stage.COMPLETED: frozenset(),
    Stage.FAILED: frozenset(),
}

# Error codes
PREFLIGHT_CHECK_FAILED = "PREFLIGHT_CHECK_FAILED"
PACKAGE_INSTALL_FAILED = "PACKAGE_INSTALL_FAILED"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class StageError(RuntimeError):
    """Raised on an illegal stage transition."""


class InstallError(BaseModel):
    """A structured, user-facing error with remediation hints."""

    code: str
    message: str
    package: str | None = None
    recoverable: bool = False
    suggestions: list[str] = Field(default_factory=list)


class PackageResult(BaseModel):
    """Outcome of one attempted package. Append-only, never revisited."""

    spec: PackageSpec
    outcome: Outcome
    installed_version: str | None = None
    duration_ms: int = 0
    attempts: int = 1
    elevation_used: bool = False
    error: InstallError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.COMPLETED


class InstallProgress(BaseModel):
    """A progress notification."""

    stage: Stage
    message: str
    completed: int = 0
    total: int = 0
    current_package: str | None = None

    @computed_field
    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed * 100.0 / self.total


class InstallationRun(BaseModel):
    """State of a single installation run."""

    stage: Stage = Stage.INITIALIZING
    package_results: list[PackageResult] = Field(default_factory=list)
    errors: list[InstallError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    manager: PackageManager | None = None
    host: HostFacts | None = None

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str | None = None
    duration_ms: int = 0

    _start: float = PrivateAttr(default_factory=time.monotonic)

    # ── Stage machine ────────────────────────────────────────────

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: Stage) -> None:
        """Move to ``stage``. Stages are never re-entered."""
        if stage not in _TRANSITIONS[self.stage]:
            raise StageError(f"Illegal stage transition: {self.stage} → {stage}")
        self.stage = stage

    def fail(self, error: InstallError) -> None:
        """Record a run-aborting error and enter ``failed``."""
        self.errors.append(error)
        if self.stage != Stage.FAILED:
            self.advance(Stage.FAILED)

    def finish(self) -> None:
        """Stamp the end time. Duration never decreases."""
        self.ended_at = _now_iso()
        elapsed = int((time.monotonic() - self._start) * 1000)
        self.duration_ms = max(self.duration_ms, elapsed)

    # ── Derived ──────────────────────────────────────────────────

    @property
    def ok(self) -> bool:
        return self.stage == Stage.COMPLETED

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.package_results if r.ok)

    @property
    def failed_packages(self) -> list[str]:
        return [r.spec.name for r in self.package_results if not r.ok]

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["ok"] = self.ok
        data["succeeded"] = self.succeeded
        data["failed"] = len(self.failed_packages)
        return data
