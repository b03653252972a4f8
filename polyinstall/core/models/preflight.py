"""
Preflight models — per-check results and their classification.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CheckResult(BaseModel):
    """Outcome of a single environment check."""

    name: str
    passed: bool
    critical: bool = False
    message: str = ""
    details: dict[str, Any] | None = None


class PreflightReport(BaseModel):
    """Aggregated preflight outcome.

    Every failed check lands in exactly one of ``critical_failures`` or
    ``warnings``. ``passed`` is true iff there are no critical failures.
    """

    checks: list[CheckResult] = Field(default_factory=list)
    critical_failures: list[CheckResult] = Field(default_factory=list)
    warnings: list[CheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.critical_failures

    def add(self, check: CheckResult) -> None:
        """Record a check and classify it."""
        self.checks.append(check)
        if check.passed:
            return
        if check.critical:
            self.critical_failures.append(check)
        else:
            self.warnings.append(check)
