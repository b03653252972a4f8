"""
InstallationConfig — the full configuration of one installation run.

Owned exclusively by one run and never mutated concurrently. Built from
CLI flags or from ``install.yml`` (see ``core.config.loader``).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from polyinstall.core.models.package import PackageManager, PackageSpec


class InstallationConfig(BaseModel):
    """Run configuration."""

    # ── What ─────────────────────────────────────────────────────
    packages: list[PackageSpec] = Field(default_factory=list)

    # ── Which tool ───────────────────────────────────────────────
    preferred_manager: PackageManager | None = None
    auto_detect_manager: bool = True
    manager: PackageManager | None = None       # set by the engine once resolved

    # ── Where / how long ─────────────────────────────────────────
    working_dir: str = "."
    timeout: float = Field(default=300.0, gt=0)  # seconds, per command
    retry_attempts: int = Field(default=1, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)

    # ── Flags ────────────────────────────────────────────────────
    force: bool = False
    offline: bool = False
    registry: str | None = None
    verbose: bool = False
    silent: bool = False
    skip_preflight: bool = False

    # ── Privilege ────────────────────────────────────────────────
    require_privileges: bool = False
    sudo_password: str = Field(default="", exclude=True, repr=False)

    @field_validator("packages", mode="before")
    @classmethod
    def _coerce_package_strings(cls, value):
        """Accept ``"name@version"`` strings alongside mappings."""
        if not isinstance(value, list):
            return value
        return [PackageSpec.parse(v) if isinstance(v, str) else v for v in value]

    @property
    def package_count(self) -> int:
        return len(self.packages)
