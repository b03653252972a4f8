"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from polyinstall.core.models import InstallationConfig, PackageSpec, InstallationRun
"""

from polyinstall.core.models.command import CommandOptions, CommandOutcome
from polyinstall.core.models.config import InstallationConfig
from polyinstall.core.models.host import ArchKind, HostFacts, OSKind
from polyinstall.core.models.package import (
    DEFAULT_MANAGER,
    InstallationKind,
    PackageManager,
    PackageSpec,
)
from polyinstall.core.models.preflight import CheckResult, PreflightReport
from polyinstall.core.models.run import (
    InstallationRun,
    InstallError,
    InstallProgress,
    Outcome,
    PackageResult,
    Stage,
    StageError,
)

__all__ = [
    # command.py
    "CommandOptions",
    "CommandOutcome",
    # config.py
    "InstallationConfig",
    # host.py
    "ArchKind",
    "HostFacts",
    "OSKind",
    # package.py
    "DEFAULT_MANAGER",
    "InstallationKind",
    "PackageManager",
    "PackageSpec",
    # preflight.py
    "CheckResult",
    "PreflightReport",
    # run.py
    "InstallError",
    "InstallProgress",
    "InstallationRun",
    "Outcome",
    "PackageResult",
    "Stage",
    "StageError",
]
