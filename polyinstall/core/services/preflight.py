"""
Preflight checks — environment validation before any install attempt.

Two independent checks run concurrently:

    disk space   critical when insufficient
    network      critical when offline; unreachable registry is a warning

A failure in one never short-circuits the other. Checks are skipped
entirely for offline runs (network) or when the caller opts out
(the engine never calls the checker then).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from polyinstall.core.models.config import InstallationConfig
from polyinstall.core.models.preflight import CheckResult, PreflightReport
from polyinstall.core.services.detection.disk import (
    FALLBACK_STATUS,
    DiskStatus,
    disk_status,
    estimate_required_space,
)
from polyinstall.core.services.detection.network import NetworkStatus, probe_network

_log = logging.getLogger(__name__)

_GIB = 1024 * 1024 * 1024

DiskProbe = Callable[[str], DiskStatus]
NetworkProbe = Callable[[str | None], Awaitable[NetworkStatus]]


class PreflightChecker:
    """Runs and classifies the preflight checks for one configuration."""

    def __init__(
        self,
        disk_probe: DiskProbe = disk_status,
        network_probe: NetworkProbe = probe_network,
        logger: logging.Logger | None = None,
    ):
        self._disk_probe = disk_probe
        self._network_probe = network_probe
        self._log = logger or _log

    async def run(self, config: InstallationConfig) -> PreflightReport:
        report = PreflightReport()

        tasks = [self._check_disk(config)]
        if not config.offline:
            tasks.append(self._check_network(config))
        else:
            self._log.debug("Offline run, skipping network checks")

        for results in await asyncio.gather(*tasks):
            for check in results:
                report.add(check)

        self._log.info(
            "Preflight: %d checks, %d critical, %d warnings",
            len(report.checks),
            len(report.critical_failures),
            len(report.warnings),
        )
        return report

    # ── Disk ─────────────────────────────────────────────────────

    async def _check_disk(self, config: InstallationConfig) -> list[CheckResult]:
        required = estimate_required_space(config.package_count)
        path = str(Path(config.working_dir))
        try:
            status = await asyncio.to_thread(self._disk_probe, path)
        except Exception as e:
            self._log.warning("Disk probe raised (%s), using fallback estimate", e)
            status = FALLBACK_STATUS

        passed = status.free_bytes >= required
        free_gb = status.free_bytes / _GIB
        required_gb = required / _GIB
        if passed:
            message = f"Sufficient disk space available: {free_gb:.2f}GB"
        else:
            message = (
                f"Insufficient disk space: {free_gb:.2f}GB available, "
                f"{required_gb:.2f}GB required"
            )
        return [CheckResult(
            name="Disk Space",
            passed=passed,
            critical=not passed,
            message=message,
            details={
                "available_bytes": status.free_bytes,
                "required_bytes": required,
                "estimated": status.estimated,
            },
        )]

    # ── Network ──────────────────────────────────────────────────

    async def _check_network(self, config: InstallationConfig) -> list[CheckResult]:
        try:
            status = await self._network_probe(config.registry)
        except Exception as e:
            self._log.warning("Network probe raised (%s), treating host as offline", e)
            status = NetworkStatus(is_online=False, registry_reachable=False)

        checks = [CheckResult(
            name="Network Connectivity",
            passed=status.is_online,
            critical=True,
            message=(
                "Internet connection available"
                if status.is_online
                else "No internet connection detected"
            ),
        )]
        if not status.registry_reachable:
            checks.append(CheckResult(
                name="Package Registry",
                passed=False,
                critical=False,
                message="Cannot reach package registry, installation may fail",
                details={"registry": status.registry},
            ))
        return checks
