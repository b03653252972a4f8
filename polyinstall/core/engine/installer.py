"""
Installer engine — the central orchestration loop.

Takes an ``InstallationConfig``, sequences the run stages, installs the
packages one at a time through the privilege escalator, and returns the
``InstallationRun``. Never raises for collaborator failures: they are
captured as ``InstallError`` entries on the run.

Flow:
    initializing → [preflight] → resolve manager → installing → verifying → completed
                                                                     ↘ failed

Packages install strictly in request order, never concurrently. A
failed optional package becomes a warning; a failed required package
stops the run and the remaining packages are never attempted.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from polyinstall.adapters.base import CommandRunner
from polyinstall.adapters.shell.command import SubprocessRunner
from polyinstall.adapters.shell.elevation import Elevator, select_elevator
from polyinstall.core.models.command import CommandOptions
from polyinstall.core.models.config import InstallationConfig
from polyinstall.core.models.host import HostFacts
from polyinstall.core.models.package import (
    DEFAULT_MANAGER,
    InstallationKind,
    PackageManager,
    PackageSpec,
)
from polyinstall.core.models.run import (
    PACKAGE_INSTALL_FAILED,
    PREFLIGHT_CHECK_FAILED,
    UNEXPECTED_ERROR,
    InstallationRun,
    InstallError,
    InstallProgress,
    Outcome,
    PackageResult,
    Stage,
)
from polyinstall.core.observability.logging_config import run_logger
from polyinstall.core.reliability.retry import backoff_delay
from polyinstall.core.services.detection.host import describe_host
from polyinstall.core.services.managers import (
    InstallOptions,
    build_install_args,
    installed_package_version,
    resolve_manager,
)
from polyinstall.core.services.preflight import PreflightChecker
from polyinstall.core.services.privilege import PrivilegeEscalator
from polyinstall.core.services.remediation import (
    GENERIC_UNEXPECTED_SUGGESTIONS,
    PREFLIGHT_SUGGESTIONS,
    install_failure_suggestions,
)

_log = logging.getLogger(__name__)

HostProbe = Callable[[], HostFacts]
Resolver = Callable[[str, PackageManager | None], PackageManager]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class InstallCallbacks:
    """Optional hooks, invoked synchronously in sequencing order.

    An exception raised by a hook is logged and does not alter the run.
    """

    on_progress: Callable[[InstallProgress], Any] | None = None
    on_error: Callable[[InstallError], Any] | None = None
    on_warning: Callable[[str], Any] | None = None
    on_complete: Callable[[InstallationRun], Any] | None = None


class Installer:
    """Drives one or more independent installation runs.

    Holds only collaborators, no per-run state, so concurrent ``run``
    calls on one instance do not interfere.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        elevator: Elevator | None = None,
        host_probe: HostProbe = describe_host,
        preflight: PreflightChecker | None = None,
        resolver: Resolver | None = None,
        logger: logging.Logger | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._log = logger or _log
        self._runner = runner or SubprocessRunner()
        self._elevator = elevator
        self._host_probe = host_probe
        self._preflight = preflight or PreflightChecker(logger=self._log)
        self._resolver = resolver or functools.partial(resolve_manager, logger=self._log)
        self._sleep = sleep

    async def run(
        self,
        config: InstallationConfig,
        callbacks: InstallCallbacks | None = None,
    ) -> InstallationRun:
        """Execute a full installation run. Always returns the run."""
        callbacks = callbacks or InstallCallbacks()
        log = run_logger(self._log, verbose=config.verbose, silent=config.silent)
        run = InstallationRun()
        try:
            await self._run_stages(config, run, callbacks, log)
        except Exception as e:
            log.exception("Installation failed with unexpected error")
            error = InstallError(
                code=UNEXPECTED_ERROR,
                message=str(e) or type(e).__name__,
                recoverable=False,
                suggestions=list(GENERIC_UNEXPECTED_SUGGESTIONS),
            )
            # Forced: the failure may come from the stage machine itself.
            run.errors.append(error)
            run.stage = Stage.FAILED
            self._notify(log, callbacks.on_error, error)
        finally:
            run.finish()
        return run

    # ── Stages ───────────────────────────────────────────────────

    async def _run_stages(
        self,
        config: InstallationConfig,
        run: InstallationRun,
        cb: InstallCallbacks,
        log: logging.Logger,
    ) -> None:
        total = config.package_count

        # 1. Initialize
        self._progress(log, run, cb, "Initializing installation...", total=total)
        run.host = self._host_probe()
        elevator = self._elevator or select_elevator(run.host, self._runner)

        # 2. Preflight
        if not config.skip_preflight:
            run.advance(Stage.PREFLIGHT)
            self._progress(log, run, cb, "Running preflight checks...", total=total)
            report = await self._preflight.run(config)
            if not report.passed:
                for check in report.critical_failures:
                    error = InstallError(
                        code=PREFLIGHT_CHECK_FAILED,
                        message=check.message,
                        recoverable=False,
                        suggestions=list(PREFLIGHT_SUGGESTIONS),
                    )
                    run.fail(error)
                    self._notify(log, cb.on_error, error)
                log.error("Preflight checks failed, aborting")
                return
            for check in report.warnings:
                self._warn(log, run, cb, check.message)

        # 3. Resolve the manager
        manager = self._resolve(config, log)
        config.manager = manager
        run.manager = manager
        log.info("Using package manager: %s", manager)

        # 4. Install, strictly in request order
        run.advance(Stage.INSTALLING)
        self._progress(log, run, cb, "Installing packages...", total=total)
        escalator = PrivilegeEscalator(self._runner, elevator, log)

        for i, spec in enumerate(config.packages):
            self._progress(
                log, run, cb,
                f"Installing {spec.name}... ({i + 1}/{total})",
                completed=i,
                total=total,
                current_package=spec.name,
            )
            result = await self._install_package(spec, config, manager, escalator, log)
            run.package_results.append(result)

            if result.ok:
                continue
            if spec.optional:
                self._warn(log, run, cb, f"Optional package {spec.name} failed to install")
                continue

            run.fail(result.error)
            self._notify(log, cb.on_error, result.error)
            return

        # 5. Verify (checkpoint only) and complete
        run.advance(Stage.VERIFYING)
        self._progress(log, run, cb, "Verifying installation...", completed=total, total=total)

        run.advance(Stage.COMPLETED)
        run.finish()
        self._progress(
            log, run, cb,
            f"Installation completed successfully in {run.duration_ms / 1000:.2f}s",
            completed=total,
            total=total,
        )
        self._notify(log, cb.on_complete, run)

    def _resolve(self, config: InstallationConfig, log: logging.Logger) -> PackageManager:
        if config.auto_detect_manager:
            return self._resolver(config.working_dir, config.preferred_manager)
        manager = config.preferred_manager or DEFAULT_MANAGER
        log.info("Auto-detection disabled, using %s", manager)
        return manager

    # ── Per package ──────────────────────────────────────────────

    async def _install_package(
        self,
        spec: PackageSpec,
        config: InstallationConfig,
        manager: PackageManager,
        escalator: PrivilegeEscalator,
        log: logging.Logger,
    ) -> PackageResult:
        log.info("Installing package: %s", spec.requirement)

        argv = build_install_args(
            manager,
            [spec.requirement],
            InstallOptions(
                global_=spec.kind == InstallationKind.GLOBAL,
                dev=spec.kind == InstallationKind.DEV,
                force=config.force,
                offline=config.offline,
                registry=config.registry,
            ),
        )
        options = CommandOptions(cwd=config.working_dir, timeout=config.timeout)

        duration_ms = 0
        attempts = 0
        elevation_used = False
        while True:
            attempts += 1
            start = time.monotonic()
            result = await escalator.run_elevated_if_needed(
                argv,
                options,
                require_privileges=config.require_privileges,
                password=config.sudo_password,
            )
            duration_ms += int((time.monotonic() - start) * 1000)
            elevation_used = elevation_used or result.elevation_used
            outcome = result.outcome

            if outcome.ok or outcome.timed_out or attempts >= config.retry_attempts:
                break

            delay = backoff_delay(attempts, config.retry_delay)
            log.warning(
                "Install of %s failed (attempt %d/%d), retrying in %.1fs",
                spec.name, attempts, config.retry_attempts, delay,
            )
            await self._sleep(delay)

        if outcome.ok:
            version = spec.version
            if version is None and spec.kind != InstallationKind.GLOBAL:
                version = installed_package_version(spec.name, config.working_dir)
            return PackageResult(
                spec=spec,
                outcome=Outcome.COMPLETED,
                installed_version=version,
                duration_ms=duration_ms,
                attempts=attempts,
                elevation_used=elevation_used,
            )

        message = outcome.error_text()
        log.error("Failed to install %s: %s", spec.name, message)
        return PackageResult(
            spec=spec,
            outcome=Outcome.FAILED,
            duration_ms=duration_ms,
            attempts=attempts,
            elevation_used=elevation_used,
            error=InstallError(
                code=PACKAGE_INSTALL_FAILED,
                message=message,
                package=spec.name,
                recoverable=spec.optional,
                suggestions=install_failure_suggestions(
                    outcome.combined_output(), outcome.timed_out,
                ),
            ),
        )

    # ── Events ───────────────────────────────────────────────────

    def _progress(
        self,
        log: logging.Logger,
        run: InstallationRun,
        cb: InstallCallbacks,
        message: str,
        completed: int = 0,
        total: int = 0,
        current_package: str | None = None,
    ) -> None:
        log.info(message)
        self._notify(log, cb.on_progress, InstallProgress(
            stage=run.stage,
            message=message,
            completed=completed,
            total=total,
            current_package=current_package,
        ))

    def _warn(
        self,
        log: logging.Logger,
        run: InstallationRun,
        cb: InstallCallbacks,
        message: str,
    ) -> None:
        log.warning(message)
        run.warnings.append(message)
        self._notify(log, cb.on_warning, message)

    def _notify(
        self,
        log: logging.Logger,
        hook: Callable[[Any], Any] | None,
        payload: Any,
    ) -> None:
        if hook is None:
            return
        try:
            hook(payload)
        except Exception:
            log.exception("Callback %s raised", getattr(hook, "__name__", hook))


async def install(
    config: InstallationConfig,
    callbacks: InstallCallbacks | None = None,
    **collaborators: Any,
) -> InstallationRun:
    """Build an ``Installer`` and run it once."""
    return await Installer(**collaborators).run(config, callbacks)
