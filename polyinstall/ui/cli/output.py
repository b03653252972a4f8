"""
Console rendering for installation runs — shared by ``install`` and
``interactive``.
"""

from __future__ import annotations

import click

from polyinstall.core.engine.installer import InstallCallbacks
from polyinstall.core.models.run import InstallationRun, InstallError, InstallProgress


def console_callbacks(silent: bool = False) -> InstallCallbacks:
    """Callbacks that print progress, warnings and errors as they happen."""

    def on_progress(progress: InstallProgress) -> None:
        if silent:
            return
        click.secho(f"[{progress.percentage:.0f}%]", fg="cyan", nl=False)
        click.echo(f" {progress.message}")

    def on_error(error: InstallError) -> None:
        click.secho(f"❌ Error: {error.message}", fg="red", err=True)
        if error.suggestions:
            click.secho("\nSuggestions:", fg="yellow", err=True)
            for suggestion in error.suggestions:
                click.secho(f"  • {suggestion}", fg="yellow", err=True)

    def on_warning(warning: str) -> None:
        click.secho(f"⚠️  Warning: {warning}", fg="yellow", err=True)

    def on_complete(run: InstallationRun) -> None:
        if silent:
            return
        click.secho(
            f"\n✅ Installation completed in {run.duration_ms / 1000:.2f}s",
            fg="green",
            bold=True,
        )
        click.secho(f"   Installed {run.succeeded} package(s)", dim=True)

    return InstallCallbacks(
        on_progress=on_progress,
        on_error=on_error,
        on_warning=on_warning,
        on_complete=on_complete,
    )


def print_run_summary(run: InstallationRun) -> None:
    """Per-package table after a run."""
    if not run.package_results:
        return
    click.echo()
    for result in run.package_results:
        icon = "✅" if result.ok else ("⚠️ " if result.spec.optional else "❌")
        version = f"@{result.installed_version}" if result.installed_version else ""
        extras = []
        if result.attempts > 1:
            extras.append(f"{result.attempts} attempts")
        if result.elevation_used:
            extras.append("elevated")
        suffix = f"  ({', '.join(extras)})" if extras else ""
        click.echo(f"   {icon} {result.spec.name}{version}  {result.duration_ms}ms{suffix}")
    click.echo()
