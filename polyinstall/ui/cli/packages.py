"""
CLI commands for package maintenance — uninstall, cache-clean, managers.

Thin wrappers over ``polyinstall.core.services.managers``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

_MANAGER_CHOICES = ("npm", "yarn", "pnpm", "bun")


def _resolve(manager: str | None, working_dir: Path):
    """Explicit manager, or auto-detect for the directory."""
    from polyinstall.core.models import PackageManager
    from polyinstall.core.services.managers import resolve_manager

    preferred = PackageManager(manager) if manager else None
    return resolve_manager(working_dir, preferred)


@click.group()
def packages() -> None:
    """Packages — uninstall, cache-clean, managers."""


# ── Act ─────────────────────────────────────────────────────────


@packages.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--global", "-g", "global_", is_flag=True, help="Remove global packages.")
@click.option("--package-manager", "-p", "manager", type=click.Choice(_MANAGER_CHOICES),
              default=None, help="Package manager (default: auto-detect).")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=300.0,
              show_default=True, help="Timeout in seconds.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def uninstall(
    names: tuple[str, ...],
    global_: bool,
    manager: str | None,
    timeout: float,
    as_json: bool,
) -> None:
    """Uninstall packages (elevating if a permission error occurs)."""
    from polyinstall.adapters.shell.command import SubprocessRunner
    from polyinstall.adapters.shell.elevation import select_elevator
    from polyinstall.core.models import CommandOptions
    from polyinstall.core.services.detection.host import describe_host
    from polyinstall.core.services.managers import build_uninstall_args
    from polyinstall.core.services.privilege import PrivilegeEscalator

    cwd = Path.cwd()
    pm = _resolve(manager, cwd)
    argv = build_uninstall_args(pm, names, global_=global_)

    runner = SubprocessRunner()
    escalator = PrivilegeEscalator(runner, select_elevator(describe_host(), runner))
    result = asyncio.run(escalator.run_elevated_if_needed(
        argv, CommandOptions(cwd=str(cwd), timeout=timeout),
    ))
    outcome = result.outcome

    if as_json:
        click.echo(json.dumps({
            "ok": outcome.ok,
            "manager": pm.value,
            "command": argv,
            "elevation_used": result.elevation_used,
            "error": None if outcome.ok else outcome.error_text(),
        }, indent=2))
        sys.exit(0 if outcome.ok else 1)
        return

    if not outcome.ok:
        click.secho(f"❌ {outcome.error_text()}", fg="red", err=True)
        sys.exit(1)

    elevated = " (elevated)" if result.elevation_used else ""
    click.secho(f"✅ Removed {', '.join(names)} with {pm}{elevated}", fg="green")


@packages.command("cache-clean")
@click.option("--package-manager", "-p", "manager", type=click.Choice(_MANAGER_CHOICES),
              default=None, help="Package manager (default: auto-detect).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def cache_clean(manager: str | None, as_json: bool) -> None:
    """Clear the package manager's download cache."""
    from polyinstall.adapters.shell.command import SubprocessRunner
    from polyinstall.core.models import CommandOptions
    from polyinstall.core.services.managers import build_cache_clean_args

    pm = _resolve(manager, Path.cwd())
    argv = build_cache_clean_args(pm)
    outcome = asyncio.run(SubprocessRunner().execute(argv, CommandOptions(timeout=60)))

    if as_json:
        click.echo(json.dumps({
            "ok": outcome.ok,
            "manager": pm.value,
            "command": argv,
            "error": None if outcome.ok else outcome.error_text(),
        }, indent=2))
        sys.exit(0 if outcome.ok else 1)
        return

    if not outcome.ok:
        click.secho(f"❌ Cache clean failed: {outcome.error_text()}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"✅ {pm} cache cleared", fg="green")


# ── Observe ─────────────────────────────────────────────────────


@packages.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def managers(as_json: bool) -> None:
    """Show available managers and which one this directory resolves to."""
    from polyinstall.core.services.managers import (
        detect_available_managers,
        detect_from_lock_file,
        detect_from_manifest,
    )

    cwd = Path.cwd()
    available = detect_available_managers()
    lock = detect_from_lock_file(cwd)
    manifest = detect_from_manifest(cwd)
    selected = _resolve(None, cwd)

    if as_json:
        click.echo(json.dumps({
            "available": [m.value for m in available],
            "lock_file": lock.value if lock else None,
            "manifest": manifest.value if manifest else None,
            "selected": selected.value,
        }, indent=2))
        return

    click.secho("📦 Package Managers:", fg="cyan", bold=True)
    if not available:
        click.secho("   ⚠️  None found on PATH", fg="yellow")
    for m in available:
        marker = " ← selected" if m == selected else ""
        click.echo(f"   ✅ {m}{marker}")
    if lock:
        click.echo(f"   🔒 Lock file points to: {lock}")
    if manifest:
        click.echo(f"   📄 package.json declares: {manifest}")
    click.echo()
