"""
Interactive installation wizard — prompt-driven ``install``.
"""

from __future__ import annotations

import asyncio
import sys

import click

_KINDS = ("local", "global", "dev")

_AUTO = "auto"


@click.command()
@click.pass_context
def interactive(ctx: click.Context) -> None:
    """Interactive installation wizard."""
    from polyinstall.core.engine.installer import install as run_install
    from polyinstall.core.models import (
        InstallationConfig,
        InstallationKind,
        PackageManager,
        PackageSpec,
    )
    from polyinstall.core.services.managers import detect_available_managers
    from polyinstall.ui.cli.output import console_callbacks, print_run_summary

    click.secho("\n✨ Interactive Installation Wizard\n", fg="blue", bold=True)

    raw = click.prompt("Enter package names (space-separated)", value_proc=_require_names)
    kind = click.prompt(
        "Installation type",
        type=click.Choice(_KINDS),
        default="local",
    )
    choices = [_AUTO, *(m.value for m in detect_available_managers())]
    manager = click.prompt("Package manager", type=click.Choice(choices), default=_AUTO)
    force = click.confirm("Force installation?", default=False)

    try:
        specs = [PackageSpec.parse(p, kind=InstallationKind(kind)) for p in raw.split()]
    except ValueError as e:
        click.secho(f"❌ Invalid package: {e}", fg="red", err=True)
        sys.exit(1)

    config = InstallationConfig(
        packages=specs,
        preferred_manager=None if manager == _AUTO else PackageManager(manager),
        force=force,
        verbose=ctx.obj.get("verbose", False) if ctx.obj else False,
    )

    click.secho("\nStarting installation...\n", fg="cyan")
    run = asyncio.run(run_install(config, console_callbacks()))
    print_run_summary(run)

    if not run.ok:
        sys.exit(1)


def _require_names(value: str) -> str:
    if not value.strip():
        raise click.BadParameter("Please enter at least one package name")
    return value
