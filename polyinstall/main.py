"""
polyinstall — CLI entrypoint.

Usage:
    polyinstall --help
    polyinstall install typescript eslint@9 -D
    polyinstall check
    polyinstall packages managers
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import click

from polyinstall import __version__
from polyinstall.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    cli_log_level,
    setup_logging,
)

_MANAGER_CHOICES = ("npm", "yarn", "pnpm", "bun")


@click.group()
@click.version_option(version=__version__, prog_name="polyinstall")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to install.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """polyinstall — install Node.js packages with any package manager."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=cli_log_level(debug, verbose, quiet),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
        quiet_third_party=not debug,
    )


# ── Install ─────────────────────────────────────────────────────


@cli.command()
@click.argument("packages", nargs=-1)
@click.option("--global", "-g", "global_", is_flag=True, help="Install packages globally.")
@click.option("--dev", "-D", is_flag=True, help="Install as dev dependencies.")
@click.option(
    "--package-manager", "-p", "manager",
    type=click.Choice(_MANAGER_CHOICES),
    default=None,
    help="Preferred package manager.",
)
@click.option("--force", "-f", is_flag=True, help="Force installation.")
@click.option("--offline", is_flag=True, help="Run in offline mode.")
@click.option("--registry", "-r", default=None, help="Custom registry URL.")
@click.option("--no-preflight", is_flag=True, help="Skip preflight checks.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Per-command timeout in seconds (default: 300).")
@click.option("--retries", type=click.IntRange(min=1), default=None,
              help="Attempts per package (default: 1).")
@click.option("--optional", "optional_names", multiple=True,
              help="Package name whose failure is only a warning (repeatable).")
@click.option("--ask-sudo-password", is_flag=True,
              help="Prompt once for the sudo password used if elevation is needed.")
@click.option("--silent", "-s", is_flag=True, help="Only print warnings and errors.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    packages: tuple[str, ...],
    global_: bool,
    dev: bool,
    manager: str | None,
    force: bool,
    offline: bool,
    registry: str | None,
    no_preflight: bool,
    timeout: float | None,
    retries: int | None,
    optional_names: tuple[str, ...],
    ask_sudo_password: bool,
    silent: bool,
    as_json: bool,
) -> None:
    """Install one or more packages (or those listed in install.yml)."""
    from polyinstall.core.config.loader import ConfigError, load_install_config
    from polyinstall.core.engine.installer import InstallCallbacks
    from polyinstall.core.engine.installer import install as run_install
    from polyinstall.core.models import InstallationConfig, InstallationKind, PackageSpec
    from polyinstall.ui.cli.output import console_callbacks, print_run_summary

    overrides = {
        "preferred_manager": manager,
        "force": force or None,
        "offline": offline or None,
        "registry": registry,
        "skip_preflight": no_preflight or None,
        "timeout": timeout,
        "retry_attempts": retries,
        "verbose": ctx.obj.get("verbose") or None,
        "silent": silent or None,
    }

    try:
        if packages:
            kind = (
                InstallationKind.GLOBAL if global_
                else InstallationKind.DEV if dev
                else InstallationKind.LOCAL
            )
            specs = []
            for text in packages:
                spec = PackageSpec.parse(text, kind=kind)
                if spec.name in optional_names:
                    spec = spec.model_copy(update={"optional": True})
                specs.append(spec)
            config = InstallationConfig(
                packages=specs,
                **{k: v for k, v in overrides.items() if v is not None},
            )
        else:
            config = load_install_config(ctx.obj.get("config_path"), overrides)
            if optional_names:
                config.packages = [
                    s.model_copy(update={"optional": True}) if s.name in optional_names else s
                    for s in config.packages
                ]
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    except ValueError as e:
        click.secho(f"❌ Invalid package: {e}", fg="red", err=True)
        sys.exit(1)

    if not config.packages:
        click.secho("❌ No packages to install", fg="red", err=True)
        sys.exit(1)

    if ask_sudo_password:
        config.sudo_password = click.prompt("sudo password", hide_input=True, default="",
                                            show_default=False)

    quiet = silent or ctx.obj.get("quiet", False)
    if not as_json and not quiet:
        click.secho("\n🚀 polyinstall\n", fg="blue", bold=True)

    callbacks = InstallCallbacks() if as_json else console_callbacks(silent=quiet)
    run = asyncio.run(run_install(config, callbacks))

    if as_json:
        click.echo(json.dumps(run.to_dict(), indent=2))
    elif not quiet:
        print_run_summary(run)

    if not run.ok:
        sys.exit(1)


# ── Check ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check(as_json: bool) -> None:
    """Check system compatibility and available package managers."""
    from polyinstall.adapters.shell.command import SubprocessRunner
    from polyinstall.core.models import OSKind
    from polyinstall.core.services.detection.disk import disk_status
    from polyinstall.core.services.detection.host import describe_host
    from polyinstall.core.services.detection.network import detect_proxy
    from polyinstall.core.services.managers import detect_available_managers, manager_version
    from polyinstall.core.services.privilege import escalation_method

    host = describe_host()
    managers = detect_available_managers()
    runner = SubprocessRunner()

    async def _versions() -> list[str | None]:
        return await asyncio.gather(*(manager_version(m, runner) for m in managers))

    versions = asyncio.run(_versions()) if managers else []
    disk = disk_status(Path.cwd())
    proxy = detect_proxy()

    issues: list[str] = []
    warnings: list[str] = []
    if host.os_kind == OSKind.UNKNOWN:
        issues.append("Unsupported operating system")
    if not managers:
        issues.append("No package manager found on PATH (npm, yarn, pnpm, bun)")
    if disk.estimated:
        warnings.append("Disk space could not be measured")
    if host.is_container:
        warnings.append("Running inside a container")

    result = {
        "host": host.model_dump(mode="json"),
        "managers": [
            {"id": m.value, "version": v} for m, v in zip(managers, versions, strict=True)
        ],
        "escalation": escalation_method(host),
        "disk_free_gb": round(disk.free_gb, 2),
        "proxy": proxy,
        "compatible": not issues,
        "issues": issues,
        "warnings": warnings,
    }

    if as_json:
        click.echo(json.dumps(result, indent=2))
        sys.exit(0 if not issues else 1)
        return

    click.secho("\n🔍 System Compatibility Check\n", fg="blue", bold=True)
    click.secho("System Information:", fg="cyan")
    click.echo(f"  OS: {host.os_kind}")
    click.echo(f"  Architecture: {host.arch_kind}")
    click.echo(f"  Container: {'Yes' if host.is_container else 'No'}")
    click.echo(f"  CI Environment: {'Yes' if host.is_ci else 'No'}")
    click.echo(f"  Elevated: {'Yes' if host.has_elevated_privileges else 'No'}")
    click.echo(f"  Escalation: {result['escalation']}")
    click.echo(f"  Disk free: {disk.free_gb:.2f}GB")
    if proxy["has_proxy"]:
        click.echo(f"  Proxy: {proxy.get('https_proxy') or proxy.get('http_proxy')}")

    click.secho("\nAvailable Package Managers:", fg="cyan")
    for entry in result["managers"]:
        click.echo(f"  ✓ {entry['id']} {entry['version'] or '(unknown version)'}")

    if issues:
        click.secho("\n❌ System compatibility issues:", fg="red", bold=True)
        for issue in issues:
            click.secho(f"  • {issue}", fg="red")
    else:
        click.secho("\n✅ System is compatible", fg="green", bold=True)

    if warnings:
        click.secho("\n⚠️  Warnings:", fg="yellow")
        for warn in warnings:
            click.secho(f"  • {warn}", fg="yellow")

    click.echo()
    if issues:
        sys.exit(1)


# ── Register sub-groups ─────────────────────────────────────────

from polyinstall.ui.cli.packages import packages  # noqa: E402
from polyinstall.ui.cli.wizard import interactive  # noqa: E402

cli.add_command(packages)
cli.add_command(interactive)


if __name__ == "__main__":
    cli()
