"""
Package manager resolution and command construction.

Resolution priority (first satisfied wins):
    1. explicit preference, if available on the host
    2. lock file in the working directory, if that manager is available
    3. package.json ``packageManager`` / ``engines``, if available
    4. first available manager in probe order
    5. npm (assumed always present)

Nothing is cached: every call re-probes the host.

Command builders are pure functions returning argument lists; nothing
here is ever joined into a shell string.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from polyinstall.adapters.base import CommandRunner
from polyinstall.adapters.shell.command import command_exists
from polyinstall.core.models.command import CommandOptions
from polyinstall.core.models.package import DEFAULT_MANAGER, PackageManager

_log = logging.getLogger(__name__)

Exists = Callable[[str], bool]


# ── Evidence tables ─────────────────────────────────────────────

PROBE_ORDER: tuple[PackageManager, ...] = (
    PackageManager.NPM,
    PackageManager.YARN,
    PackageManager.PNPM,
    PackageManager.BUN,
)

# Checked in this order; the first lock file present wins.
LOCK_FILES: dict[str, PackageManager] = {
    "package-lock.json": PackageManager.NPM,
    "yarn.lock": PackageManager.YARN,
    "pnpm-lock.yaml": PackageManager.PNPM,
    "bun.lockb": PackageManager.BUN,
    "bun.lock": PackageManager.BUN,
}

MANIFEST_FILE = "package.json"

_PACKAGE_MANAGER_FIELD_RE = re.compile(r"^(npm|yarn|pnpm|bun)@")

# engines.<id> lookup order
_ENGINE_ORDER: tuple[PackageManager, ...] = (
    PackageManager.PNPM,
    PackageManager.YARN,
    PackageManager.BUN,
)

_CACHE_CLEAN: dict[PackageManager, tuple[str, ...]] = {
    PackageManager.NPM: ("npm", "cache", "clean", "--force"),
    PackageManager.YARN: ("yarn", "cache", "clean"),
    PackageManager.PNPM: ("pnpm", "store", "prune"),
    PackageManager.BUN: ("bun", "pm", "cache", "rm"),
}


# ═══════════════════════════════════════════════════════════════════
#  Detect
# ═══════════════════════════════════════════════════════════════════


def detect_from_lock_file(
    working_dir: str | Path,
    logger: logging.Logger | None = None,
) -> PackageManager | None:
    """Manager implied by a lock file in ``working_dir``."""
    log = logger or _log
    directory = Path(working_dir)
    for filename, manager in LOCK_FILES.items():
        if (directory / filename).is_file():
            log.debug("Detected %s from lock file: %s", manager, filename)
            return manager
    return None


def detect_from_manifest(
    working_dir: str | Path,
    logger: logging.Logger | None = None,
) -> PackageManager | None:
    """Manager declared by package.json (``packageManager``, then ``engines``).

    A missing or malformed manifest is no evidence.
    """
    log = logger or _log
    path = Path(working_dir) / MANIFEST_FILE
    if not path.is_file():
        return None
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.debug("Error reading %s: %s", path, e)
        return None
    if not isinstance(manifest, dict):
        return None

    field = manifest.get("packageManager")
    if isinstance(field, str):
        m = _PACKAGE_MANAGER_FIELD_RE.match(field)
        if m:
            manager = PackageManager(m.group(1))
            log.debug("Detected %s from package.json packageManager field", manager)
            return manager

    engines = manifest.get("engines")
    if isinstance(engines, dict):
        for manager in _ENGINE_ORDER:
            if engines.get(manager.value):
                log.debug("Detected %s from package.json engines", manager)
                return manager

    return None


def detect_available_managers(
    exists: Exists = command_exists,
    logger: logging.Logger | None = None,
) -> list[PackageManager]:
    """Every supported manager found on the host, in probe order."""
    log = logger or _log
    found = [m for m in PROBE_ORDER if exists(m.value)]
    if not found:
        log.warning("No package managers detected")
    return found


def resolve_manager(
    working_dir: str | Path = ".",
    preferred: PackageManager | None = None,
    exists: Exists = command_exists,
    logger: logging.Logger | None = None,
) -> PackageManager:
    """Decide which manager to use for ``working_dir``."""
    log = logger or _log

    if preferred and exists(preferred.value):
        log.info("Using preferred package manager: %s", preferred)
        return preferred
    if preferred:
        log.warning("Preferred package manager %s is not available", preferred)

    from_lock = detect_from_lock_file(working_dir, log)
    if from_lock and exists(from_lock.value):
        log.info("Using package manager from lock file: %s", from_lock)
        return from_lock

    from_manifest = detect_from_manifest(working_dir, log)
    if from_manifest and exists(from_manifest.value):
        log.info("Using package manager from package.json: %s", from_manifest)
        return from_manifest

    available = detect_available_managers(exists, log)
    if available:
        log.info("Using first available package manager: %s", available[0])
        return available[0]

    log.warning("No package manager detected, defaulting to %s", DEFAULT_MANAGER)
    return DEFAULT_MANAGER


async def manager_version(
    manager: PackageManager,
    runner: CommandRunner,
    timeout: float = 10,
) -> str | None:
    """``<manager> --version``, first line, or None if it cannot run."""
    outcome = await runner.execute(
        [manager.value, "--version"],
        CommandOptions(timeout=timeout),
    )
    if not outcome.ok:
        return None
    lines = outcome.stdout.strip().splitlines()
    return lines[0].strip() if lines else None


def installed_package_version(name: str, working_dir: str | Path = ".") -> str | None:
    """Version recorded in ``node_modules/<name>/package.json``, if readable."""
    path = Path(working_dir) / "node_modules" / name / "package.json"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    version = data.get("version") if isinstance(data, dict) else None
    return version if isinstance(version, str) and version else None


# ═══════════════════════════════════════════════════════════════════
#  Command construction
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class InstallOptions:
    """Flags that shape one install command."""

    global_: bool = False
    dev: bool = False
    exact: bool = False
    force: bool = False
    offline: bool = False
    registry: str | None = None


def build_install_args(
    manager: PackageManager,
    packages: Iterable[str],
    options: InstallOptions | None = None,
) -> list[str]:
    """Ordered argv for installing ``packages`` with ``manager``.

    >>> build_install_args(PackageManager.NPM, ["left-pad@1.3.0"], InstallOptions(dev=True))
    ['npm', 'install', '--save-dev', 'left-pad@1.3.0']
    """
    opts = options or InstallOptions()
    match manager:
        case PackageManager.NPM:
            args = ["npm", "install"]
            if opts.global_:
                args.append("-g")
            if opts.dev:
                args.append("--save-dev")
            if opts.exact:
                args.append("--save-exact")
        case PackageManager.PNPM:
            args = ["pnpm", "add"]
            if opts.global_:
                args.append("-g")
            if opts.dev:
                args.append("--save-dev")
            if opts.exact:
                args.append("--save-exact")
        case PackageManager.YARN:
            args = ["yarn", "global", "add"] if opts.global_ else ["yarn", "add"]
            if opts.dev:
                args.append("--dev")
            if opts.exact:
                args.append("--exact")
        case PackageManager.BUN:
            args = ["bun", "add"]
            if opts.global_:
                args.append("-g")
            if opts.dev:
                args.append("--dev")
            if opts.exact:
                args.append("--exact")
        case _:
            raise ValueError(f"Unsupported package manager: {manager}")

    if opts.force:
        args.append("--force")
    # bun has no offline switch
    if opts.offline and manager != PackageManager.BUN:
        args.append("--offline")
    if opts.registry:
        args.append(f"--registry={opts.registry}")

    args.extend(packages)
    return args


def build_uninstall_args(
    manager: PackageManager,
    packages: Iterable[str],
    global_: bool = False,
) -> list[str]:
    """Ordered argv for removing ``packages``."""
    match manager:
        case PackageManager.NPM:
            args = ["npm", "uninstall"]
        case PackageManager.YARN:
            args = ["yarn", "global", "remove"] if global_ else ["yarn", "remove"]
        case PackageManager.PNPM:
            args = ["pnpm", "remove"]
        case PackageManager.BUN:
            args = ["bun", "remove"]
        case _:
            raise ValueError(f"Unsupported package manager: {manager}")

    if global_ and manager != PackageManager.YARN:
        args.append("-g")
    args.extend(packages)
    return args


def build_cache_clean_args(manager: PackageManager) -> list[str]:
    """Ordered argv for clearing the manager's download cache."""
    try:
        return list(_CACHE_CLEAN[manager])
    except KeyError:
        raise ValueError(f"Cache clearing not supported for {manager}") from None
