"""
Configuration loader — reads install.yml into an InstallationConfig.

Reads YAML, validates against the pydantic model, and returns a typed
configuration. CLI flags are layered on top by the caller.

Example ``install.yml``::

    packages:
      - typescript@5.4.5
      - name: eslint
        kind: dev
      - name: fsevents
        optional: true
    preferred_manager: pnpm
    timeout: 600
    retry_attempts: 2
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from polyinstall.core.models.config import InstallationConfig

logger = logging.getLogger(__name__)

# Default config filename
INSTALL_CONFIG_FILE = "install.yml"


class ConfigError(Exception):
    """Raised when install configuration is invalid or missing."""


def find_install_file(start_dir: Path | None = None) -> Path | None:
    """Search for install.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to install.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / INSTALL_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_install_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> InstallationConfig:
    """Load and validate install configuration.

    Args:
        path: Explicit path to install.yml. If None, searches upward.
        overrides: Field values that win over the file (CLI flags).

    Returns:
        Validated InstallationConfig. A relative ``working_dir`` is
        resolved against the file's directory.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_install_file()

    if path is None:
        raise ConfigError(
            f"No {INSTALL_CONFIG_FILE} found. "
            "Pass packages on the command line, or specify --config."
        )

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading install config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Never read secrets from disk
    data.pop("sudo_password", None)

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    working_dir = Path(str(data.get("working_dir", ".")))
    if not working_dir.is_absolute():
        data["working_dir"] = str((path.parent / working_dir).resolve())

    try:
        config = InstallationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid install configuration: {e}") from e

    logger.info("Loaded %d packages from %s", config.package_count, path)
    return config
