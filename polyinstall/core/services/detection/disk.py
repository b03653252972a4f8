"""
Disk space probe.

Best-effort: if the filesystem cannot be measured the probe reports a
fixed conservative estimate instead of failing.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_GIB = 1024 * 1024 * 1024
_MIB = 1024 * 1024

# Used when the probe itself fails.
FALLBACK_FREE_BYTES = 10 * _GIB
FALLBACK_TOTAL_BYTES = 100 * _GIB

# Requirement estimate: manager cache + temp files, plus a per-package average.
BASE_RESERVE_BYTES = 500 * _MIB
PER_PACKAGE_RESERVE_BYTES = 50 * _MIB


@dataclass(frozen=True)
class DiskStatus:
    free_bytes: int
    total_bytes: int
    estimated: bool = False

    @property
    def free_gb(self) -> float:
        return self.free_bytes / _GIB


FALLBACK_STATUS = DiskStatus(FALLBACK_FREE_BYTES, FALLBACK_TOTAL_BYTES, estimated=True)


def estimate_required_space(package_count: int) -> int:
    """Bytes needed to install ``package_count`` packages."""
    return BASE_RESERVE_BYTES + PER_PACKAGE_RESERVE_BYTES * max(package_count, 0)


def _nearest_existing(path: Path) -> Path:
    # The working directory may not exist yet; measure the first ancestor that does.
    current = path.resolve()
    while not current.exists() and current.parent != current:
        current = current.parent
    return current


def disk_status(path: str | Path) -> DiskStatus:
    """Free/total bytes for the filesystem holding ``path``."""
    try:
        usage = shutil.disk_usage(_nearest_existing(Path(path)))
    except OSError as e:
        logger.warning("Disk probe failed for %s (%s), using fallback estimate", path, e)
        return FALLBACK_STATUS
    return DiskStatus(free_bytes=usage.free, total_bytes=usage.total)
