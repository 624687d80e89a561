"""Monotonic, wall-clock independent time source for AppLock.

Lock timeouts are measured against the device uptime counter, never against
wall-clock time, so NTP syncs, timezone changes and manual clock edits cannot
shorten or extend them. Each reading carries a boot epoch so that a reboot is
detected instead of being misread as elapsed time.
"""

from __future__ import annotations

import sys
import time
import uuid
from pathlib import Path
from typing import Protocol

from loguru import logger

from applock.core.models import MonotonicTimestamp

# Boot epoch reported when the uptime counter cannot be read
SENTINEL_BOOT_EPOCH = 0

# Derived boot timestamps are rounded to this many seconds
BOOT_EPOCH_GRANULARITY = 60

BOOT_ID_PATH = Path("/proc/sys/kernel/random/boot_id")


class MonotonicClock(Protocol):
    """Source of :class:`MonotonicTimestamp` readings."""

    def now(self) -> MonotonicTimestamp:
        """Return the current boot epoch and uptime."""
        ...


def wall_clock() -> int:
    """Return wall-clock seconds since the Unix epoch (display only)."""
    return int(time.time())


def _read_uptime() -> float:
    """Read the uptime counter, including time spent suspended."""
    if sys.platform == "darwin":
        # time.monotonic() stops during sleep on macOS; CLOCK_MONOTONIC does not
        return time.clock_gettime(time.CLOCK_MONOTONIC)
    boottime = getattr(time, "CLOCK_BOOTTIME", None)
    if boottime is not None:
        return time.clock_gettime(boottime)
    return time.monotonic()


class SystemMonotonicClock:
    """Clock backed by the OS uptime counter.

    The boot epoch is taken from the kernel boot id where the platform
    exposes one. Elsewhere it is the boot timestamp (wall time minus uptime)
    rounded to :data:`BOOT_EPOCH_GRANULARITY`, computed once per instance.

    If the counter is unavailable, uptime reads as ``0`` and the boot epoch
    as :data:`SENTINEL_BOOT_EPOCH`, so every reading looks like the same
    session.
    """

    def __init__(self, boot_id_path: Path | None = None) -> None:
        self._boot_id_path = boot_id_path or BOOT_ID_PATH
        self._boot_epoch: int | None = None
        self._degraded = False

    @property
    def degraded(self) -> bool:
        """Whether the clock has fallen back to sentinel readings."""
        return self._degraded

    def now(self) -> MonotonicTimestamp:
        """Return the current reading. Never raises."""
        try:
            uptime = _read_uptime()
        except OSError as e:
            self._degrade(e)
            return MonotonicTimestamp(boot_epoch=SENTINEL_BOOT_EPOCH, uptime_seconds=0)

        if self._boot_epoch is None:
            self._boot_epoch = self._resolve_boot_epoch(uptime)
        return MonotonicTimestamp(boot_epoch=self._boot_epoch, uptime_seconds=int(uptime))

    def _resolve_boot_epoch(self, uptime: float) -> int:
        try:
            boot_id = self._boot_id_path.read_text(encoding="ascii").strip()
            # Fold the 128-bit boot id into a positive 63-bit integer
            return uuid.UUID(boot_id).int & 0x7FFFFFFFFFFFFFFF
        except (OSError, ValueError):
            pass

        boot_timestamp = time.time() - uptime
        return int(round(boot_timestamp / BOOT_EPOCH_GRANULARITY)) * BOOT_EPOCH_GRANULARITY

    def _degrade(self, error: Exception) -> None:
        if not self._degraded:
            logger.warning(
                "Uptime counter unavailable ({}); lock timeouts assume one boot session",
                error,
            )
        self._degraded = True
