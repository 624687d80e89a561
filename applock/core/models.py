"""Data models for AppLock state and policy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _require_int(data: dict[str, Any], key: str) -> int:
    """Return ``data[key]`` as an int, rejecting bools and other types."""
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class MonotonicTimestamp:
    """A reading of the device uptime counter within one boot session.

    Two timestamps are only comparable when ``boot_epoch`` matches.

    Attributes:
        boot_epoch: Identifier of the boot session the reading belongs to.
        uptime_seconds: Whole seconds elapsed since boot.
    """

    boot_epoch: int
    uptime_seconds: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "boot_epoch": self.boot_epoch,
            "uptime_seconds": self.uptime_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonotonicTimestamp:
        """Create an instance from a dictionary."""
        return cls(
            boot_epoch=_require_int(data, "boot_epoch"),
            uptime_seconds=_require_int(data, "uptime_seconds"),
        )


@dataclass(frozen=True)
class UnlockAttempts:
    """Failed unlock attempt counter.

    Attributes:
        count: Number of consecutive failed attempts.
        wall_clock_timestamp: Wall time (seconds since the Unix epoch) of the
            last failure. Display/audit only.
    """

    count: int
    wall_clock_timestamp: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("count must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "count": self.count,
            "wall_clock_timestamp": self.wall_clock_timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UnlockAttempts:
        """Create an instance from a dictionary."""
        return cls(
            count=_require_int(data, "count"),
            wall_clock_timestamp=_require_int(data, "wall_clock_timestamp"),
        )


@dataclass(frozen=True)
class LockState:
    """Persisted lock state.

    Instances are immutable; the controller derives new values with
    :func:`dataclasses.replace` and compares them by value.

    Attributes:
        is_manually_locked: Set by an explicit lock request.
        application_activity_timestamp: Last time the app was known to be
            in use. ``None`` until the first observation.
        unlock_attempts: Failed attempts since the last successful unlock.
    """

    is_manually_locked: bool = False
    application_activity_timestamp: MonotonicTimestamp | None = None
    unlock_attempts: UnlockAttempts | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_manually_locked": self.is_manually_locked,
            "application_activity_timestamp": (
                self.application_activity_timestamp.to_dict()
                if self.application_activity_timestamp is not None
                else None
            ),
            "unlock_attempts": (
                self.unlock_attempts.to_dict()
                if self.unlock_attempts is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockState:
        """Create an instance from a dictionary.

        Unknown keys are ignored and missing optional keys decode to ``None``.

        Raises:
            TypeError: If a field has the wrong type.
            KeyError: If a nested record is missing a required key.
            ValueError: If a value is out of range.
        """
        if not isinstance(data, dict):
            raise TypeError("lock state must be a JSON object")

        locked = data.get("is_manually_locked", False)
        if not isinstance(locked, bool):
            raise TypeError("is_manually_locked must be a boolean")

        activity = data.get("application_activity_timestamp")
        attempts = data.get("unlock_attempts")
        return cls(
            is_manually_locked=locked,
            application_activity_timestamp=(
                MonotonicTimestamp.from_dict(activity) if activity is not None else None
            ),
            unlock_attempts=(
                UnlockAttempts.from_dict(attempts) if attempts is not None else None
            ),
        )


@dataclass(frozen=True)
class PasscodeSettings:
    """Passcode policy snapshot, consumed read-only.

    Attributes:
        autolock_timeout_seconds: Idle duration before autolock. ``None``
            disables autolock; manual lock still applies.
        biometrics_enabled: Whether the challenge may offer biometrics.
        biometrics_domain_state: Opaque biometrics enrollment token.
    """

    autolock_timeout_seconds: int | None = None
    biometrics_enabled: bool = False
    biometrics_domain_state: bytes | None = None


class AccessChallenge(Enum):
    """Kind of passcode configured for the application."""

    NONE = "none"
    NUMERICAL_4 = "numerical_4"
    NUMERICAL_6 = "numerical_6"
    PLAINTEXT = "plaintext"

    @property
    def is_lockable(self) -> bool:
        """Whether a passcode exists, so the app may be locked at all."""
        return self is not AccessChallenge.NONE


@dataclass(frozen=True)
class BiometricsMode:
    """Biometrics offered alongside the passcode challenge."""

    enabled: bool = False
    domain_state: bytes | None = None

    @classmethod
    def from_settings(cls, settings: PasscodeSettings) -> BiometricsMode:
        """Derive the biometrics mode from passcode settings."""
        if settings.biometrics_enabled:
            return cls(enabled=True, domain_state=settings.biometrics_domain_state)
        return cls()


@dataclass(frozen=True)
class ChallengeRequest:
    """Payload of a "show challenge" request sent to the presenter."""

    challenge: AccessChallenge
    biometrics: BiometricsMode = field(default_factory=BiometricsMode)
    animated: bool = True
    presented_over_covering_view: bool = True


@dataclass(frozen=True)
class PresentationState:
    """Derived presentation state, diffed by the controller."""

    challenge_shown: bool = False
    covering_view_shown: bool = False
    refresh_timer_running: bool = False
