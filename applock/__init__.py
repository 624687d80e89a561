"""AppLock - application lock decision engine with durable state."""

from applock.core.clock import MonotonicClock, SystemMonotonicClock
from applock.core.controller import AppLockController, LockPresenter
from applock.core.decision import evaluate, is_locked, needs_covering_view
from applock.core.models import (
    AccessChallenge,
    BiometricsMode,
    ChallengeRequest,
    LockState,
    MonotonicTimestamp,
    PasscodeSettings,
    PresentationState,
    UnlockAttempts,
)
from applock.core.store import StateStore, StateStoreError, load_state, save_state

__version__ = "1.0.0"

__all__ = [
    "AccessChallenge",
    "AppLockController",
    "BiometricsMode",
    "ChallengeRequest",
    "LockPresenter",
    "LockState",
    "MonotonicClock",
    "MonotonicTimestamp",
    "PasscodeSettings",
    "PresentationState",
    "StateStore",
    "StateStoreError",
    "SystemMonotonicClock",
    "UnlockAttempts",
    "evaluate",
    "is_locked",
    "load_state",
    "needs_covering_view",
    "save_state",
]
