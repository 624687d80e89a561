"""Lock decision engine.

Pure functions: no I/O, no clock reads, no state. The caller supplies the
current :class:`MonotonicTimestamp` so the result depends on its arguments
alone and may be recomputed at any frequency.
"""

from __future__ import annotations

from applock.core.models import (
    AccessChallenge,
    LockState,
    MonotonicTimestamp,
    PasscodeSettings,
    PresentationState,
)


def is_locked(
    settings: PasscodeSettings,
    state: LockState,
    app_active: bool,  # pylint: disable=unused-argument
    now: MonotonicTimestamp,
) -> bool:
    """Decide whether the application must show the unlock challenge.

    Missing or ambiguous information fails closed: no activity baseline or a
    baseline from another boot session both count as locked.

    Args:
        settings: Current passcode policy.
        state: Current lock state.
        app_active: Whether the app is foregrounded. Does not affect the
            outcome; the activity baseline already reflects foreground use.
        now: Current clock reading.

    Returns:
        True if locked, False otherwise.
    """
    if state.is_manually_locked:
        return True

    timeout = settings.autolock_timeout_seconds
    if timeout is None:
        return False

    reference = state.application_activity_timestamp
    if reference is None:
        return True
    if now.boot_epoch != reference.boot_epoch:
        return True
    return now.uptime_seconds >= reference.uptime_seconds + timeout


def needs_covering_view(settings: PasscodeSettings, app_active: bool) -> bool:
    """Whether the privacy shield must cover the app.

    Applies while the app is backgrounded and autolock is configured,
    whether or not the challenge itself is showing yet.
    """
    return settings.autolock_timeout_seconds is not None and not app_active


def evaluate(
    settings: PasscodeSettings,
    challenge: AccessChallenge,
    state: LockState,
    app_active: bool,
    now: MonotonicTimestamp,
) -> PresentationState:
    """Compute the full presentation state for the given inputs.

    When no passcode is configured nothing is shown and no activity refresh
    runs, whatever the lock state says.
    """
    if not challenge.is_lockable:
        return PresentationState()

    return PresentationState(
        challenge_shown=is_locked(settings, state, app_active, now),
        covering_view_shown=needs_covering_view(settings, app_active),
        refresh_timer_running=app_active,
    )
