"""Application lock controller.

The controller is the single writer of :class:`LockState`. Every public
operation is marshalled onto the controller's home :class:`SerialQueue`, where
the state is updated, persisted through the :class:`StateStore` writer and
the presentation state is recomputed. Side effects on the presenter follow
from diffing the previous presentation state against the new one.
"""

from __future__ import annotations

import queue
from dataclasses import replace
from typing import Any, Callable, Iterator, Protocol

from loguru import logger

from applock.core.clock import MonotonicClock, SystemMonotonicClock, wall_clock
from applock.core.config import DEFAULT_REFRESH_INTERVAL
from applock.core.decision import evaluate, is_locked
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
from applock.core.store import StateStore
from applock.utils.dispatch import SerialQueue
from applock.utils.timer import RepeatingTimer

AttemptsListener = Callable[[UnlockAttempts | None], None]
TimerFactory = Callable[[float, Callable[[], None]], RepeatingTimer]


class LockPresenter(Protocol):
    """Receives presentation requests from the controller.

    Requests arrive on the controller's home thread, only on transitions.
    """

    def show_challenge(self, request: ChallengeRequest) -> None:
        """Display the passcode/biometric challenge."""
        ...

    def dismiss_challenge(self) -> None:
        """Remove the challenge."""
        ...

    def show_covering_view(self, snapshot: Any | None) -> None:
        """Cover the app with the privacy shield."""
        ...

    def hide_covering_view(self) -> None:
        """Remove the privacy shield."""
        ...


def _stamp(reference: MonotonicTimestamp | None, now: MonotonicTimestamp) -> MonotonicTimestamp:
    """Return the new activity baseline, never moving back within a boot."""
    if (
        reference is not None
        and reference.boot_epoch == now.boot_epoch
        and now.uptime_seconds < reference.uptime_seconds
    ):
        return reference
    return now


class AppLockController:  # pylint: disable=too-many-instance-attributes
    """Owns the in-memory lock state and drives the presenter.

    Attributes:
        refresh_interval: Seconds between activity re-stamps while the app is
            foregrounded and lockable.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: StateStore,
        presenter: LockPresenter,
        *,
        clock: MonotonicClock | None = None,
        wall_time: Callable[[], int] = wall_clock,
        settings: PasscodeSettings | None = None,
        challenge: AccessChallenge = AccessChallenge.NONE,
        application_active: bool = False,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        timer_factory: TimerFactory = RepeatingTimer,
        snapshot_provider: Callable[[], Any] | None = None,
    ) -> None:
        """Initialize the controller and load the persisted state.

        Args:
            store: Lock state storage. The controller closes it on close().
            presenter: Receiver of challenge and covering-view requests.
            clock: Monotonic time source. Defaults to the system clock.
            wall_time: Wall-clock seconds, used for attempt stamps only.
            settings: Initial passcode policy.
            challenge: Initial kind of configured passcode.
            application_active: Whether the app starts in the foreground.
            refresh_interval: Activity re-stamp period in seconds.
            timer_factory: Builds the activity refresh timer.
            snapshot_provider: Optional capture of the app contents passed to
                the covering view.
        """
        self.refresh_interval = refresh_interval
        self._store = store
        self._presenter = presenter
        self._clock: MonotonicClock = clock or SystemMonotonicClock()
        self._wall_time = wall_time
        self._settings = settings or PasscodeSettings()
        self._challenge = challenge
        self._application_active = application_active
        self._timer_factory = timer_factory
        self._snapshot_provider = snapshot_provider

        self._queue = SerialQueue("applock-main")
        self._state = store.load()
        self._presentation = PresentationState()
        self._timer: RepeatingTimer | None = None
        self._listeners: dict[object, AttemptsListener] = {}
        self._closed = False

        self._queue.submit(self._recompute)

    # --- Snapshots ---

    @property
    def state(self) -> LockState:
        """Current lock state."""
        return self._state

    @property
    def presentation(self) -> PresentationState:
        """Presentation state as last applied to the presenter."""
        return self._presentation

    @property
    def settings(self) -> PasscodeSettings:
        """Current passcode policy."""
        return self._settings

    @property
    def challenge(self) -> AccessChallenge:
        """Current kind of configured passcode."""
        return self._challenge

    @property
    def application_active(self) -> bool:
        """Whether the app is in the foreground."""
        return self._application_active

    # --- Lock operations ---

    def lock(self) -> None:
        """Lock the app until the next successful unlock."""
        self._update(lambda state: replace(state, is_manually_locked=True))

    def unlock(self) -> None:
        """Record a successful unlock.

        Clears the manual lock and the failed attempts, and restarts the
        autolock countdown from now.
        """

        def _unlocked(state: LockState) -> LockState:
            return replace(
                state,
                is_manually_locked=False,
                unlock_attempts=None,
                application_activity_timestamp=_stamp(
                    state.application_activity_timestamp, self._clock.now()
                ),
            )

        self._update(_unlocked)

    def failed_unlock_attempt(self) -> None:
        """Record a failed unlock. Never blocks further attempts."""

        def _failed(state: LockState) -> LockState:
            count = state.unlock_attempts.count if state.unlock_attempts else 0
            return replace(
                state,
                unlock_attempts=UnlockAttempts(
                    count=count + 1,
                    wall_clock_timestamp=self._wall_time(),
                ),
            )

        self._update(_failed)

    # --- Inputs ---

    def update_settings(self, settings: PasscodeSettings) -> None:
        """Apply a new passcode policy."""

        def _apply() -> None:
            if settings != self._settings:
                self._settings = settings
                self._recompute()

        self._queue.submit(_apply)

    def update_challenge(self, challenge: AccessChallenge) -> None:
        """Apply a change of configured passcode kind."""

        def _apply() -> None:
            if challenge is not self._challenge:
                self._challenge = challenge
                self._recompute()

        self._queue.submit(_apply)

    def set_application_active(self, active: bool) -> None:
        """Report a foreground/background transition."""

        def _apply() -> None:
            if active != self._application_active:
                self._application_active = active
                self._recompute()

        self._queue.submit(_apply)

    # --- Attempts stream ---

    def observe_attempts(self, listener: AttemptsListener) -> Callable[[], None]:
        """Subscribe to failed-attempt changes.

        *listener* receives the current value first, then each new value, on
        the controller's home thread.

        Returns:
            A callable that unsubscribes the listener.
        """
        token = object()

        def _subscribe() -> None:
            self._listeners[token] = listener
            self._deliver(listener, self._state.unlock_attempts)

        def _unsubscribe() -> None:
            self._queue.submit(self._listeners.pop, token, None)

        self._queue.submit(_subscribe)
        return _unsubscribe

    def attempts(self) -> Iterator[UnlockAttempts | None]:
        """Yield the current attempts value and every later change.

        Blocks between changes and never ends on its own; closing the
        generator unsubscribes it.
        """
        pending: queue.Queue[UnlockAttempts | None] = queue.Queue()
        unsubscribe = self.observe_attempts(pending.put)
        try:
            while True:
                yield pending.get()
        finally:
            unsubscribe()

    # --- Lifecycle ---

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until pending updates and their writes have completed."""
        return self._queue.flush(timeout) and self._store.flush(timeout)

    def close(self) -> None:
        """Stop the refresh timer, drain pending work and close the store."""

        def _shutdown() -> None:
            self._closed = True
            self._set_refresh_timer(False)
            self._listeners.clear()

        self._queue.submit(_shutdown)
        self._queue.shutdown(wait=True)
        self._store.close()

    # --- Home context internals ---

    def _update(self, fn: Callable[[LockState], LockState]) -> None:
        self._queue.submit(self._apply_update, fn)

    def _apply_update(self, fn: Callable[[LockState], LockState]) -> None:
        if self._closed:
            return
        previous = self._state
        updated = fn(previous)
        if updated == previous:
            return

        self._state = updated
        logger.debug("Lock state changed: {}", updated)
        self._store.save_async(updated)

        if updated.unlock_attempts != previous.unlock_attempts:
            for listener in list(self._listeners.values()):
                self._deliver(listener, updated.unlock_attempts)

        self._recompute()

    def _refresh_activity(self) -> None:
        def _refreshed(state: LockState) -> LockState:
            # A tick queued before the timer was cancelled
            if not self._presentation.refresh_timer_running:
                return state
            now = self._clock.now()
            # Only unlock() may release a lock
            if is_locked(self._settings, state, self._application_active, now):
                return state
            return replace(
                state,
                application_activity_timestamp=_stamp(state.application_activity_timestamp, now),
            )

        self._update(_refreshed)

    def _recompute(self) -> None:
        if self._closed:
            return
        previous = self._presentation
        current = evaluate(
            self._settings,
            self._challenge,
            self._state,
            self._application_active,
            self._clock.now(),
        )
        self._presentation = current

        if current.challenge_shown != previous.challenge_shown:
            if current.challenge_shown:
                logger.debug("Presenting unlock challenge")
                self._present(self._presenter.show_challenge, self._challenge_request())
            else:
                logger.debug("Dismissing unlock challenge")
                self._present(self._presenter.dismiss_challenge)

        if current.covering_view_shown != previous.covering_view_shown:
            if current.covering_view_shown:
                self._present(self._presenter.show_covering_view, self._take_snapshot())
            else:
                self._present(self._presenter.hide_covering_view)

        self._set_refresh_timer(current.refresh_timer_running)

    def _challenge_request(self) -> ChallengeRequest:
        return ChallengeRequest(
            challenge=self._challenge,
            biometrics=BiometricsMode.from_settings(self._settings),
            animated=True,
            presented_over_covering_view=True,
        )

    def _take_snapshot(self) -> Any | None:
        if self._snapshot_provider is None:
            return None
        try:
            return self._snapshot_provider()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Covering view snapshot failed")
            return None

    def _set_refresh_timer(self, run: bool) -> None:
        if run and self._timer is None:
            self._timer = self._timer_factory(self.refresh_interval, self._refresh_activity)
            self._timer.start()
        elif not run and self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @staticmethod
    def _present(request: Callable[..., None], *args: Any) -> None:
        try:
            request(*args)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Lock presenter request failed")

    @staticmethod
    def _deliver(listener: AttemptsListener, attempts: UnlockAttempts | None) -> None:
        try:
            listener(attempts)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Attempts listener failed")
