"""AppLock - Textual host integration.

Wires an :class:`AppLockController` into a Textual application: focus events
drive the foreground flag, presenter requests become messages handled on the
app's event loop, and passcode entry is checked by an injected verifier.
"""

from __future__ import annotations

from typing import Any, Callable

from loguru import logger
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.events import AppBlur, AppFocus
from textual.message import Message
from textual.widgets import Footer, Header, Static

from applock.core.clock import MonotonicClock
from applock.core.config import AppLockConfig, get_config
from applock.core.controller import AppLockController
from applock.core.models import (
    AccessChallenge,
    ChallengeRequest,
    PasscodeSettings,
    UnlockAttempts,
)
from applock.core.store import StateStore
from applock.logger import configure as configure_logging
from applock.screens.lock import LockOverlayScreen


class ChallengeRequested(Message):
    """The controller asks for the unlock challenge."""

    def __init__(self, request: ChallengeRequest) -> None:
        super().__init__()
        self.request = request


class ChallengeDismissed(Message):
    """The controller no longer requires the unlock challenge."""


class CoveringViewRequested(Message):
    """The controller asks for the privacy shield."""

    def __init__(self, snapshot: Any | None) -> None:
        super().__init__()
        self.snapshot = snapshot


class CoveringViewDismissed(Message):
    """The controller no longer requires the privacy shield."""


class AttemptsChanged(Message):
    """The failed-attempt counter changed."""

    def __init__(self, attempts: UnlockAttempts | None) -> None:
        super().__init__()
        self.attempts = attempts


class TextualLockPresenter:
    """Presenter that forwards requests to a Textual app as messages.

    ``post_message`` is thread-safe, so requests made on the controller's
    thread are handled on the app's event loop without blocking it.
    """

    def __init__(self, app: App) -> None:
        self._app = app

    def show_challenge(self, request: ChallengeRequest) -> None:
        """Request the unlock challenge."""
        self._app.post_message(ChallengeRequested(request))

    def dismiss_challenge(self) -> None:
        """Request removal of the unlock challenge."""
        self._app.post_message(ChallengeDismissed())

    def show_covering_view(self, snapshot: Any | None) -> None:
        """Request the privacy shield."""
        self._app.post_message(CoveringViewRequested(snapshot))

    def hide_covering_view(self) -> None:
        """Request removal of the privacy shield."""
        self._app.post_message(CoveringViewDismissed())


class AppLockApp(App):  # pylint: disable=too-many-instance-attributes
    """Textual application protected by AppLock."""

    TITLE = "◀ APPLOCK ▶"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
        Binding("ctrl+l", "lock", "Lock", show=True),
    ]

    def __init__(  # pylint: disable=too-many-arguments
        self,
        verify_passcode: Callable[[str], bool],
        *,
        settings: PasscodeSettings | None = None,
        challenge: AccessChallenge = AccessChallenge.PLAINTEXT,
        config: AppLockConfig | None = None,
        store: StateStore | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            verify_passcode: Returns True if the entered passcode is correct.
            settings: Passcode policy. Defaults to a 60 second autolock.
            challenge: Kind of passcode configured.
            config: Runtime configuration. Defaults to get_config().
            store: Lock state storage. Defaults to the configured state path.
            clock: Monotonic time source. Defaults to the system clock.
        """
        super().__init__()
        self.config = config or get_config()
        configure_logging(self.config.log_path, self.config.log_level, console=False)

        self._verify_passcode = verify_passcode
        self._settings = settings or PasscodeSettings(autolock_timeout_seconds=60)
        self._challenge = challenge
        self._store = store or StateStore(self.config.state_path)
        self._clock = clock

        self.controller: AppLockController | None = None
        self._overlay: LockOverlayScreen | None = None
        self._challenge_request: ChallengeRequest | None = None
        self._covering = False
        self._snapshot: Any | None = None
        self._attempts: UnlockAttempts | None = None
        self._unsubscribe_attempts: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        """Create the placeholder application content."""
        yield Header()
        yield Static("Application content", id="content")
        yield Footer()

    def on_mount(self) -> None:
        """Start the lock controller once the event loop is running."""
        self.controller = AppLockController(
            self._store,
            TextualLockPresenter(self),
            clock=self._clock,
            settings=self._settings,
            challenge=self._challenge,
            application_active=True,
            refresh_interval=self.config.refresh_interval_seconds,
            snapshot_provider=self._covering_snapshot,
        )
        self._unsubscribe_attempts = self.controller.observe_attempts(
            lambda attempts: self.post_message(AttemptsChanged(attempts))
        )

    def on_unmount(self) -> None:
        """Stop the controller and flush pending writes."""
        if self._unsubscribe_attempts is not None:
            self._unsubscribe_attempts()
            self._unsubscribe_attempts = None
        if self.controller is not None:
            self.controller.close()
            self.controller = None

    # --- Foreground tracking ---

    def on_app_focus(self, _event: AppFocus) -> None:
        """Terminal regained focus."""
        if self.controller is not None:
            self.controller.set_application_active(True)

    def on_app_blur(self, _event: AppBlur) -> None:
        """Terminal lost focus."""
        if self.controller is not None:
            self.controller.set_application_active(False)

    # --- Presenter messages ---

    def on_challenge_requested(self, message: ChallengeRequested) -> None:
        """Show the challenge."""
        self._challenge_request = message.request
        self._sync_overlay()

    def on_challenge_dismissed(self, _message: ChallengeDismissed) -> None:
        """Hide the challenge."""
        self._challenge_request = None
        self._sync_overlay()

    def on_covering_view_requested(self, message: CoveringViewRequested) -> None:
        """Show the privacy shield."""
        self._covering = True
        self._snapshot = message.snapshot
        self._sync_overlay()

    def on_covering_view_dismissed(self, _message: CoveringViewDismissed) -> None:
        """Hide the privacy shield."""
        self._covering = False
        self._snapshot = None
        self._sync_overlay()

    def on_attempts_changed(self, message: AttemptsChanged) -> None:
        """Mirror the attempt counter into the overlay."""
        self._attempts = message.attempts
        if self._overlay is not None:
            self._overlay.set_attempts(message.attempts)

    def _sync_overlay(self) -> None:
        """Push, update or pop the overlay to match the requested views."""
        if self._challenge_request is not None or self._covering:
            if self._overlay is None:
                self._overlay = LockOverlayScreen(on_submit=self.submit_passcode)
                self.push_screen(self._overlay)
            self._overlay.set_challenge(self._challenge_request)
            self._overlay.set_snapshot(self._snapshot)
            self._overlay.set_attempts(self._attempts)
            return

        if self._overlay is None:
            return
        overlay, self._overlay = self._overlay, None
        if self.screen_stack and self.screen_stack[-1] is overlay:
            self.pop_screen()
        else:
            logger.warning("Lock overlay is not the top screen; leaving it in place")

    def _covering_snapshot(self) -> str:
        return str(self.title)

    # --- Actions ---

    def submit_passcode(self, passcode: str) -> bool:
        """Check *passcode* and report the outcome to the controller.

        A verifier that raises counts as a failed attempt.
        """
        if self.controller is None:
            return False
        try:
            accepted = bool(self._verify_passcode(passcode))
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Passcode verifier failed")
            accepted = False

        if accepted:
            self.controller.unlock()
        else:
            self.controller.failed_unlock_attempt()
        return accepted

    def action_lock(self) -> None:
        """Lock the app immediately."""
        if self.controller is not None:
            self.controller.lock()
