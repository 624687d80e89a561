"""Lock overlay screen for AppLock.

A single modal screen covers the application while it is locked or
backgrounded. It shows either the privacy shield or, when a challenge has
been requested, the passcode prompt on top of the shield.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Static

from applock.core.models import AccessChallenge, ChallengeRequest, UnlockAttempts

SHIELD_TEXT = "[bold #00d4ff]◄ APPLOCK ►[/]\n[#64748b]Contents hidden[/]"

PASSCODE_LENGTHS = {
    AccessChallenge.NUMERICAL_4: 4,
    AccessChallenge.NUMERICAL_6: 6,
}


def format_attempts(attempts: UnlockAttempts | None) -> str:
    """Describe failed attempts for display, or ``""`` if there are none."""
    if attempts is None or attempts.count == 0:
        return ""
    noun = "attempt" if attempts.count == 1 else "attempts"
    when = datetime.fromtimestamp(attempts.wall_clock_timestamp).strftime("%H:%M:%S")
    return f"[#ef4444]{attempts.count} failed {noun}, last at {when}[/]"


class LockOverlayScreen(ModalScreen[None]):
    """Covering view and unlock challenge in one overlay."""

    DEFAULT_CSS = """
    LockOverlayScreen {
        align: center middle;
        background: $background 90%;
    }
    #lock-shield {
        width: 100%;
        height: auto;
    }
    #lock-challenge {
        width: 48;
        height: auto;
        border: heavy #00d4ff;
        padding: 1 2;
    }
    """

    def __init__(self, on_submit: Callable[[str], object]) -> None:
        super().__init__()
        self._on_submit = on_submit
        self._request: ChallengeRequest | None = None
        self._snapshot: Any | None = None
        self._attempts: UnlockAttempts | None = None
        self._mounted = False

    @property
    def challenge_visible(self) -> bool:
        """Whether the passcode prompt is shown."""
        return self._request is not None

    def compose(self) -> ComposeResult:
        """Create the shield and the (initially hidden) challenge form."""
        with Center(id="lock-shield"):
            yield Static(SHIELD_TEXT, id="shield-text")
            yield Static("", id="shield-snapshot")
        with Vertical(id="lock-challenge"):
            yield Static("[bold #60a5fa]━━━ APP LOCKED ━━━[/]", id="challenge-title")
            yield Label("ENTER PASSCODE", id="challenge-prompt")
            yield Input(placeholder="••••••••", password=True, id="passcode-input")
            yield Static("", id="biometrics-hint")
            yield Static("", id="attempts-message")

    def on_mount(self) -> None:
        """Apply any state set before the screen was mounted."""
        self._mounted = True
        self._refresh_view()

    def set_challenge(self, request: ChallengeRequest | None) -> None:
        """Show the passcode prompt for *request*, or hide it with ``None``."""
        self._request = request
        self._refresh_view()

    def set_snapshot(self, snapshot: Any | None) -> None:
        """Set the dimmed preview behind the shield. Only text is rendered."""
        self._snapshot = snapshot
        self._refresh_view()

    def set_attempts(self, attempts: UnlockAttempts | None) -> None:
        """Update the failed-attempt message."""
        self._attempts = attempts
        self._refresh_view()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Forward the entered passcode and clear the field."""
        passcode = event.value
        event.input.value = ""
        if passcode:
            self._on_submit(passcode)

    def _refresh_view(self) -> None:
        if not self._mounted:
            return

        snapshot = self._snapshot if isinstance(self._snapshot, str) else ""
        self.query_one("#shield-snapshot", Static).update(Text(snapshot, style="dim"))

        challenge_form = self.query_one("#lock-challenge", Vertical)
        challenge_form.display = self._request is not None
        if self._request is None:
            return

        passcode_input = self.query_one("#passcode-input", Input)
        length = PASSCODE_LENGTHS.get(self._request.challenge)
        passcode_input.max_length = length
        passcode_input.restrict = r"[0-9]*" if length else None

        hint = ""
        if self._request.biometrics.enabled:
            hint = "[#8b5cf6]Biometric unlock available[/]"
        self.query_one("#biometrics-hint", Static).update(hint)
        self.query_one("#attempts-message", Static).update(format_attempts(self._attempts))
        passcode_input.focus()
