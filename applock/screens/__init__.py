"""AppLock Screens - Textual UI screens."""

from applock.screens.lock import LockOverlayScreen

__all__ = [
    "LockOverlayScreen",
]
