"""Durable storage of AppLock state."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from applock.core.models import LockState
from applock.utils.dispatch import SerialQueue

# Default state location
DEFAULT_STATE_DIR = Path.home() / ".applock"
DEFAULT_STATE_FILE = DEFAULT_STATE_DIR / "lockstate.json"


class StateStoreError(Exception):
    """Raised when lock state cannot be written."""


def load_state(path: Path) -> LockState:
    """Load lock state from *path*.

    Never raises: a missing, unreadable or corrupt file yields a fresh
    default state. With autolock enabled the default state has no activity
    baseline and therefore decides as locked.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No lock state at {}; starting fresh", path)
        return LockState()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read lock state at {}: {}", path, e)
        return LockState()

    try:
        return LockState.from_dict(json.loads(raw))
    except (ValueError, TypeError, KeyError, RecursionError) as e:
        logger.warning("Discarding corrupt lock state at {}: {}", path, e)
        return LockState()


def save_state(path: Path, state: LockState) -> None:
    """Write *state* to *path* atomically.

    Uses temp file + fsync + atomic rename, so a concurrent reader sees
    either the previous file or the new one, never a partial write.

    Raises:
        StateStoreError: If the write fails.
    """
    data = json.dumps(state.to_dict(), indent=2).encode("utf-8")
    try:
        _ensure_state_dir(path.parent)
        _atomic_write(path, data)
    except OSError as e:
        raise StateStoreError(f"Failed to save lock state to {path}: {e}") from e


def _ensure_state_dir(directory: Path) -> None:
    """Ensure the state directory exists with owner-only permissions."""
    if directory.exists():
        return
    directory.mkdir(parents=True, exist_ok=True)
    if os.name != "nt":
        os.chmod(directory, 0o700)


def _atomic_write(path: Path, data: bytes) -> None:
    """Replace the lock state file with *data* in one rename."""
    state_dir = path.parent
    fd, temp_path = tempfile.mkstemp(dir=state_dir, prefix=".lockstate_", suffix=".tmp")
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        if os.name != "nt":
            os.chmod(temp_path, 0o600)
        # Readers see the previous state until this rename lands
        os.replace(temp_path, path)
        _fsync_directory(state_dir)
    except Exception:
        if not _is_fd_closed(fd):
            os.close(fd)
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def _fsync_directory(directory: Path) -> None:
    """Persist the rename of the state file. Skipped on Windows."""
    if os.name == "nt":
        return
    dir_fd = os.open(str(directory), os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def _is_fd_closed(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError:
        return True
    return False


class StateStore:
    """Lock state file with an ordered background writer.

    Writes queued through :meth:`save_async` run one at a time in the order
    they were issued, so the last state saved is the one left on disk.

    Attributes:
        path: Path to the state file.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Path to the state file. Defaults to ~/.applock/lockstate.json.
        """
        self.path = path or DEFAULT_STATE_FILE
        self._queue = SerialQueue("applock-store")

    def load(self) -> LockState:
        """Load the persisted state, or a default state."""
        return load_state(self.path)

    def save(self, state: LockState) -> None:
        """Write *state* synchronously.

        Raises:
            StateStoreError: If the write fails.
        """
        save_state(self.path, state)

    def save_async(self, state: LockState) -> None:
        """Queue a write of *state*; failures are logged and dropped."""
        self._queue.submit(self._save_quietly, state)

    def _save_quietly(self, state: LockState) -> None:
        try:
            self.save(state)
        except StateStoreError as e:
            logger.warning("{}; keeping in-memory state", e)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued writes. Returns False on timeout."""
        return self._queue.flush(timeout)

    def close(self) -> None:
        """Finish queued writes and stop the writer."""
        self._queue.shutdown(wait=True)
