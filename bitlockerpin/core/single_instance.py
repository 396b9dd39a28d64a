# core/single_instance.py - Single-instance run guard for the setup flow
"""
Keeps two PIN setup flows from running at the same time.

A marker file (Paths.run_guard_marker()) represents "a setup flow is in
progress". The guard holds an exclusive OS lock on it for its lifetime:

- Windows: msvcrt.locking (LK_NBLCK on the first byte)
- Unix: fcntl.flock (LOCK_EX | LOCK_NB)

If neither primitive is importable, the guard falls back to creating the
marker with O_CREAT | O_EXCL. In that mode a marker left behind by a crash
blocks new runs until it goes stale, and two launches checking at the same
instant may both proceed. Both are accepted: a double run only means a
duplicate prompt.

States:
    ABSENT  -> HELD    acquire(), no live marker
    STALE   -> HELD    acquire(), marker older than the staleness threshold
                       is deleted first
    HELD    -> ABSENT  release() (idempotent)

Usage:
    with SingleInstanceGuard(Paths.run_guard_marker()):
        ...  # guarded work; the marker is released on every exit path
"""

import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from bitlockerpin.core.errors import AlreadyRunning
from bitlockerpin.core.limits import Limits

_instance_logger = logging.getLogger("BitLockerPin.instance")


def _os_lock_available() -> bool:
    if os.name == "nt":
        try:
            import msvcrt  # noqa: F401
        except ImportError:
            return False
        return True
    try:
        import fcntl  # noqa: F401
    except ImportError:
        return False
    return True


def _lock_fd(fd: int) -> bool:
    """Try to take the exclusive lock without blocking. True on success."""
    if os.name == "nt":
        import msvcrt

        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True
    import fcntl

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        return False
    return True


def _unlock_fd(fd: int) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        except OSError:
            return
        return
    import fcntl

    try:
        fcntl.flock(fd, fcntl.LOCK_UN)
    except OSError:
        return


class SingleInstanceGuard:
    """
    Advisory single-instance guard backed by a marker file.

    Args:
        marker_path: Marker file location
        stale_after: Age in seconds after which a marker is abandoned
        clock: Time source (seconds since the epoch), for tests
        use_os_lock: Use the OS lock primitive; None = use it if available
    """

    def __init__(
        self,
        marker_path: Path,
        stale_after: float = Limits.RUN_GUARD_STALE_SECONDS,
        clock: Callable[[], float] = time.time,
        use_os_lock: Optional[bool] = None,
    ):
        self.marker_path = Path(marker_path)
        self.stale_after = stale_after
        self._clock = clock
        self._use_os_lock = _os_lock_available() if use_os_lock is None else use_os_lock
        self._fd: Optional[int] = None

    @property
    def is_held(self) -> bool:
        """True while this guard owns the marker."""
        return self._fd is not None

    # -------------------------------------------------------------------------
    # Staleness
    # -------------------------------------------------------------------------

    def marker_age(self) -> Optional[float]:
        """Seconds since the marker was written, or None if there is none."""
        try:
            mtime = self.marker_path.stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, self._clock() - mtime)

    def _remove_if_stale(self) -> None:
        age = self.marker_age()
        if age is None or age < self.stale_after:
            return
        _instance_logger.warning(f"Removing stale run marker ({age / 3600:.1f} h old): {self.marker_path}")
        try:
            self.marker_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            # Still open by a live holder (Windows); the lock attempt decides
            _instance_logger.debug(f"Stale marker removal failed: {e}")

    # -------------------------------------------------------------------------
    # Acquire / release
    # -------------------------------------------------------------------------

    def acquire(self) -> "SingleInstanceGuard":
        """
        Take the guard.

        Returns:
            self, now held

        Raises:
            AlreadyRunning: a live marker is held by another flow
        """
        if self.is_held:
            raise AlreadyRunning(f"Run guard already held by this process: {self.marker_path}")

        self.marker_path.parent.mkdir(parents=True, exist_ok=True)
        self._remove_if_stale()

        if self._use_os_lock:
            fd = self._open_locked()
        else:
            fd = self._create_exclusive()

        self._fd = fd
        self._write_metadata()
        _instance_logger.info(f"Run guard acquired: {self.marker_path}")
        return self

    def _open_locked(self) -> int:
        fd = os.open(str(self.marker_path), os.O_RDWR | os.O_CREAT, 0o644)
        if not _lock_fd(fd):
            os.close(fd)
            raise AlreadyRunning(f"Setup is already running (marker locked): {self.marker_path}")
        if os.name != "nt" and not self._is_current_marker(fd):
            # The previous holder unlinked the marker between our open and
            # our lock; the lock is on an orphaned inode
            _unlock_fd(fd)
            os.close(fd)
            raise AlreadyRunning(f"Run marker replaced while locking: {self.marker_path}")
        return fd

    def _is_current_marker(self, fd: int) -> bool:
        try:
            on_disk = os.stat(str(self.marker_path))
        except FileNotFoundError:
            return False
        held = os.fstat(fd)
        return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)

    def _create_exclusive(self) -> int:
        try:
            return os.open(str(self.marker_path), os.O_RDWR | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError as exc:
            raise AlreadyRunning(f"Setup is already running (marker present): {self.marker_path}") from exc

    def _write_metadata(self) -> None:
        created = datetime.now(timezone.utc).isoformat(timespec="seconds")
        payload = f"pid={os.getpid()}\ncreated={created}\n".encode("ascii")
        try:
            # The locked byte is byte 0; write after it so msvcrt does not
            # refuse the write on Windows.
            os.lseek(self._fd, 1, os.SEEK_SET)
            os.ftruncate(self._fd, 1)
            os.write(self._fd, payload)
            os.fsync(self._fd)
        except OSError as e:
            _instance_logger.debug(f"Run marker metadata write failed: {e}")
        # Age is measured from mtime; pin it to the acquire time
        try:
            now = self._clock()
            os.utime(str(self.marker_path), (now, now))
        except OSError as e:
            _instance_logger.debug(f"Run marker timestamp update failed: {e}")

    def release(self) -> None:
        """
        Release the guard and delete the marker.

        Safe to call repeatedly and on a guard that was never acquired.
        """
        fd = self._fd
        if fd is None:
            return
        self._fd = None

        if os.name == "nt":
            # Windows cannot delete an open file: unlock and close first
            if self._use_os_lock:
                _unlock_fd(fd)
            os.close(fd)
            self._unlink_marker()
        else:
            # Unlink before unlocking; a contender that opened the old inode
            # sees the path change after it locks and backs off
            self._unlink_marker()
            if self._use_os_lock:
                _unlock_fd(fd)
            os.close(fd)

        _instance_logger.info(f"Run guard released: {self.marker_path}")

    def _unlink_marker(self) -> None:
        try:
            self.marker_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            _instance_logger.warning(f"Run marker removal failed: {e}")

    def __enter__(self) -> "SingleInstanceGuard":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def is_setup_running(marker_path: Path, stale_after: float = Limits.RUN_GUARD_STALE_SECONDS) -> bool:
    """
    Check whether a live setup flow currently holds the guard.

    Tries to acquire and immediately releases, which also clears stale
    markers.
    """
    guard = SingleInstanceGuard(marker_path, stale_after=stale_after)
    try:
        guard.acquire()
    except AlreadyRunning:
        return True
    guard.release()
    return False
