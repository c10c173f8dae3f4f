"""Single-instance guard based on an advisory file lock."""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path


logger = logging.getLogger(__name__)


class InstanceLockError(RuntimeError):
    """Raised when another daemon instance already holds the lock."""


class InstanceLock:
    """Hold an exclusive ``flock`` on ``path`` for the life of the process."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            raise InstanceLockError(f"Unable to open lock file {self._path}: {exc}") from exc
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            os.close(fd)
            raise InstanceLockError(
                f"Another instance already holds {self._path}"
            ) from exc
        except OSError as exc:
            os.close(fd)
            raise InstanceLockError(f"Unable to lock {self._path}: {exc}") from exc
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        self._fd = fd
        logger.debug("Acquired instance lock %s", self._path)

    def release(self) -> None:
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Released instance lock %s", self._path)

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


__all__ = ["InstanceLock", "InstanceLockError"]
