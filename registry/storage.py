"""
MintGate - Collection Storage Backend

This module provides JSON-based persistence of a collection's state with
file locking, atomic replacement, checksum verification and rotating backups.
"""

import fcntl
import hashlib
import json
import logging
import os
import shutil
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from .schema import CollectionState


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Lock acquisition timeout exception."""
    pass


class IntegrityError(StorageError):
    """File integrity check failure exception."""
    pass


class FileLock:
    """
    Exclusive lock on a sidecar ``.lock`` file, shared across processes.

    Re-entrant for the thread that holds it. The lock file is left in place
    on release so every waiter locks the same inode.
    """

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self.timeout = timeout
        self.lock_fd: Optional[int] = None
        self._depth = 0
        self._thread_lock = RLock()

    def acquire(self) -> bool:
        """Acquire file lock with timeout."""
        if not self._thread_lock.acquire(timeout=self.timeout):
            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

        if self._depth:
            self._depth += 1
            return True

        try:
            self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self.lock_file_path), os.O_CREAT | os.O_RDWR)
        except OSError as e:
            self._thread_lock.release()
            raise StorageError(f"Failed to open lock file {self.lock_file_path}: {e}")

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    self._thread_lock.release()
                    raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")
                time.sleep(0.05)

        self.lock_fd = fd
        self._depth = 1
        return True

    def release(self) -> None:
        """Release one level of the lock; the file lock drops at depth zero."""
        if self._depth == 0:
            return

        self._depth -= 1
        try:
            if self._depth == 0:
                fd, self.lock_fd = self.lock_fd, None
                try:
                    fcntl.flock(fd, fcntl.LOCK_UN)
                finally:
                    os.close(fd)
        finally:
            self._thread_lock.release()

    @property
    def locked(self) -> bool:
        return self._depth > 0

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class CollectionStorage:
    """
    Stores one collection state document.

    The document is written to a temporary file and moved into place, so a
    reader never sees a half-written state. A SHA-256 checksum of the
    document body is stored alongside it and verified on load. Every read
    and write runs under a file lock; use ``lock()`` or ``update()`` to hold
    it across a whole load, change and save.
    """

    def __init__(self, file_path: Union[str, Path], backup_count: int = 5,
                 lock_timeout: float = 30.0):
        self.file_path = Path(file_path).expanduser()
        self.checksum_path = self.file_path.with_suffix(self.file_path.suffix + '.sha256')
        self.pending_checksum_path = self.checksum_path.with_suffix(self.checksum_path.suffix + '.tmp')
        self.backup_dir = self.file_path.parent / 'backups'
        self.backup_count = backup_count
        self._file_lock = FileLock(self.file_path, timeout=lock_timeout)

    def _calculate_checksum(self, data: bytes) -> str:
        """Calculate SHA-256 checksum of data."""
        return hashlib.sha256(data).hexdigest()

    @contextmanager
    def lock(self):
        """Hold the storage lock for the duration of the block."""
        with self._file_lock:
            yield self

    def exists(self) -> bool:
        """Check if storage file exists."""
        return self.file_path.exists()

    def load(self) -> CollectionState:
        """
        Read and validate the stored state.

        Raises:
            StorageError: If the file is missing or unreadable
            IntegrityError: If the checksum or schema validation fails
        """
        with self.lock():
            if not self.file_path.exists():
                raise StorageError(f"No collection state at {self.file_path}")

            try:
                data = self.file_path.read_bytes()
            except OSError as e:
                raise StorageError(f"Failed to read {self.file_path}: {e}")

            self._check_integrity(data)

            try:
                return CollectionState.model_validate(json.loads(data.decode('utf-8')))
            except json.JSONDecodeError as e:
                raise IntegrityError(f"Invalid JSON data: {e}")
            except ValidationError as e:
                raise IntegrityError(f"Invalid collection state: {e}")

    def _check_integrity(self, data: bytes) -> None:
        if not self.checksum_path.exists():
            return

        actual = self._calculate_checksum(data)
        if actual == self.checksum_path.read_text().strip():
            return

        # Interrupted save: document replaced, checksum not yet
        if (self.pending_checksum_path.exists()
                and self.pending_checksum_path.read_text().strip() == actual):
            os.replace(self.pending_checksum_path, self.checksum_path)
            logger.warning(f"Completed interrupted save of {self.file_path}")
            return

        raise IntegrityError(f"Checksum mismatch for {self.file_path}")

    def save(self, state: CollectionState, create_backup: bool = True) -> str:
        """
        Write state atomically.

        The new checksum is staged first, then the document and finally the
        checksum are moved into place.

        Returns:
            Checksum of the written document
        """
        state.updated_at = datetime.now(timezone.utc)
        data = json.dumps(state.model_dump(mode='json'), indent=2).encode('utf-8')
        checksum = self._calculate_checksum(data)

        with self.lock():
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            if create_backup:
                self._create_backup()

            temp_file = self.file_path.with_suffix(self.file_path.suffix + '.tmp')
            try:
                self.pending_checksum_path.write_text(checksum)
                with open(temp_file, 'wb') as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_file, self.file_path)
                os.replace(self.pending_checksum_path, self.checksum_path)
            except OSError as e:
                # Clean up temp files on failure
                for path in (temp_file, self.pending_checksum_path):
                    if path.exists():
                        path.unlink()
                raise StorageError(f"Failed to write file: {e}")

        return checksum

    def update(self, updater_func: Callable[[CollectionState], CollectionState],
               create_backup: bool = True) -> CollectionState:
        """
        Load, change and save the state under one lock.

        Nothing is written if ``updater_func`` raises.
        """
        with self.lock():
            state = updater_func(self.load())
            self.save(state, create_backup=create_backup)
            return state

    def verify(self) -> bool:
        """Check that the stored document matches its checksum."""
        with self.lock():
            if not self.file_path.exists() or not self.checksum_path.exists():
                return False
            data = self.file_path.read_bytes()
            return self._calculate_checksum(data) == self.checksum_path.read_text().strip()

    def _create_backup(self) -> None:
        """Create timestamped backup of current file."""
        if not self.file_path.exists():
            return

        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')
        backup_path = self.backup_dir / f"{self.file_path.stem}_{timestamp}{self.file_path.suffix}"
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.file_path, backup_path)

        self._cleanup_old_backups()

    def _cleanup_old_backups(self) -> None:
        """Remove old backup files beyond backup_count."""
        for backup_file in self.list_backups()[self.backup_count:]:
            backup_file.unlink()

    def list_backups(self) -> List[Path]:
        """List available backup files, newest first."""
        if not self.backup_dir.exists():
            return []

        pattern = f"{self.file_path.stem}_*{self.file_path.suffix}"
        return sorted(self.backup_dir.glob(pattern), key=lambda p: p.name, reverse=True)

    def latest_backup(self) -> Optional[Path]:
        backups = self.list_backups()
        return backups[0] if backups else None
