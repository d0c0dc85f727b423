"""Append-only log writer with size-triggered rotation and background retirement."""

import logging
import os
import stat
import threading
from datetime import datetime, timedelta, timezone

from logroller.config import RotationConfig
from logroller.errors import ClosedError
from logroller.fileops import DEFAULT_MODE, FileOps, default_file_ops
from logroller.naming import COMPRESS_SUFFIX, format_backup_name, list_backups, truncate_timestamp
from logroller.worker import RetirementWorker

logger = logging.getLogger(__name__)


class RotatingWriter:
    """Byte sink that rolls the active file into a timestamped backup once it
    would exceed ``config.max_size_bytes``.

    The active file is opened lazily on the first write. Retired backups are
    compressed and pruned by a background thread started on the first
    rotation and joined by close(). All public methods are serialized by one
    lock, so a writer may be shared between threads.
    """

    def __init__(
        self,
        config: RotationConfig,
        fs: FileOps | None = None,
        time_func=None,
        log: logging.Logger | None = None,
    ):
        self._config = config
        self._fs = fs or default_file_ops()
        self._time_func = time_func or (lambda: datetime.now(timezone.utc))
        self._log = log or logger
        self._lock = threading.Lock()
        self._file = None
        self._size = 0
        self._closed = False
        self._last_backup_ts = None
        self._worker = RetirementWorker(config, self._fs, self._time_func, self._log)

    @property
    def filename(self) -> str:
        return self._config.filename

    @property
    def size(self) -> int:
        with self._lock:
            return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def worker(self) -> RetirementWorker:
        return self._worker

    def writable(self) -> bool:
        return not self._closed

    def write(self, data: bytes) -> int:
        """Append *data* to the active file, rotating first if it would overflow.

        A single write is never split across files. Returns the number of
        bytes written.
        """
        n = len(data)
        with self._lock:
            if self._closed:
                raise ClosedError(self.filename)

            if self._file is None:
                self._open_existing_or_new(n)
            elif self._size > 0 and self._size + n > self._config.max_size_bytes:
                self._rotate()

            self._file.write(data)
            self._file.flush()
            self._size += n
            return n

    def rotate(self):
        """Retire the active file (if any) and start a fresh one."""
        with self._lock:
            if self._closed:
                raise ClosedError(self.filename)
            self._rotate()

    def flush(self):
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def close(self):
        """Close the active file and wait for the retirement worker to exit.

        Only the first call does anything; later calls return immediately.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._close_file()
            finally:
                self._worker.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Internals (caller holds self._lock)
    # ------------------------------------------------------------------

    def _open_existing_or_new(self, write_len: int):
        try:
            info = os.stat(self.filename)
        except FileNotFoundError:
            self._open_new()
            return

        if info.st_size > 0 and info.st_size + write_len > self._config.max_size_bytes:
            self._rotate()
            return

        self._file = self._fs.open_for_append(self.filename, stat.S_IMODE(info.st_mode))
        self._size = info.st_size

    def _open_new(self, mode: int = DEFAULT_MODE):
        directory = self._config.directory
        os.makedirs(directory, exist_ok=True)
        self._file = self._fs.create_new(self.filename, mode)
        self._size = 0

    def _close_file(self):
        if self._file is None:
            return
        f, self._file = self._file, None
        f.close()

    def _backup_path(self) -> tuple[str, datetime]:
        ts = truncate_timestamp(self._time_func().astimezone(timezone.utc))
        if self._last_backup_ts is None:
            backups = list_backups(self.filename, self._config.local_time)
            if backups:
                self._last_backup_ts = backups[0].timestamp
        # names must keep sorting after every backup already on disk
        if self._last_backup_ts is not None and ts <= self._last_backup_ts:
            ts = self._last_backup_ts + timedelta(milliseconds=1)
        path = format_backup_name(self.filename, ts, self._config.local_time)
        while os.path.exists(path) or os.path.exists(path + COMPRESS_SUFFIX):
            ts += timedelta(milliseconds=1)
            path = format_backup_name(self.filename, ts, self._config.local_time)
        return path, ts

    def _rotate(self):
        self._close_file()

        mode = DEFAULT_MODE
        try:
            info = os.stat(self.filename)
        except FileNotFoundError:
            info = None

        if info is not None:
            mode = stat.S_IMODE(info.st_mode)
            backup, ts = self._backup_path()
            self._fs.rename(self.filename, backup)
            self._last_backup_ts = ts
            self._log.info("Rotated %s -> %s (%d bytes)", self.filename, backup, info.st_size)

        self._open_new(mode)

        self._worker.start()
        self._worker.notify()
