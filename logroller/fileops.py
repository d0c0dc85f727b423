"""Filesystem capability used by the writer: open, create, rename, remove.

Platforms where an open handle locks the file against rename/delete get a
retrying implementation; everywhere else the calls go straight to the OS.
"""

import logging
import os
import time

logger = logging.getLogger(__name__)

DEFAULT_MODE = 0o644

# Windows system error codes
ERROR_SHARING_VIOLATION = 32
ERROR_LOCK_VIOLATION = 33

TRANSIENT_LOCK_ERRORS = frozenset({ERROR_SHARING_VIOLATION, ERROR_LOCK_VIOLATION})


def is_transient_lock_error(exc: OSError) -> bool:
    """True for sharing/lock violations, which clear once the other handle goes away."""
    return getattr(exc, "winerror", None) in TRANSIENT_LOCK_ERRORS


class FileOps:
    """Direct pass-through to the OS, no retries."""

    def open_for_append(self, path: str, mode: int = DEFAULT_MODE):
        return self._open(path, append=True, mode=mode)

    def create_new(self, path: str, mode: int = DEFAULT_MODE):
        return self._open(path, append=False, mode=mode)

    def rename(self, src: str, dst: str):
        self._rename(src, dst)

    def remove(self, path: str):
        self._remove(path)

    # ------------------------------------------------------------------
    # Raw primitives (overridden per platform and by test doubles)
    # ------------------------------------------------------------------

    def _open(self, path: str, append: bool, mode: int):
        flags = os.O_WRONLY | os.O_CREAT | (os.O_APPEND if append else os.O_TRUNC)
        fd = os.open(path, flags, mode)
        return os.fdopen(fd, "ab" if append else "wb")

    def _rename(self, src: str, dst: str):
        os.replace(src, dst)

    def _remove(self, path: str):
        os.remove(path)


class LockingFileOps(FileOps):
    """FileOps for platforms where open handles block rename and delete.

    Only transient sharing/lock violations are retried, a fixed number of
    times with a fixed backoff. Any other error, or the last transient one,
    is raised unchanged.
    """

    open_attempts = 3
    open_backoff = 0.01
    rename_attempts = 5
    rename_backoff = 0.02

    def __init__(self, sleep=time.sleep):
        self._sleep = sleep

    def open_for_append(self, path: str, mode: int = DEFAULT_MODE):
        return self._retry(self._open, self.open_attempts, self.open_backoff, path, True, mode)

    def create_new(self, path: str, mode: int = DEFAULT_MODE):
        return self._retry(self._open, self.open_attempts, self.open_backoff, path, False, mode)

    def rename(self, src: str, dst: str):
        self._retry(self._rename, self.rename_attempts, self.rename_backoff, src, dst)

    def remove(self, path: str):
        self._retry(self._remove, self.rename_attempts, self.rename_backoff, path)

    def _retry(self, op, attempts: int, backoff: float, *args):
        for attempt in range(1, attempts + 1):
            try:
                return op(*args)
            except OSError as exc:
                if attempt == attempts or not is_transient_lock_error(exc):
                    raise
                logger.debug(
                    "%s%r hit transient lock (attempt %d/%d): %s",
                    op.__name__, args, attempt, attempts, exc,
                )
                self._sleep(backoff)


class WindowsFileOps(LockingFileOps):
    """Opens files with FILE_SHARE_READ|WRITE|DELETE so readers and renames are not blocked."""

    GENERIC_WRITE = 0x40000000
    FILE_APPEND_DATA = 0x0004
    FILE_SHARE_ALL = 0x1 | 0x2 | 0x4
    CREATE_ALWAYS = 2
    OPEN_ALWAYS = 4
    FILE_ATTRIBUTE_NORMAL = 0x80

    def __init__(self, sleep=time.sleep):
        super().__init__(sleep)
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        self._create_file = kernel32.CreateFileW
        self._create_file.argtypes = [
            wintypes.LPCWSTR, wintypes.DWORD, wintypes.DWORD, wintypes.LPVOID,
            wintypes.DWORD, wintypes.DWORD, wintypes.HANDLE,
        ]
        self._create_file.restype = wintypes.HANDLE
        self._close_handle = kernel32.CloseHandle
        self._invalid_handle = wintypes.HANDLE(-1).value

    def _open(self, path: str, append: bool, mode: int):
        import msvcrt

        access = self.FILE_APPEND_DATA if append else self.GENERIC_WRITE
        disposition = self.OPEN_ALWAYS if append else self.CREATE_ALWAYS
        handle = self._create_file(
            path, access, self.FILE_SHARE_ALL, None, disposition, self.FILE_ATTRIBUTE_NORMAL, None,
        )
        if handle is None or handle == self._invalid_handle:
            err = self._ctypes.get_last_error()
            raise self._ctypes.WinError(err, f"CreateFileW({path!r})")
        try:
            fd = msvcrt.open_osfhandle(handle, os.O_WRONLY | (os.O_APPEND if append else 0))
        except OSError:
            self._close_handle(handle)
            raise
        return os.fdopen(fd, "ab" if append else "wb")


def default_file_ops() -> FileOps:
    """Return the FileOps implementation for the running platform."""
    if os.name == "nt":
        return WindowsFileOps()
    return FileOps()
