"""Backup file naming: <stem>-YYYY-MM-DDTHH-MM-SS.mmm<ext>[.gz]."""

import os
from dataclasses import dataclass
from datetime import datetime, timezone

BACKUP_TIME_FORMAT = "%Y-%m-%dT%H-%M-%S"
COMPRESS_SUFFIX = ".gz"
# e.g. "2025-01-15T12-30-45.123"
_STAMP_LEN = 23


@dataclass(frozen=True)
class BackupFile:
    path: str
    timestamp: datetime
    compressed: bool
    size: int = 0

    @property
    def stem(self) -> str:
        """Path without the compression suffix; a backup and its .gz twin share it."""
        if self.compressed:
            return self.path[: -len(COMPRESS_SUFFIX)]
        return self.path


def _prefix_and_ext(filename: str) -> tuple[str, str]:
    base = os.path.basename(filename)
    stem, ext = os.path.splitext(base)
    return stem + "-", ext


def truncate_timestamp(ts: datetime) -> datetime:
    """Drop sub-millisecond precision, which backup names do not carry."""
    return ts.replace(microsecond=ts.microsecond // 1000 * 1000)


def format_backup_name(filename: str, timestamp: datetime, local_time: bool = False) -> str:
    """Return the backup path for *filename* rotated at *timestamp*."""
    ts = timestamp.astimezone() if local_time else timestamp.astimezone(timezone.utc)
    stamp = ts.strftime(BACKUP_TIME_FORMAT) + f".{ts.microsecond // 1000:03d}"
    prefix, ext = _prefix_and_ext(filename)
    directory = os.path.dirname(filename)
    return os.path.join(directory, f"{prefix}{stamp}{ext}")


def parse_backup_name(path: str, filename: str, local_time: bool = False) -> tuple[datetime, bool] | None:
    """Extract (timestamp, compressed) from a backup path. Returns None on failure."""
    name = os.path.basename(path)
    compressed = name.endswith(COMPRESS_SUFFIX)
    if compressed:
        name = name[: -len(COMPRESS_SUFFIX)]

    prefix, ext = _prefix_and_ext(filename)
    if not name.startswith(prefix) or not name.endswith(ext):
        return None
    stamp = name[len(prefix): len(name) - len(ext)]
    if len(stamp) != _STAMP_LEN:
        return None
    try:
        parsed = datetime.strptime(stamp, BACKUP_TIME_FORMAT + ".%f")
    except ValueError:
        return None

    if local_time:
        return parsed.astimezone(), compressed
    return parsed.replace(tzinfo=timezone.utc), compressed


def list_backups(filename: str, local_time: bool = False) -> list[BackupFile]:
    """List backups of *filename* sorted newest-first."""
    directory = os.path.dirname(os.path.abspath(filename))
    try:
        names = os.listdir(directory)
    except FileNotFoundError:
        return []

    backups = []
    for name in names:
        parsed = parse_backup_name(name, filename, local_time)
        if parsed is None:
            continue
        path = os.path.join(directory, name)
        try:
            size = os.path.getsize(path)
        except FileNotFoundError:
            # removed between listdir and stat
            continue
        timestamp, compressed = parsed
        backups.append(BackupFile(path=path, timestamp=timestamp, compressed=compressed, size=size))

    backups.sort(key=lambda b: (b.timestamp, b.path), reverse=True)
    return backups
