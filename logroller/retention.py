"""Retention rules: which backups to delete by count, age, and total size."""

from datetime import datetime, timedelta

from logroller.config import RotationConfig
from logroller.naming import BackupFile


def select_for_deletion(
    backups: list[BackupFile],
    config: RotationConfig,
    now: datetime,
    exclude=(),
) -> set[str]:
    """Return the paths of backups captured by any enabled retention rule.

    *backups* must be ordered newest-first (as returned by list_backups).
    A backup and its compressed twin count as one backup for the count and
    size rules.
    Paths in *exclude* are never selected.
    """
    doomed: set[str] = set()

    if config.max_backups > 0:
        kept: set[str] = set()
        for backup in backups:
            if backup.stem in kept:
                continue
            if len(kept) < config.max_backups:
                kept.add(backup.stem)
            else:
                doomed.add(backup.path)

    if config.max_age_days > 0:
        if now.tzinfo is None:
            now = now.astimezone()
        cutoff = now - timedelta(days=config.max_age_days)
        doomed.update(b.path for b in backups if b.timestamp < cutoff)

    if config.max_total_size_bytes > 0:
        # twins share a stem; count the larger of the two once
        sizes: dict[str, int] = {}
        for backup in backups:
            sizes[backup.stem] = max(sizes.get(backup.stem, 0), backup.size)
        total = 0
        over: set[str] = set()
        for stem, size in sizes.items():
            total += size
            if total > config.max_total_size_bytes:
                over.add(stem)
        doomed.update(b.path for b in backups if b.stem in over)

    doomed.discard(config.filename)
    doomed.difference_update(exclude)
    return doomed
