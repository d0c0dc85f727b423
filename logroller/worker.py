"""Background retirement: compress new backups and prune old ones off the write path."""

import enum
import gzip
import logging
import os
import shutil
import stat
import threading

from logroller.config import RotationConfig
from logroller.fileops import FileOps
from logroller.naming import COMPRESS_SUFFIX, list_backups
from logroller.retention import select_for_deletion

logger = logging.getLogger(__name__)


def compress_file(src: str, dst: str | None = None, remove=os.remove) -> str:
    """Gzip-compress a backup, keeping its permission bits. Returns the .gz path.

    The source is removed only after the compressed copy is complete; a partial
    .gz is removed if compression fails. Both removals go through *remove*.
    """
    dst = dst or src + COMPRESS_SUFFIX
    mode = stat.S_IMODE(os.stat(src).st_mode)
    try:
        with open(src, "rb") as f_in, gzip.open(dst, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.chmod(dst, mode)
    except Exception:
        try:
            remove(dst)
        except FileNotFoundError:
            pass
        raise
    remove(src)
    return dst


class WorkerState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class RetirementWorker:
    """Single background thread that runs retirement passes on demand.

    Signals coalesce: any number of notify() calls between two passes cause
    one pass. request_stop() never blocks; join() waits for the thread,
    including a final pass for a signal that was already pending.
    """

    def __init__(self, config: RotationConfig, fs: FileOps, time_func, log=None):
        self._config = config
        self._fs = fs
        self._time_func = time_func
        self._log = log or logger
        self._cond = threading.Condition()
        self._pending = False
        self._stopping = False
        self._state = WorkerState.NOT_STARTED
        self._thread = None
        self._pass_lock = threading.Lock()
        self._pass_count = 0

    @property
    def state(self) -> WorkerState:
        with self._cond:
            return self._state

    @property
    def pass_count(self) -> int:
        return self._pass_count

    def start(self) -> bool:
        """Start the thread unless it was started (or stopped) before."""
        with self._cond:
            if self._state is not WorkerState.NOT_STARTED or self._stopping:
                return False
            self._thread = threading.Thread(
                target=self._run,
                name=f"logroller-retire-{os.path.basename(self._config.filename)}",
                daemon=True,
            )
            self._state = WorkerState.RUNNING
            self._thread.start()
        self._log.debug("Retirement worker started for %s", self._config.filename)
        return True

    def notify(self):
        """Mark retirement work pending. Never blocks; extra signals are dropped."""
        with self._cond:
            if self._stopping or self._pending:
                return
            self._pending = True
            self._cond.notify()

    def request_stop(self):
        with self._cond:
            self._stopping = True
            if self._state is WorkerState.NOT_STARTED:
                self._state = WorkerState.STOPPED
            self._cond.notify()

    def join(self):
        """Block until the thread has exited. No timeout."""
        thread = self._thread
        if thread is not None:
            thread.join()

    def stop(self):
        self.request_stop()
        self.join()

    def _run(self):
        try:
            while True:
                with self._cond:
                    while not self._pending and not self._stopping:
                        self._cond.wait()
                    if not self._pending:
                        break
                    self._pending = False
                try:
                    self.run_pass()
                except Exception:
                    self._log.exception("Retirement pass failed for %s", self._config.filename)
        finally:
            with self._cond:
                self._state = WorkerState.STOPPED
            self._log.debug("Retirement worker stopped for %s", self._config.filename)

    # ------------------------------------------------------------------
    # Retirement pass
    # ------------------------------------------------------------------

    def run_pass(self) -> list[str]:
        """Compress pending backups, then delete those the retention rules select.

        Returns the deleted paths. Per-file failures are logged and retried on
        the next pass.
        """
        with self._pass_lock:
            self._pass_count += 1
            cfg = self._config
            now = self._time_func()

            if cfg.compress:
                backups = list_backups(cfg.filename, cfg.local_time)
                doomed = select_for_deletion(backups, cfg, now)
                for backup in backups:
                    if backup.compressed or backup.path in doomed:
                        continue
                    self._compress(backup.path)

            # compression is finished before pruning starts
            backups = list_backups(cfg.filename, cfg.local_time)
            doomed = select_for_deletion(backups, cfg, now)
            deleted = []
            for path in sorted(doomed):
                try:
                    self._fs.remove(path)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    self._log.warning("Failed to remove backup %s: %s", path, exc)
                    continue
                deleted.append(path)

            if deleted:
                self._log.info("Purged %d backup(s): %s", len(deleted), ", ".join(deleted))
            return deleted

    def _compress(self, path: str):
        try:
            gz_path = compress_file(path, remove=self._fs.remove)
        except OSError as exc:
            self._log.warning("Failed to compress backup %s: %s", path, exc)
            return
        self._log.info("Compressed: %s", gz_path)
