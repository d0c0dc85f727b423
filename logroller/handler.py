"""logging.Handler that writes formatted records through a RotatingWriter."""

import logging

from logroller.config import RotationConfig
from logroller.writer import RotatingWriter


def _not_from_logroller(record: logging.LogRecord) -> bool:
    # the writer logs while holding its own lock
    return not (record.name == "logroller" or record.name.startswith("logroller."))


class RotatingHandler(logging.Handler):
    """Handler backed by a RotatingWriter.

    Records emitted by logroller's own loggers are dropped, since writing
    them back into the writer that produced them would re-enter it.
    """

    terminator = "\n"

    def __init__(self, config: RotationConfig, encoding: str = "utf-8", level=logging.NOTSET, **writer_kwargs):
        super().__init__(level)
        self.encoding = encoding
        self.writer = RotatingWriter(config, **writer_kwargs)
        self.addFilter(_not_from_logroller)

    def emit(self, record: logging.LogRecord):
        try:
            msg = self.format(record) + self.terminator
            self.writer.write(msg.encode(self.encoding))
        except Exception:
            self.handleError(record)

    def flush(self):
        if not self.writer.closed:
            self.writer.flush()

    def close(self):
        try:
            self.writer.close()
        finally:
            super().close()
