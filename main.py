"""Demo service: writes numbered log lines through a RotatingWriter until interrupted."""

import argparse
import logging
import signal
import sys
import time
import uuid
from datetime import datetime, timezone

from logroller.config import load_config, load_yaml_config
from logroller.writer import RotatingWriter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [logroller] %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def generate_entry(seq: int) -> bytes:
    now = datetime.now(timezone.utc)
    stamp = now.isoformat(timespec="milliseconds")
    return f"{stamp} demo entry {seq:06d} id={uuid.uuid4().hex[:8]}\n".encode()


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rotating log writer demo")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument(
        "--count", type=int, default=0,
        help="Stop after this many entries (default: run until interrupted)",
    )
    parser.add_argument("--interval", type=float, default=0.05, help="Seconds between entries")
    parser.add_argument("--debug", action="store_true", help="Log rotation internals")
    return parser


def main(argv=None) -> int:
    args = build_cli_parser().parse_args(argv)
    if args.debug:
        logging.getLogger("logroller").setLevel(logging.DEBUG)
    # SIGTERM stops the loop the same way Ctrl-C does
    signal.signal(signal.SIGTERM, signal.default_int_handler)

    config = load_config(load_yaml_config(args.config))
    logger.info("Writing to %s (rotate at %d bytes)", config.filename, config.max_size_bytes)

    written = 0
    with RotatingWriter(config) as writer:
        try:
            while args.count <= 0 or written < args.count:
                writer.write(generate_entry(written))
                written += 1
                if args.interval > 0:
                    time.sleep(args.interval)
        except KeyboardInterrupt:
            logger.info("Interrupted, closing writer")

    logger.info("Wrote %d entries", written)
    return written


if __name__ == "__main__":
    main()
