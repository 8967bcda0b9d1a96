import signal
import sys
from collections.abc import Generator
from contextlib import contextmanager
from types import FrameType

from .log import get_logger

logger = get_logger(__name__)


@contextmanager
def clean_cli_exit() -> Generator[None, None, None]:
    """Exit with the conventional 128+N status on SIGTERM, SIGHUP or Ctrl-C."""

    def signal_handler(signum: int, frame: FrameType | None) -> None:
        logger.error(f"Received signal {signal.Signals(signum).name}, aborting the pass.")
        sys.exit(128 + signum)

    for sig in [signal.SIGTERM, signal.SIGHUP]:
        signal.signal(sig, signal_handler)

    try:
        yield
    except KeyboardInterrupt:
        logger.error("Interrupted by user (Ctrl-C), aborting the pass.")
        sys.exit(128 + signal.SIGINT)
