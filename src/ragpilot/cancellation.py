"""Cooperative cancellation token passed through every long-running call."""

import signal
import threading
from contextlib import contextmanager
from typing import Iterator

from .logging_config import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Polled cancellation flag. Never interrupts work; callers check it."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@contextmanager
def cancel_on_sigint(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route SIGINT to ``token.cancel()`` for the duration of the block.

    A second SIGINT falls through to the previous handler so a stuck
    external call can still be interrupted.
    """

    def _handler(signum: int, frame: object) -> None:
        if token.is_cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt()
        logger.info("Received signal %s; cancelling after the current step.", signum)
        token.cancel()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # not the main thread
        yield token
        return
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
