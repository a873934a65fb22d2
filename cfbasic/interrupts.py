import signal
import threading
from contextlib import contextmanager


class BreakFlag:
    """Cancellation token shared between an interrupt source and the execution engine.

    Setting is a single attribute store, which is safe from a signal handler;
    the engine polls it between statements.
    """

    def __init__(self):
        self._requested = False

    def request(self):
        self._requested = True

    def is_set(self) -> bool:
        return self._requested

    def clear(self):
        self._requested = False

    def consume(self) -> bool:
        if self._requested:
            self._requested = False
            return True
        return False


@contextmanager
def break_on_sigint(flag: BreakFlag):
    """Routes SIGINT to ``flag`` instead of raising KeyboardInterrupt, for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield flag
        return

    def handle_sigint(signum, frame):
        flag.request()

    previous = signal.signal(signal.SIGINT, handle_sigint)
    try:
        yield flag
    finally:
        signal.signal(signal.SIGINT, previous)


__all__ = ["BreakFlag", "break_on_sigint"]
