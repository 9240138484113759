import signal
import sys
from contextlib import contextmanager
from enum import Enum

from .errors import ShutdownRequested

SIGNAL_NAMES = ("SIGINT", "SIGQUIT", "SIGTERM", "SIGPIPE", "SIGHUP")


class Phase(Enum):
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


class ShutdownCoordinator:
    """Owns the run's lifecycle and its teardown steps.

    Signal handlers and fatal-error paths all go through request_shutdown().
    Teardown steps are registered as their resources are acquired and run
    once, last registered first, when teardown() is called.
    """

    def __init__(self):
        self.phase = Phase.RUNNING
        self.reason = None
        self._steps = []
        self._previous = {}

    @property
    def running(self) -> bool:
        return self.phase is Phase.RUNNING

    def install(self) -> None:
        for name in SIGNAL_NAMES:
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            self._previous[signum] = signal.signal(signum, self._on_signal)

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous.clear()

    @contextmanager
    def deferred(self):
        """Hold the handled signals until the block finishes.

        Used around steps that create a resource and record ownership of it,
        so a signal cannot land between the two.
        """
        signums = list(self._previous)
        if not signums or not hasattr(signal, "pthread_sigmask"):
            yield
            return
        old = signal.pthread_sigmask(signal.SIG_BLOCK, signums)
        try:
            yield
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, old)

    def _on_signal(self, signum, frame):
        if self.request_shutdown(f"received {signal.Signals(signum).name}"):
            # unwind out of whatever sleep or read the main loop is blocked in
            raise ShutdownRequested(self.reason)

    def request_shutdown(self, reason: str) -> bool:
        """Move RUNNING -> STOPPING. Returns False if already stopping."""
        if self.phase is not Phase.RUNNING:
            return False
        self.phase = Phase.STOPPING
        self.reason = reason
        return True

    def register(self, name: str, step) -> None:
        self._steps.append((name, step))

    def teardown(self) -> None:
        if self.phase is Phase.TERMINATED:
            return
        self.request_shutdown("normal exit")
        for signum in self._previous:
            signal.signal(signum, signal.SIG_IGN)

        while self._steps:
            name, step = self._steps.pop()
            try:
                step()
            except Exception as exc:
                print(f"[WARN] teardown step '{name}' failed: {exc}", file=sys.stderr)

        self.phase = Phase.TERMINATED
        self.restore()
