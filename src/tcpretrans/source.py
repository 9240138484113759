import os
import time
from datetime import datetime

from .config import COMMENT_MARKER, INTERVAL_SEC, TRACE_FILE, TRACING_DIR
from .errors import IOFailure
from .helpers import read_lines, write_control


class EventSource:
    """Polls the kernel trace buffer once per interval.

    Each drain reads the whole buffer and then truncates it, so a cycle only
    sees events emitted since the previous one. Events the kernel writes
    between the read and the clear are lost, as with any snapshot of the
    non-consuming ``trace`` file.
    """

    def __init__(self, tracing_dir=TRACING_DIR, interval=INTERVAL_SEC, sleep=time.sleep):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.trace_path = os.path.join(tracing_dir, TRACE_FILE)
        self.interval = float(interval)
        self._sleep = sleep
        self.lines_read = 0

    def read(self):
        try:
            raw = read_lines(self.trace_path)
        except OSError as exc:
            raise IOFailure(f"cannot read {self.trace_path}: {exc.strerror or exc}") from exc
        lines = [l for l in raw if l.strip() and not l.lstrip().startswith(COMMENT_MARKER)]
        self.lines_read += len(lines)
        return lines

    def clear(self) -> None:
        try:
            write_control(self.trace_path, "0")
        except OSError as exc:
            raise IOFailure(f"cannot clear {self.trace_path}: {exc.strerror or exc}") from exc

    def drain(self):
        self._sleep(self.interval)
        lines = self.read()
        self.clear()
        return lines

    def batches(self):
        while True:
            lines = self.drain()
            yield datetime.now(), lines
