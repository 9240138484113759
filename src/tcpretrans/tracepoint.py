import os
import sys
from enum import Enum

from .config import (
    CURRENT_TRACER,
    EVENT_ENABLE,
    EVENT_NAME,
    EVENT_SYSTEM,
    EVENT_TRIGGER,
    NOP_TRACER,
    TRACING_DIR,
)
from .errors import SetupFailure
from .helpers import append_control, write_control


class TracepointState(Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


class TracepointController:
    """Arms and disarms tcp:tcp_retransmit_skb through tracefs."""

    def __init__(self, tracing_dir=TRACING_DIR, stacks=False):
        self.tracing_dir = tracing_dir
        self.stacks = stacks
        self.state = TracepointState.DISABLED
        self._trigger_set = False

    def _path(self, rel):
        return os.path.join(self.tracing_dir, rel)

    def activate(self) -> None:
        """Select the nop tracer, then enable the tracepoint.

        On failure the caller's teardown still runs deactivate(), which is
        safe against a partially applied setup.
        """
        try:
            write_control(self._path(CURRENT_TRACER), NOP_TRACER)
        except OSError as exc:
            raise SetupFailure(f"setting {CURRENT_TRACER} to {NOP_TRACER}: {exc.strerror or exc}") from exc

        try:
            write_control(self._path(EVENT_ENABLE), "1")
        except OSError as exc:
            raise SetupFailure(
                f"enabling tracepoint {EVENT_SYSTEM}:{EVENT_NAME}: {exc.strerror or exc}"
            ) from exc
        self.state = TracepointState.ENABLED

        if self.stacks:
            try:
                append_control(self._path(EVENT_TRIGGER), "stacktrace")
            except OSError as exc:
                raise SetupFailure(f"enabling stacktrace trigger: {exc.strerror or exc}") from exc
            self._trigger_set = True

    def deactivate(self) -> bool:
        """Disable the tracepoint. Idempotent; failures are reported, not raised."""
        ok = True
        if self._trigger_set:
            try:
                append_control(self._path(EVENT_TRIGGER), "!stacktrace")
            except OSError as exc:
                ok = False
                print(f"[WARN] could not remove stacktrace trigger: {exc}", file=sys.stderr)
            else:
                self._trigger_set = False

        try:
            write_control(self._path(EVENT_ENABLE), "0")
        except OSError as exc:
            print(f"[WARN] could not disable {EVENT_SYSTEM}:{EVENT_NAME}: {exc}", file=sys.stderr)
            return False
        self.state = TracepointState.DISABLED
        return ok
