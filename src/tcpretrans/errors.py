SETUP_HINT = (
    "tracing setup failed; this needs root and a kernel (4.16+) that "
    "provides the tcp:tcp_retransmit_skb tracepoint"
)


class TraceError(Exception):
    """Fatal error reported to the operator; the process exits non-zero."""


class Contention(TraceError):
    def __init__(self, owner_pid, lock_path):
        self.owner_pid = owner_pid
        self.lock_path = lock_path
        super().__init__(
            f"tracing already in use by PID {owner_pid} (lock {lock_path}); "
            f"remove the lock file if that process no longer exists"
        )


class SetupFailure(TraceError):
    def __init__(self, message: str):
        super().__init__(f"{message}: {SETUP_HINT}")


class IOFailure(TraceError):
    pass


class ShutdownRequested(Exception):
    """Raised out of a suspension point when a termination signal arrives."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
