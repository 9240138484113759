import os


# -------------------------
# Tracing facility
# -------------------------
def _default_tracing_dir():
    for candidate in ("/sys/kernel/tracing", "/sys/kernel/debug/tracing"):
        if os.path.isdir(os.path.join(candidate, "events")):
            return candidate
    return "/sys/kernel/debug/tracing"


TRACING_DIR = os.environ.get("TCPRETRANS_TRACING_DIR") or _default_tracing_dir()

EVENT_SYSTEM = "tcp"
EVENT_NAME = "tcp_retransmit_skb"
NOP_TRACER = "nop"

# relative to TRACING_DIR
CURRENT_TRACER = "current_tracer"
TRACE_FILE = "trace"
EVENT_DIR = os.path.join("events", EVENT_SYSTEM, EVENT_NAME)
EVENT_ENABLE = os.path.join(EVENT_DIR, "enable")
EVENT_TRIGGER = os.path.join(EVENT_DIR, "trigger")

# -------------------------
# Lock marker
# -------------------------
LOCK_PATH = os.environ.get("TCPRETRANS_LOCK_PATH") or "/var/tmp/.ftrace-lock"

# -------------------------
# Polling cadence
# -------------------------
INTERVAL_SEC = 1.0

# -------------------------
# Trace buffer grammar
# -------------------------
COMMENT_MARKER = "#"
IPV4_FAMILY = "AF_INET"
STATE_PREFIX = "TCP_"
REQUIRED_KEYS = ("sport", "dport", "saddr", "daddr", "state")
IGNORED_KEYS = ("saddrv6", "daddrv6")
