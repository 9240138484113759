"""Line grammar for tcp:tcp_retransmit_skb events in the ftrace text buffer.

A buffer line looks like::

    sshd-1234  [001] ..s. 5678.123456: tcp_retransmit_skb: skbaddr=0x.. \
        skaddr=0x.. family=AF_INET sport=22 dport=53425 saddr=10.0.0.1 \
        daddr=10.0.0.2 saddrv6=::ffff:10.0.0.1 daddrv6=::ffff:10.0.0.2 \
        state=TCP_ESTABLISHED

Everything that depends on this layout lives in this module.
"""
import ipaddress
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .config import EVENT_NAME, IGNORED_KEYS, IPV4_FAMILY, REQUIRED_KEYS, STATE_PREFIX


class Skip(Enum):
    NOT_APPLICABLE = "not-applicable"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class RetransmitRecord:
    task_name: str
    pid: Optional[int]
    local_address: str
    local_port: int
    remote_address: str
    remote_port: int
    tcp_state: str
    observed_at: datetime

    @property
    def local(self) -> str:
        return f"{self.local_address}:{self.local_port}"

    @property
    def remote(self) -> str:
        return f"{self.remote_address}:{self.remote_port}"


def _split_task(text: str) -> Optional[Tuple[str, str]]:
    # The task column is right-aligned and comm may contain spaces, so when a
    # "[NNN]" CPU column is present the task-pid token is everything before it.
    start = text.find(" [")
    while start != -1:
        end = text.find("]", start)
        if end != -1 and text[start + 2:end].isdigit():
            task = text[:start].strip()
            return (task, text[start + 1:]) if task else None
        start = text.find(" [", start + 1)

    parts = text.split(None, 1)
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def split_task_pid(token: str) -> Tuple[str, Optional[int]]:
    """Split ``comm-pid`` on the last hyphen.

    Events raised in interrupt context carry no usable pid (the idle task,
    pid 0, or an unresolvable token); those map to None.
    """
    name, sep, pid = token.rpartition("-")
    if not sep or not name:
        return token, None
    if not pid.isdigit():
        return token, None
    pid = int(pid)
    return name, (pid or None)


def _event_name(tokens) -> Optional[str]:
    for tok in tokens:
        if "=" in tok:
            break
        if len(tok) > 1 and tok.endswith(":"):
            stem = tok[:-1]
            if stem.replace(".", "", 1).isdigit():
                continue  # timestamp
            return stem
    return None


def _fields(tokens) -> Dict[str, str]:
    out = {}
    for tok in tokens:
        key, sep, value = tok.partition("=")
        if not sep or key in IGNORED_KEYS:
            continue
        if key in REQUIRED_KEYS or key == "family":
            out.setdefault(key, value)
    return out


def _port(value: str) -> Optional[int]:
    try:
        port = int(value)
    except ValueError:
        return None
    return port if 0 <= port <= 65535 else None


def _ipv4(value: str) -> Optional[str]:
    try:
        return str(ipaddress.IPv4Address(value))
    except ValueError:
        return None


def is_stack_marker(line: str) -> bool:
    return "<stack trace>" in line


def stack_frame(line: str) -> Optional[str]:
    """Return the function of a `` => func`` stack trace line, else None."""
    text = line.strip()
    if not text.startswith("=>"):
        return None
    return text[2:].strip() or None


def parse(line: str, observed_at: Optional[datetime] = None) -> Union[RetransmitRecord, Skip]:
    text = line.strip()
    if not text or text.startswith("=>") or is_stack_marker(text):
        return Skip.NOT_APPLICABLE

    split = _split_task(text)
    if split is None:
        return Skip.MALFORMED
    task_token, rest = split
    tokens = rest.split()

    event = _event_name(tokens)
    if event is not None and event != EVENT_NAME:
        return Skip.NOT_APPLICABLE

    fields = _fields(tokens)
    if fields.get("family", IPV4_FAMILY) != IPV4_FAMILY:
        return Skip.NOT_APPLICABLE
    if any(k not in fields for k in REQUIRED_KEYS):
        return Skip.MALFORMED

    sport, dport = _port(fields["sport"]), _port(fields["dport"])
    saddr, daddr = _ipv4(fields["saddr"]), _ipv4(fields["daddr"])
    state = fields["state"]
    if sport is None or dport is None or saddr is None or daddr is None or not state:
        return Skip.MALFORMED
    if state.startswith(STATE_PREFIX):
        state = state[len(STATE_PREFIX):]

    task, pid = split_task_pid(task_token)
    return RetransmitRecord(
        task_name=task,
        pid=pid,
        local_address=saddr,
        local_port=sport,
        remote_address=daddr,
        remote_port=dport,
        tcp_state=state,
        observed_at=observed_at or datetime.now(),
    )


class EventParser:
    """Parses a batch in buffer order and keeps per-run counters."""

    def __init__(self):
        self.accepted = 0
        self.malformed = 0
        self.ignored = 0

    def parse(self, line: str, observed_at: Optional[datetime] = None):
        result = parse(line, observed_at)
        if result is Skip.MALFORMED:
            self.malformed += 1
        elif result is Skip.NOT_APPLICABLE:
            self.ignored += 1
        else:
            self.accepted += 1
        return result

    def records(self, lines, observed_at: Optional[datetime] = None):
        for line in lines:
            result = self.parse(line, observed_at)
            if isinstance(result, RetransmitRecord):
                yield result
