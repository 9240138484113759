import pytest

RETRANS_LINE = (
    "          sshd-1234    [001] ..s.  5678.123456: tcp_retransmit_skb: "
    "skbaddr=0xffff8880a1b2c300 skaddr=0xffff8880a1b2d000 family=AF_INET "
    "sport=22 dport=53425 saddr=10.0.0.1 daddr=10.0.0.2 "
    "saddrv6=::ffff:10.0.0.1 daddrv6=::ffff:10.0.0.2 state=TCP_ESTABLISHED"
)

IDLE_LINE = (
    "          <idle>-0       [003] ..s.  5678.200000: tcp_retransmit_skb: "
    "skbaddr=0xffff8880a1b2c400 skaddr=0xffff8880a1b2d100 family=AF_INET "
    "sport=443 dport=41000 saddr=192.168.1.5 daddr=192.168.1.9 "
    "saddrv6=::ffff:192.168.1.5 daddrv6=::ffff:192.168.1.9 state=TCP_SYN_SENT"
)

OTHER_EVENT_LINE = (
    "          bash-999     [000] d...  5678.300000: sched_switch: "
    "prev_comm=bash prev_pid=999 prev_prio=120 prev_state=S ==> next_comm=swapper/0"
)

TRACE_HEADER = (
    "# tracer: nop\n"
    "#\n"
    "# entries-in-buffer/entries-written: 2/2   #P:4\n"
    "#\n"
    "#           TASK-PID     CPU#  ||||    TIMESTAMP  FUNCTION\n"
    "#              | |         |   ||||       |         |\n"
)


@pytest.fixture
def tracing_dir(tmp_path):
    root = tmp_path / "tracing"
    event = root / "events" / "tcp" / "tcp_retransmit_skb"
    event.mkdir(parents=True)
    (root / "current_tracer").write_text("function\n")
    (root / "trace").write_text(TRACE_HEADER)
    (event / "enable").write_text("0\n")
    (event / "trigger").write_text("")
    return root


@pytest.fixture
def enable_file(tracing_dir):
    return tracing_dir / "events" / "tcp" / "tcp_retransmit_skb" / "enable"


@pytest.fixture
def lock_path(tmp_path):
    return tmp_path / "ftrace-lock"
