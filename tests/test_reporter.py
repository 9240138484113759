import csv
import io
from datetime import datetime

from tcpretrans.parser import parse
from tcpretrans.reporter import CSV_HEADER, CsvSink, FlowCounter, Reporter

from conftest import IDLE_LINE, RETRANS_LINE

WHEN = datetime(2026, 10, 18, 12, 34, 56)


def test_header_and_row_columns():
    out = io.StringIO()
    reporter = Reporter(out)
    reporter.header()
    reporter.emit(parse(RETRANS_LINE, WHEN))

    header, row = out.getvalue().splitlines()
    assert header.split() == ["TIME", "PID", "LADDR:LPORT", "--", "RADDR:RPORT", "STATE"]
    assert row.split() == ["12:34:56", "1234", "10.0.0.1:22", "R>", "10.0.0.2:53425", "ESTABLISHED"]
    assert header.index("LADDR") == row.index("10.0.0.1")
    assert header.index("RADDR") == row.index("10.0.0.2")


def test_absent_pid_prints_empty_column():
    out = io.StringIO()
    Reporter(out).emit(parse(IDLE_LINE, WHEN))

    row = out.getvalue()
    assert row.startswith("12:34:56        192.168.1.5:443")


def test_frame_is_indented():
    out = io.StringIO()
    Reporter(out).frame("tcp_retransmit_skb+0x1d/0x30")
    assert out.getvalue() == "        tcp_retransmit_skb+0x1d/0x30\n"


def test_csv_sink_appends_rows(tmp_path):
    path = tmp_path / "out" / "retrans.csv"
    sink = CsvSink(str(path))
    sink.write([parse(RETRANS_LINE, WHEN), parse(IDLE_LINE, WHEN)])
    sink.write([])

    with open(path, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == CSV_HEADER
    assert rows[1] == ["2026-10-18 12:34:56", "sshd", "1234", "10.0.0.1", "22",
                       "10.0.0.2", "53425", "ESTABLISHED"]
    assert rows[2][2] == ""
    assert len(rows) == 3


def test_csv_sink_keeps_existing_header(tmp_path):
    path = tmp_path / "retrans.csv"
    CsvSink(str(path)).write([parse(RETRANS_LINE, WHEN)])
    CsvSink(str(path)).write([parse(RETRANS_LINE, WHEN)])

    with open(path, newline="") as f:
        rows = list(csv.reader(f))
    assert [r[0] for r in rows].count("time") == 1
    assert len(rows) == 3


def test_flow_counter_summary():
    counter = FlowCounter()
    a = parse(RETRANS_LINE, WHEN)
    b = parse(IDLE_LINE, WHEN)
    for rec in (a, b, a, a, b, a):
        counter.add(rec)

    summary = counter.summary()
    assert list(summary.columns) == ["LADDR:LPORT", "RADDR:RPORT", "RETRANSMITS"]
    assert summary["LADDR:LPORT"].tolist() == ["10.0.0.1:22", "192.168.1.5:443"]
    assert summary["RETRANSMITS"].tolist() == [4, 2]
    assert "RETRANSMITS" in counter.render()


def test_flow_counter_empty():
    assert FlowCounter().render() == "no retransmits recorded"
