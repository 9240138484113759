import csv
import sys

import pandas as pd

from .errors import IOFailure
from .helpers import ensure_csv

ROW_FMT = "%-8s %-6s %-20s %2s %-20s %-12s"
CSV_HEADER = ["time", "task", "pid", "laddr", "lport", "raddr", "rport", "state"]


class Reporter:
    def __init__(self, out=None):
        self.out = out or sys.stdout

    def header(self) -> None:
        self.out.write(ROW_FMT % ("TIME", "PID", "LADDR:LPORT", "--", "RADDR:RPORT", "STATE") + "\n")
        self.out.flush()

    def emit(self, record) -> None:
        self.out.write(ROW_FMT % (
            record.observed_at.strftime("%H:%M:%S"),
            "" if record.pid is None else record.pid,
            record.local,
            "R>",
            record.remote,
            record.tcp_state,
        ) + "\n")

    def frame(self, func: str) -> None:
        self.out.write(f"        {func}\n")

    def flush(self) -> None:
        self.out.flush()


class CsvSink:
    """Appends accepted records to a CSV file (-o)."""

    def __init__(self, path: str):
        self.path = path
        try:
            ensure_csv(path, CSV_HEADER)
        except OSError as exc:
            raise IOFailure(f"cannot create {path}: {exc.strerror or exc}") from exc

    def write(self, records) -> None:
        if not records:
            return
        try:
            with open(self.path, "a", newline="") as f:
                w = csv.writer(f)
                for r in records:
                    w.writerow([
                        r.observed_at.strftime("%Y-%m-%d %H:%M:%S"),
                        r.task_name,
                        "" if r.pid is None else r.pid,
                        r.local_address, r.local_port,
                        r.remote_address, r.remote_port,
                        r.tcp_state,
                    ])
        except OSError as exc:
            raise IOFailure(f"cannot append to {self.path}: {exc.strerror or exc}") from exc


class FlowCounter:
    """Per-flow retransmit counts for the -c summary."""

    def __init__(self):
        self.rows = []

    def add(self, record) -> None:
        self.rows.append((record.local, record.remote))

    def summary(self) -> pd.DataFrame:
        df = pd.DataFrame(self.rows, columns=["LADDR:LPORT", "RADDR:RPORT"])
        counts = df.groupby(["LADDR:LPORT", "RADDR:RPORT"]).size().reset_index(name="RETRANSMITS")
        return counts.sort_values(
            ["RETRANSMITS", "LADDR:LPORT", "RADDR:RPORT"],
            ascending=[False, True, True],
            kind="mergesort",
        ).reset_index(drop=True)

    def render(self) -> str:
        if not self.rows:
            return "no retransmits recorded"
        return self.summary().to_string(index=False)
