import csv
import os
from typing import Iterable


def ensure_csv(path: str, header: Iterable[str]) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    if not os.path.exists(path):
        with open(path, "w", newline="") as f:
            csv.writer(f).writerow(header)


def write_control(path: str, value: str) -> None:
    """Write a value to a tracefs control file.

    tracefs applies a write when the file is closed, so errors such as
    EINVAL for an unknown tracer can surface from close() as well as write().
    """
    with open(path, "w") as f:
        f.write(value)


def append_control(path: str, value: str) -> None:
    # event trigger files take commands appended, not replaced
    with open(path, "a") as f:
        f.write(value)


def read_lines(path: str):
    with open(path, "r", errors="replace") as f:
        return f.read().splitlines()
