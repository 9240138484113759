import argparse
import sys
import time

from .config import EVENT_NAME, EVENT_SYSTEM, INTERVAL_SEC, LOCK_PATH, TRACING_DIR
from .errors import ShutdownRequested, TraceError
from .lock import LockGuard
from .parser import EventParser, RetransmitRecord, is_stack_marker, stack_frame
from .reporter import CsvSink, FlowCounter, Reporter
from .shutdown import ShutdownCoordinator
from .source import EventSource
from .tracepoint import TracepointController

EXAMPLES = """examples:
    tcpretrans              # trace TCP retransmits
    tcpretrans -s           # also print kernel stack traces
    tcpretrans -c           # print per-flow counts on exit
    tcpretrans -o out.csv   # also append records to out.csv
"""


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="tcpretrans",
        description=f"Trace TCP retransmits using the {EVENT_SYSTEM}:{EVENT_NAME} tracepoint.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES,
    )
    ap.add_argument("-l", "--lossprobe", action="store_true", help="Trace tail loss probes (not supported)")
    ap.add_argument("-s", "--stacks", action="store_true", help="Print kernel stack traces")
    ap.add_argument("-c", "--count", action="store_true", help="Print per-flow retransmit counts on exit")
    ap.add_argument("-i", "--interval", type=float, default=INTERVAL_SEC,
                    help=f"Buffer polling interval seconds (default: {INTERVAL_SEC})")
    ap.add_argument("-o", "--out", type=str, default=None, help="Also append records to this CSV file")
    args = ap.parse_args(argv)

    if args.lossprobe:
        ap.error(f"tail loss probe tracing is not supported; only {EVENT_SYSTEM}:{EVENT_NAME} is traced")
    if args.interval <= 0:
        ap.error("--interval must be positive")
    return args


def _stacked_records(lines, observed_at, parser, reporter):
    # frames print when the generator resumes, after the caller emitted the row
    last = None
    for line in lines:
        if last is not None:
            if is_stack_marker(line):
                continue
            func = stack_frame(line)
            if func is not None:
                reporter.frame(func)
                continue

        result = parser.parse(line, observed_at)
        if isinstance(result, RetransmitRecord):
            yield result
            last = result
        else:
            last = None


def _report_batch(lines, observed_at, parser, reporter, stacks, counter):
    if stacks:
        records = _stacked_records(lines, observed_at, parser, reporter)
    else:
        records = parser.records(lines, observed_at)

    accepted = []
    for record in records:
        reporter.emit(record)
        accepted.append(record)
        if counter is not None:
            counter.add(record)
    reporter.flush()
    return accepted


def trace(args, tracing_dir=TRACING_DIR, lock_path=LOCK_PATH, out=None,
          coordinator=None, sleep=time.sleep) -> int:
    out = out or sys.stdout
    coordinator = coordinator or ShutdownCoordinator()

    lock = LockGuard(lock_path)
    tracepoint = TracepointController(tracing_dir, stacks=args.stacks)
    source = EventSource(tracing_dir, args.interval, sleep=sleep)
    parser = EventParser()
    reporter = Reporter(out)
    counter = FlowCounter() if args.count else None

    error = None
    started = False
    coordinator.install()
    try:
        try:
            coordinator.register("release lock", lock.release_if_held)
            with coordinator.deferred():
                lock.acquire()
            sink = CsvSink(args.out) if args.out else None

            coordinator.register("disable tracepoint", tracepoint.deactivate)
            coordinator.register("clear trace buffer", source.clear)
            tracepoint.activate()
            source.clear()
            started = True

            print("[START] Tracing TCP retransmits. Ctrl-C to end.", file=sys.stderr)
            reporter.header()

            for observed_at, lines in source.batches():
                accepted = _report_batch(lines, observed_at, parser, reporter, args.stacks, counter)
                if sink is not None:
                    sink.write(accepted)
                if not coordinator.running:
                    break

        except BrokenPipeError:
            coordinator.request_shutdown("output closed")
        except TraceError as exc:
            error = exc
            coordinator.request_shutdown(str(exc))
    except ShutdownRequested as exc:
        # a signal can land while an error is being handled
        if error is None and isinstance(exc.__context__, TraceError):
            error = exc.__context__
    finally:
        coordinator.teardown()

    if error is not None:
        print(f"[ERROR] {error}", file=sys.stderr)
    else:
        print(f"\n[STOP] {coordinator.reason}", file=sys.stderr)
    print(
        f"[STATS] Lines: {source.lines_read}, Retransmits: {parser.accepted}, "
        f"Malformed: {parser.malformed}",
        file=sys.stderr,
    )
    if counter is not None and started and coordinator.reason != "output closed":
        try:
            out.write(counter.render() + "\n")
            out.flush()
        except BrokenPipeError:
            pass
    return 0 if error is None else 1


def main(argv=None) -> int:
    return trace(parse_args(argv))


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
