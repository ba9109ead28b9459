#!/usr/bin/env python3
"""
Trace Log Prettifier - Pretty-print the X-Ray trace log, newest first.

Usage:
    python scripts/prettify_traces.py                      # configured trace log
    python scripts/prettify_traces.py data/traces.jsonl
    python scripts/prettify_traces.py --limit 5 --status failure   # newest 5 failures
    python scripts/prettify_traces.py --compact > traces.json
    python scripts/prettify_traces.py --summary

Can also be used as a Python module:
    from scripts.prettify_traces import prettify_traces
    prettify_traces(store.read(limit=10), sys.stdout, indent=2)
"""

import sys
import json
import argparse
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO, Optional, List

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from xray.config import get_config_manager
from xray.models import Trace, TraceStatus
from xray.store import FileTraceLogStore


def summarize_trace(trace: Trace) -> str:
    """One line per trace: when, status, duration, step names."""
    started = datetime.fromtimestamp(trace.timestamp / 1000, tz=timezone.utc)
    steps = " -> ".join(s.name for s in trace.steps) or "(no steps)"
    return (
        f"{started.isoformat(timespec='seconds')} {trace.status.value:<7} "
        f"{trace.meta.duration:>6}ms {trace.trace_id} {steps}"
    )


def prettify_traces(
    traces: List[Trace],
    output_file: Optional[TextIO] = None,
    indent: int = 2,
    compact: bool = False,
    summary: bool = False,
    filter_status: Optional[TraceStatus] = None,
    limit: Optional[int] = None
) -> int:
    """
    Write traces in a readable form.

    Args:
        traces: Traces, newest first.
        output_file: Output file handle (or stdout if None).
        indent: JSON indentation (0 for compact).
        compact: If True, output as a single JSON array.
        summary: If True, output one summary line per trace.
        filter_status: If provided, only show traces with this status.
        limit: Show at most this many traces, counted after filtering.

    Returns:
        Number of traces written.
    """
    if output_file is None:
        output_file = sys.stdout

    if filter_status is not None:
        traces = [t for t in traces if t.status is filter_status]
    if limit is not None:
        traces = traces[:max(limit, 0)]

    if summary:
        for trace in traces:
            output_file.write(summarize_trace(trace) + '\n')
        return len(traces)

    if compact:
        json.dump([t.to_dict() for t in traces], output_file, indent=indent or None, ensure_ascii=False)
        output_file.write('\n')
        return len(traces)

    for i, trace in enumerate(traces):
        json.dump(trace.to_dict(), output_file, indent=indent or None, ensure_ascii=False)
        output_file.write('\n')

        if i < len(traces) - 1:
            output_file.write('\n' + '=' * 80 + '\n\n')

    return len(traces)


def main():
    parser = argparse.ArgumentParser(
        description="Pretty-print the X-Ray trace log (newest first)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        'input',
        nargs='?',
        type=Path,
        help='Trace log file (default: configured storage.log_path)'
    )

    parser.add_argument(
        '--limit',
        type=int,
        default=None,
        help='Maximum number of traces (default: configured read limit)'
    )

    parser.add_argument(
        '--all',
        action='store_true',
        help='Show every trace in the log'
    )

    parser.add_argument(
        '--indent',
        type=int,
        default=2,
        help='JSON indentation (default: 2, use 0 for compact)'
    )

    parser.add_argument(
        '--compact',
        action='store_true',
        help='Output as single JSON array instead of separated entries'
    )

    parser.add_argument(
        '--summary',
        action='store_true',
        help='Output one line per trace'
    )

    parser.add_argument(
        '--status',
        choices=[s.value for s in TraceStatus],
        help='Only show traces with this status'
    )

    args = parser.parse_args()

    config = get_config_manager(Path(__file__).parent.parent).config
    log_path = args.input or config.log_path
    if not log_path.exists():
        print(f"Error: Trace log not found: {log_path}", file=sys.stderr)
        sys.exit(1)

    store = FileTraceLogStore(log_path)
    limit = None if args.all else (args.limit if args.limit is not None else config.storage.read_limit)

    count = prettify_traces(
        store.read(None if args.status else limit),
        indent=args.indent,
        compact=args.compact,
        summary=args.summary,
        filter_status=TraceStatus(args.status) if args.status else None,
        limit=limit
    )
    print(f"{count} trace(s) from {log_path}", file=sys.stderr)


if __name__ == '__main__':
    main()
