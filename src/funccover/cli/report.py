"""
CLI functionality for reading coverage files.
"""

import sys

from funccover.covcollect import load


def summarize(rows):
    covered = sum(1 for row in rows if row.covered)
    total = len(rows)
    percent = 100.0 * covered / total if total else 0.0
    return "%d/%d functions covered (%.1f%%)" % (covered, total, percent)


def run_report(args):
    """Print the functions of a coverage file with their status."""
    try:
        rows = load(args.coverage)
    except (OSError, ValueError) as e:
        print("Error: %s" % e, file=sys.stderr)
        return 2

    for row in rows:
        if args.uncovered and row.covered:
            continue
        status = "covered" if row.covered else "not covered"
        print("%s:%d\t%s" % (row.name, row.line, status))
    print(summarize(rows))
    return 0


def add_report_parser(subparsers):
    """Add the report subcommand to the argument parser."""
    parser = subparsers.add_parser("report", help="Summarize a coverage file")
    parser.add_argument("coverage", help="coverage file written by an instrumented program")
    parser.add_argument(
        "--uncovered", action="store_true", help="list only functions that never ran"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
