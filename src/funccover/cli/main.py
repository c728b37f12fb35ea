"""Main CLI dispatcher for funccover.

Parses the command line and dispatches to the instrument and report
sub-commands.
"""

import argparse
import logging
import sys

from funccover import __version__

from .instrument import add_instrument_parser, run_instrument
from .report import add_report_parser, run_report


def setup_logging(args):
    level = logging.WARNING
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def build_parser():
    parser = argparse.ArgumentParser(
        description="funccover - function coverage instrumentation for Python",
        prog="funccover",
    )
    parser.add_argument("--version", action="version", version="funccover %s" % __version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)
    add_instrument_parser(subparsers)
    add_report_parser(subparsers)
    return parser


def main(argv=None):
    """Main entry point for the funccover CLI.

    Returns:
        int: Exit code (0 for success, 2 for usage or instrumentation errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args)

    if args.command == "instrument":
        return run_instrument(args)
    if args.command == "report":
        return run_report(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
