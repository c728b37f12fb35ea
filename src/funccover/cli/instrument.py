"""
CLI functionality for source instrumentation.
"""

import logging
import sys
import time

from funccover.config import DEFAULT_OUTPUT, InstrumentConfig, parse_period
from funccover.instrument.ordering import ORDERS
from funccover.instrument.orchestrator import PackageInstrumentation
from funccover.util.application.exceptions import InstrumentAbort

LOG = logging.getLogger(__name__)

USAGE_HINT = "For usage information, run 'funccover instrument --help'"


def python_sources(args):
    return [arg for arg in args if arg.endswith(".py")]


def fail(message):
    print(message, file=sys.stderr)
    print(USAGE_HINT, file=sys.stderr)
    return 2


def run_instrument(args):
    """Instrument the given sources as one unit and write the result."""
    try:
        period = parse_period(args.period)
    except ValueError as e:
        return fail("--period: %s" % e)

    config = InstrumentConfig(
        output=args.output,
        period=period,
        directory=args.dir,
        suffix=args.suffix,
        entry=args.entry,
        order=args.order,
        signals=not args.no_signals,
    )
    try:
        config.validate()
    except ValueError as e:
        return fail(str(e))

    sources = python_sources(args.sources)
    if not sources:
        return fail("missing source files")
    ignored = len(args.sources) - len(sources)
    if ignored:
        LOG.info("ignoring %d non-Python arguments", ignored)

    unit = PackageInstrumentation(config)
    start = time.perf_counter()
    try:
        for src in sources:
            unit.add_file(src)
        instrumented = unit.instrument()
    except OSError as e:
        return fail("cannot read source: %s" % e)
    except InstrumentAbort as e:
        return fail(str(e))

    unit.write_instrumented(instrumented)
    LOG.info("instrumented %d files in %.1f ms", len(instrumented), (time.perf_counter() - start) * 1000.0)
    return 0


def add_instrument_parser(subparsers):
    """Add the instrument subcommand to the argument parser."""
    parser = subparsers.add_parser(
        "instrument",
        help="Instrument Python sources for function coverage",
        description=(
            "Generates instrumented sources that record which functions ran. "
            "The coverage file is written when the entry function returns, "
            "periodically while the program runs, and on SIGINT/SIGTERM."
        ),
    )

    parser.add_argument("sources", nargs="*", help="Python files of one unit (non-.py arguments are ignored)")

    parser.add_argument(
        "--period",
        default="0",
        help="period of the data collection, e.g. 500ms or 2s (default: no periodic collection)",
    )
    parser.add_argument(
        "--dir", default=None, help="directory for instrumented files (default: stdout)"
    )
    parser.add_argument(
        "--output", "-o", default=DEFAULT_OUTPUT, help="file for coverage output (default: %(default)s)"
    )
    parser.add_argument(
        "--entry", default="main", help="entry function flushed on exit (default: %(default)s)"
    )
    parser.add_argument(
        "--order", choices=ORDERS, default="given", help="file order of the counter index space"
    )
    parser.add_argument("--suffix", default=None, help="unique suffix of generated names")
    parser.add_argument(
        "--no-signals", action="store_true", help="do not flush on SIGINT/SIGTERM"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug output")
