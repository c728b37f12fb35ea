"""
Configuration of an instrumentation run.

Holds the options of one run, the parser for collection periods given as
durations (``500ms``, ``2s``, ``1m30s``) and the derivation of the unique
suffix that keeps generated names of different units apart.
"""

import hashlib
import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .instrument.ordering import ORDERS
from .instrument.records import ENTRY_NAME

DEFAULT_OUTPUT = "cover.out"

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_period(text) -> float:
    """Convert a duration to seconds.

    Accepts a number (seconds) or a duration string made of decimal numbers
    with unit suffixes, optionally signed: ``"300ms"``, ``"1.5h"``,
    ``"2h45m"``, ``"-1s"``. ``"0"`` is zero.

    Raises:
        ValueError: malformed duration.
    """
    if isinstance(text, (int, float)):
        return float(text)

    s = text.strip()
    if not s:
        raise ValueError("empty duration")

    try:
        value = float(s)
    except ValueError:
        pass
    else:
        if not math.isfinite(value):
            raise ValueError("invalid duration %r" % text)
        return value

    sign = 1.0
    if s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    total = 0.0
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if m is None:
            raise ValueError("invalid duration %r" % text)
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    if pos == 0:
        raise ValueError("invalid duration %r" % text)
    return sign * total


def unique_suffix(paths: Sequence[str]) -> str:
    """Suffix derived from the first path: 6 bytes of its SHA-256, in hex."""
    first = paths[0] if paths else ""
    return hashlib.sha256(first.encode("utf-8")).hexdigest()[:12]


@dataclass
class InstrumentConfig:
    """Options of one instrumentation run.

    Attributes:
        output: Coverage file written by the instrumented program.
        period: Seconds between periodic collections, 0 disables them.
        directory: Where instrumented files go; None writes to stdout.
        suffix: Unique suffix of generated names; None derives it.
        entry: Name of the entry function.
        order: File order policy of the unit.
        signals: Flush on SIGINT/SIGTERM in the instrumented program.
    """

    output: str = DEFAULT_OUTPUT
    period: float = 0.0
    directory: Optional[str] = None
    suffix: Optional[str] = None
    entry: str = ENTRY_NAME
    order: str = "given"
    signals: bool = True

    def validate(self):
        if not math.isfinite(self.period) or self.period < 0:
            raise ValueError("--period: %s is not a valid period" % self.period)
        if not self.output:
            raise ValueError("output file name can not be empty")
        if not self.entry or not self.entry.isidentifier():
            raise ValueError("entry function name %r is not an identifier" % self.entry)
        if self.suffix is not None and not ("_cover_" + self.suffix).isidentifier():
            raise ValueError("suffix %r can not be used in a Python name" % self.suffix)
        if self.order not in ORDERS:
            raise ValueError("unknown file order %r" % self.order)
        return self

    def suffix_for(self, paths: Sequence[str]) -> str:
        if self.suffix is not None:
            return self.suffix
        return unique_suffix(paths)
