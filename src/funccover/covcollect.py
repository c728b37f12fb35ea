"""
Runtime support for instrumented programs.

Instrumented modules import this module and bind the state of their unit:

    from funccover import covcollect as _covcollect
    _cover_abc = _covcollect.unit("abc", 3)

Every instrumented function sets its own slot of ``_cover_abc.counts`` to
True. The writes are not synchronized: a slot only ever flips from False to
True, so concurrent writers can not disagree about the result.

The coverage file has one line per function, in counter index order:

    <name>:<line>:<true|false>
"""

import functools
import inspect
import logging
import signal
import sys
import threading
from typing import Dict, List, NamedTuple, Optional, Sequence

LOG = logging.getLogger(__name__)

_units: Dict[str, "Cover"] = {}
_units_lock = threading.Lock()


class CoverageLine(NamedTuple):
    name: str
    line: int
    covered: bool


class Cover(object):
    """Counter, name and line state of one instrumented unit.

    Attributes:
        counts: One flag per function, True once the function ran.
        names: Function names, same index as ``counts``.
        lines: Defining lines, same index as ``counts``.
    """

    def __init__(self, size: int):
        self.counts: List[bool] = [False] * size
        self.names: List[str] = [""] * size
        self.lines: List[int] = [0] * size
        self._stop = threading.Event()

    def __len__(self):
        return len(self.counts)

    def describe(self, names: Sequence[str], lines: Sequence[int]):
        if len(names) != len(self.counts) or len(lines) != len(self.counts):
            raise ValueError(
                "unit has %d functions, got %d names and %d lines"
                % (len(self.counts), len(names), len(lines))
            )
        self.names[:] = names
        self.lines[:] = lines

    def snapshot(self) -> List[CoverageLine]:
        counts = list(self.counts)
        return [CoverageLine(n, l, c) for n, l, c in zip(self.names, self.lines, counts)]

    def collect(self, path: str):
        """Rewrite ``path`` with the current coverage."""
        rows = self.snapshot()
        with open(path, "w", encoding="utf-8") as fd:
            for row in rows:
                fd.write("%s:%d:%s\n" % (row.name, row.line, "true" if row.covered else "false"))

    def periodical_collect(self, period: float, path: str) -> Optional[threading.Thread]:
        """Collect every ``period`` seconds on a daemon thread.

        Returns:
            The collecting thread, or None when ``period`` is not positive.
        """
        if period <= 0:
            return None

        def loop():
            while not self._stop.wait(period):
                try:
                    self.collect(path)
                except OSError:
                    LOG.exception("periodic coverage collection to %s failed", path)

        thread = threading.Thread(target=loop, name="funccover-collect", daemon=True)
        thread.start()
        return thread

    def stop(self):
        """Stop periodic collection."""
        self._stop.set()

    def collect_on_exit(self, path: str):
        """Decorator collecting to ``path`` whenever the function exits."""

        def decorator(func):
            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    try:
                        return await func(*args, **kwargs)
                    finally:
                        self.collect(path)

                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)
                finally:
                    self.collect(path)

            return wrapper

        return decorator

    def collect_on_signal(self, path: str, signals=(signal.SIGINT, signal.SIGTERM)) -> bool:
        """Collect and exit with status 0 when one of ``signals`` arrives.

        Returns:
            False when handlers can not be installed (not the main thread).
        """
        if threading.current_thread() is not threading.main_thread():
            LOG.warning("coverage signal handlers not installed: not in the main thread")
            return False

        def handler(signum, frame):
            self.collect(path)
            sys.exit(0)

        for signum in signals:
            signal.signal(signum, handler)
        return True


def unit(suffix: str, size: int) -> Cover:
    """Return the Cover of unit ``suffix``, creating it with ``size`` slots."""
    with _units_lock:
        cover = _units.get(suffix)
        if cover is None:
            cover = _units[suffix] = Cover(size)
        elif len(cover) != size:
            raise ValueError(
                "unit %s has %d functions, requested with %d" % (suffix, len(cover), size)
            )
        return cover


def load(path: str) -> List[CoverageLine]:
    """Read a coverage file written by Cover.collect."""
    rows = []
    with open(path, "r", encoding="utf-8") as fd:
        for lineno, text in enumerate(fd, 1):
            text = text.rstrip("\r\n")
            if not text:
                continue
            head, _, covered = text.rpartition(":")
            name, _, line = head.rpartition(":")
            if not name or covered not in ("true", "false") or not line.isdigit():
                raise ValueError("%s:%d: malformed coverage line %r" % (path, lineno, text))
            rows.append(CoverageLine(name, int(line), covered == "true"))
    return rows
