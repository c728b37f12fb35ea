"""
Data structures shared by the instrumentation stages.

A FunctionRecord describes one instrumented function. A FunctionSet is the
ordered list of records of a file (or of a whole unit after merging); the
position of a record in the merged set is its counter index at runtime.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

ENTRY_NAME = "main"


@dataclass(frozen=True)
class FunctionRecord:
    """Name and defining line of an instrumented function.

    ``name`` is ``<file>:<function>`` when a unit spans several files and
    the bare function name otherwise. Methods use ``Class.method``.
    """

    name: str
    line: int

    @property
    def bare_name(self) -> str:
        # Paths may contain ':' (drive letters), the function part never does.
        return self.name.rpartition(":")[2]


@dataclass(frozen=True)
class FunctionSet:
    """Ordered FunctionRecords plus the entry function flag."""

    records: Tuple[FunctionRecord, ...] = ()
    entry: str = ENTRY_NAME

    @property
    def has_entry(self) -> bool:
        return any(r.bare_name == self.entry for r in self.records)

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def __getitem__(self, index):
        return self.records[index]

    @classmethod
    def merge(cls, sets: Iterable["FunctionSet"], entry: str = ENTRY_NAME) -> "FunctionSet":
        """Concatenate sets in the given order; indices follow that order."""
        records: List[FunctionRecord] = []
        for s in sets:
            records.extend(s.records)
        return cls(tuple(records), entry)


@dataclass(frozen=True)
class BodyAnchor:
    """Where a function's counter statement goes.

    Attributes:
        offset: Byte offset in the original source.
        indent: Indentation of the anchored statement when it starts its own
            line. None for an inline anchor (body on the ``def`` line, or
            after a docstring-only body).
        after: True when the statement is inserted after the anchor (a
            docstring-only body) rather than before it.
    """

    offset: int
    indent: Optional[bytes] = None
    after: bool = False


@dataclass(frozen=True)
class InsertionEvent:
    """A text fragment to inject at a byte offset. Ordered by offset."""

    offset: int
    text: bytes
    # Tie-break for equal offsets: counters (0) before the exit flush (1).
    rank: int = 0

    def key(self):
        return (self.offset, self.rank)


@dataclass
class ScanResult:
    """Everything the Scanner extracts from one source file."""

    functions: FunctionSet
    anchors: List[BodyAnchor] = field(default_factory=list)
    entry_offset: Optional[int] = None

    @property
    def has_entry(self) -> bool:
        return self.entry_offset is not None
