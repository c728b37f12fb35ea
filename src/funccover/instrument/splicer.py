"""
Splicer: injects counter statements and the entry flush into source bytes.

The splicer never parses. It takes the offsets computed by the scanner,
turns them into InsertionEvents and copies the source through in one pass,
emitting each event's text right before the byte at its offset:

    def f():                 def f():
        return 1      ->         _cover_abc.counts[0] = True
                                 return 1

The entry function gets the flush as its innermost decorator:

    def main():              @_cover_abc.collect_on_exit('cover.out')
        ...           ->     def main():
                                 _cover_abc.counts[1] = True
                                 ...
"""

import codecs
import logging
from typing import List, Optional, Sequence, Tuple

from funccover.util.application.exceptions import ConsistencyError

from .records import BodyAnchor, InsertionEvent, ScanResult

LOG = logging.getLogger(__name__)

RUNTIME_PREFIX = "_cover_"


def runtime_name(suffix: str) -> str:
    """Name of the module-level runtime state of a unit."""
    return RUNTIME_PREFIX + suffix


def newline_of(content: bytes) -> bytes:
    return b"\r\n" if b"\r\n" in content else b"\n"


def counter_statement(suffix: str, index: int) -> bytes:
    return ("%s.counts[%d] = True" % (runtime_name(suffix), index)).encode("utf-8")


def flush_decorator(suffix: str, output: str) -> bytes:
    return ("@%s.collect_on_exit(%r)" % (runtime_name(suffix), output)).encode("utf-8")


def counter_event(anchor: BodyAnchor, statement: bytes, newline: bytes) -> InsertionEvent:
    if anchor.after:
        text = b"; " + statement
    elif anchor.indent is None:
        text = statement + b"; "
    else:
        text = statement + newline + anchor.indent
    return InsertionEvent(anchor.offset, text, 0)


def build_events(
    content: bytes,
    anchors: Sequence[BodyAnchor],
    entry_offset: Optional[int],
    suffix: str,
    output: str,
    start_index: int = 0,
) -> Tuple[List[InsertionEvent], int]:
    """Create the ordered insertion events of one file.

    Counter indices run from ``start_index`` in anchor order. The flush event
    is merged in at its offset; on an offset tie counters come first.

    Returns:
        (events, end_index) where end_index = start_index + len(anchors).
    """
    newline = newline_of(content)
    events = []
    index = start_index
    for anchor in anchors:
        events.append(counter_event(anchor, counter_statement(suffix, index), newline))
        index += 1

    if entry_offset is not None:
        line_start = content.rfind(b"\n", 0, entry_offset) + 1
        if line_start == 0 and content.startswith(codecs.BOM_UTF8):
            line_start = len(codecs.BOM_UTF8)
        indent = content[line_start:entry_offset]
        flush = InsertionEvent(entry_offset, flush_decorator(suffix, output) + newline + indent, 1)
        pos = 0
        while pos < len(events) and events[pos].key() <= flush.key():
            pos += 1
        events.insert(pos, flush)

    return events, index


def splice(content: bytes, events: Sequence[InsertionEvent]) -> bytes:
    """Copy ``content`` inserting each event's text before its offset.

    Raises:
        ConsistencyError: an event lies before the previous one or outside
            the content. This means scanner and splicer disagree.
    """
    out = bytearray()
    pos = 0
    for event in events:
        if event.offset < pos or event.offset > len(content):
            raise ConsistencyError(
                "insertion offset %d out of order (cursor at %d, %d bytes)"
                % (event.offset, pos, len(content))
            )
        out += content[pos:event.offset]
        out += event.text
        pos = event.offset
    out += content[pos:]
    return bytes(out)


def add_counters(
    content: bytes,
    result: ScanResult,
    suffix: str,
    output: str,
    start_index: int = 0,
) -> Tuple[bytes, int]:
    """Instrument one scanned file.

    Args:
        content: The exact bytes that were scanned.
        result: Scanner output for ``content``.
        suffix: Unique suffix of the unit.
        output: Coverage output path used by the entry flush.
        start_index: First counter index of this file.

    Returns:
        (instrumented bytes, next free counter index)
    """
    events, end = build_events(content, result.anchors, result.entry_offset, suffix, output, start_index)
    LOG.debug("splicing %d events, counters [%d, %d)", len(events), start_index, end)
    return splice(content, events), end
