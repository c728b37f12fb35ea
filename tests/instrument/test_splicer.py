"""Unit tests for the splicer module."""

import ast
import re
import unittest

from funccover.instrument.records import InsertionEvent
from funccover.instrument.scanner import scan
from funccover.instrument.splicer import (
    add_counters,
    build_events,
    counter_statement,
    flush_decorator,
    runtime_name,
    splice,
)
from funccover.util.application.exceptions import ConsistencyError


def instrument(src, start=0, suffix="abc", output="cover.out"):
    return add_counters(src, scan(src), suffix, output, start)


class TestSplice(unittest.TestCase):
    """Test cases for splice()."""

    def test_no_events(self):
        self.assertEqual(splice(b"abc", []), b"abc")

    def test_events_in_order(self):
        events = [InsertionEvent(0, b"<"), InsertionEvent(2, b"|"), InsertionEvent(3, b">")]
        self.assertEqual(splice(b"abc", events), b"<ab|c>")

    def test_equal_offsets_keep_event_order(self):
        events = [InsertionEvent(1, b"x"), InsertionEvent(1, b"y")]
        self.assertEqual(splice(b"abc", events), b"axybc")

    def test_decreasing_offsets_fail(self):
        events = [InsertionEvent(2, b"x"), InsertionEvent(1, b"y")]
        with self.assertRaises(ConsistencyError):
            splice(b"abc", events)

    def test_offset_past_end_fails(self):
        with self.assertRaises(ConsistencyError):
            splice(b"abc", [InsertionEvent(4, b"x")])


class TestAddCounters(unittest.TestCase):
    """Test cases for add_counters()."""

    def test_entry_unit(self):
        """Counter per function plus the flush decorator on main."""
        src = b"def f1():\n    pass\n\n\ndef main():\n    f1()\n"
        data, end = instrument(src)
        self.assertEqual(
            data,
            b"def f1():\n"
            b"    _cover_abc.counts[0] = True\n"
            b"    pass\n"
            b"\n"
            b"\n"
            b"@_cover_abc.collect_on_exit('cover.out')\n"
            b"def main():\n"
            b"    _cover_abc.counts[1] = True\n"
            b"    f1()\n",
        )
        self.assertEqual(end, 2)

    def test_start_index(self):
        src = b"def f():\n    pass\n\ndef g():\n    pass\n"
        data, end = instrument(src, start=5)
        self.assertEqual(re.findall(rb"counts\[(\d+)\]", data), [b"5", b"6"])
        self.assertEqual(end, 7)

    def test_no_entry_no_flush(self):
        src = b"def f():\n    pass\n\nclass A:\n    def main(self):\n        pass\n"
        data, end = instrument(src)
        self.assertNotIn(b"collect_on_exit", data)
        self.assertEqual(end, 2)

    def test_no_functions(self):
        src = b"x = 1\n"
        data, end = instrument(src, start=3)
        self.assertEqual(data, src)
        self.assertEqual(end, 3)

    def test_inline_body(self):
        data, _ = instrument(b"def f(): return 1\n")
        self.assertEqual(data, b"def f(): _cover_abc.counts[0] = True; return 1\n")

    def test_docstring_only_body(self):
        data, _ = instrument(b'def f():\n    """Doc."""\n')
        self.assertEqual(data, b'def f():\n    """Doc."""; _cover_abc.counts[0] = True\n')

    def test_docstring_is_preserved(self):
        src = b'def f():\n    """Doc."""\n    return 1\n'
        data, _ = instrument(src)
        tree = ast.parse(data)
        self.assertEqual(ast.get_docstring(tree.body[0]), "Doc.")

    def test_decorated_entry(self):
        data, _ = instrument(b"@dec\ndef main():\n    pass\n")
        self.assertEqual(
            data,
            b"@dec\n"
            b"@_cover_abc.collect_on_exit('cover.out')\n"
            b"def main():\n"
            b"    _cover_abc.counts[0] = True\n"
            b"    pass\n",
        )

    def test_crlf_newlines(self):
        data, _ = instrument(b"def f():\r\n    pass\r\n")
        self.assertEqual(data, b"def f():\r\n    _cover_abc.counts[0] = True\r\n    pass\r\n")

    def test_byte_order_mark_entry(self):
        src = b"\xef\xbb\xbfdef main():\n    pass\n"
        data, _ = instrument(src)
        self.assertEqual(
            data,
            b"\xef\xbb\xbf@_cover_abc.collect_on_exit('cover.out')\n"
            b"def main():\n"
            b"    _cover_abc.counts[0] = True\n"
            b"    pass\n",
        )
        ast.parse(data)

    def test_backslash_continued_header(self):
        data, _ = instrument(b"def f(): \\\n    return 1\n")
        self.assertEqual(data, b"def f(): \\\n    _cover_abc.counts[0] = True; return 1\n")
        ast.parse(data)

    def test_output_is_valid_python(self):
        src = (
            b"import asyncio\n"
            b"class A:\n"
            b"    def m(self): return 1\n"
            b"    async def n(self):\n"
            b"        '''Doc.'''\n"
            b"    @property\n"
            b"    def p(self):\n"
            b"        @staticmethod\n"
            b"        def q():\n"
            b"            pass\n"
            b"        return q\n"
            b"async def main():\n"
            b"    await asyncio.sleep(0)\n"
        )
        data, end = instrument(src)
        ast.parse(data)
        self.assertEqual(end, 4)

    def test_rescan_keeps_functions(self):
        """Instrumented output declares the same functions in the same order."""
        src = b"def a():\n    pass\n\ndef b(): return 2\n\ndef main():\n    a()\n"
        data, _ = instrument(src)
        before = [r.name for r in scan(src).functions]
        after = scan(data)
        self.assertEqual([r.name for r in after.functions], before)
        self.assertTrue(after.has_entry)


class TestBuildEvents(unittest.TestCase):
    def test_flush_event_is_merged_by_offset(self):
        src = b"def f():\n    pass\n\ndef main():\n    pass\n\ndef g():\n    pass\n"
        result = scan(src)
        events, end = build_events(src, result.anchors, result.entry_offset, "s", "out", 0)
        offsets = [e.offset for e in events]
        self.assertEqual(offsets, sorted(offsets))
        self.assertEqual(len(events), 4)
        self.assertEqual(events[1].rank, 1)
        self.assertEqual(end, 3)

    def test_generated_text(self):
        self.assertEqual(runtime_name("x1"), "_cover_x1")
        self.assertEqual(counter_statement("x1", 7), b"_cover_x1.counts[7] = True")
        self.assertEqual(flush_decorator("x1", "o.txt"), b"@_cover_x1.collect_on_exit('o.txt')")


if __name__ == "__main__":
    unittest.main()
