"""Unit tests for the instrumentation records."""

import unittest

from funccover.instrument.records import FunctionRecord, FunctionSet, InsertionEvent


class TestFunctionSet(unittest.TestCase):
    def test_merge_keeps_order(self):
        a = FunctionSet((FunctionRecord("a.py:f", 1), FunctionRecord("a.py:g", 4)))
        b = FunctionSet((FunctionRecord("b.py:main", 2),))
        merged = FunctionSet.merge([a, b])
        self.assertEqual([r.name for r in merged], ["a.py:f", "a.py:g", "b.py:main"])
        self.assertEqual(len(merged), 3)
        self.assertEqual(merged[2].line, 2)

    def test_has_entry_uses_bare_name(self):
        self.assertTrue(FunctionSet((FunctionRecord("C:\\src\\app.py:main", 1),)).has_entry)
        self.assertFalse(FunctionSet((FunctionRecord("main.py:run", 1),)).has_entry)
        self.assertTrue(FunctionSet((FunctionRecord("run", 1),), entry="run").has_entry)

    def test_empty(self):
        merged = FunctionSet.merge([])
        self.assertEqual(len(merged), 0)
        self.assertFalse(merged.has_entry)


class TestInsertionEvent(unittest.TestCase):
    def test_counter_sorts_before_flush(self):
        counter = InsertionEvent(10, b"c", 0)
        flush = InsertionEvent(10, b"f", 1)
        self.assertLess(counter.key(), flush.key())
        self.assertLess(InsertionEvent(9, b"x", 1).key(), counter.key())


if __name__ == "__main__":
    unittest.main()
