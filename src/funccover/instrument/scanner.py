"""
Syntax scanner for function coverage instrumentation.

This module parses a Python source file and extracts, for every function
declaration that is not nested in another function, its name, its defining
line and the byte offset where its counter statement must go. It also finds
the entry function (``main`` at module level) whose definition receives the
exit-time flush.

**Offsets:**
All offsets are UTF-8 byte offsets into the source exactly as given, which is
also the unit ``ast`` reports column offsets in. The splicer walks the same
bytes, so no character/byte conversion happens anywhere.

**Declarations:**
- Module-level ``def`` / ``async def``
- Methods of module-level classes (and of classes nested in class bodies)

Closures, lambdas and functions defined inside ``if``/``try`` blocks are not
declarations in this sense and are left untouched.
"""

import ast
import codecs
import logging
from typing import List, Optional

from funccover.util.application.exceptions import ParseError

from .records import ENTRY_NAME, BodyAnchor, FunctionRecord, FunctionSet, ScanResult

LOG = logging.getLogger(__name__)

FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)
DECORATED_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)


class SourceMap(object):
    """Maps ``ast`` (line, column) positions to byte offsets of a source."""

    def __init__(self, content: bytes):
        self.content = content
        start = len(codecs.BOM_UTF8) if content.startswith(codecs.BOM_UTF8) else 0
        self.line_starts = [start]
        pos = content.find(b"\n", start)
        while pos != -1:
            self.line_starts.append(pos + 1)
            pos = content.find(b"\n", pos + 1)

    def line_start(self, lineno: int) -> int:
        """Offset of the first byte of a 1-indexed line (len(content) past the end)."""
        if lineno - 1 < len(self.line_starts):
            return self.line_starts[lineno - 1]
        return len(self.content)

    def offset(self, lineno: int, col_offset: int) -> int:
        return self.line_start(lineno) + col_offset

    def statement_start(self, node: ast.stmt) -> int:
        """Offset where a statement begins, including its decorators."""
        if isinstance(node, DECORATED_NODES) and node.decorator_list:
            first = node.decorator_list[0]
            expr = self.offset(first.lineno, first.col_offset)
            at = self.content.rfind(b"@", self.line_start(first.lineno), expr)
            if at != -1:
                return at
        return self.offset(node.lineno, node.col_offset)

    def continues_previous(self, lineno: int) -> bool:
        """True when the line before ``lineno`` ends with a backslash continuation."""
        start = self.line_start(lineno)
        before = self.content[max(0, start - 3):start]
        return before.endswith(b"\\\n") or before.endswith(b"\\\r\n")

    def indentation(self, offset: int, lineno: int) -> Optional[bytes]:
        """Whitespace before ``offset`` on its line, or None if other text precedes it."""
        prefix = self.content[self.line_start(lineno):offset]
        if prefix.strip():
            return None
        return prefix


def parse(content: bytes, filename: str = "") -> ast.Module:
    """Parse UTF-8 Python source, converting parser failures to ParseError."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(filename, None, "source is not valid UTF-8: %s" % e)
    try:
        return ast.parse(text, filename=filename or "<unknown>")
    except SyntaxError as e:
        raise ParseError(filename, e.lineno, e.msg)
    except ValueError as e:
        # null bytes and similar are reported as ValueError
        raise ParseError(filename, None, str(e))


def is_docstring(node: ast.stmt) -> bool:
    return (
        isinstance(node, ast.Expr)
        and isinstance(node.value, ast.Constant)
        and isinstance(node.value.value, str)
    )


class FunctionScanner(ast.NodeVisitor):
    """Collects function declarations of a module in declaration order.

    Attributes:
        source: SourceMap of the scanned content.
        prefix: ``<file>:`` when names are qualified, else empty.
        entry: Name of the entry function.
        records: FunctionRecords found so far.
        anchors: BodyAnchor per record, same order.
        entry_offset: Offset of the entry function's ``def`` keyword.
        namespace: Enclosing class names of the current position.
    """

    def __init__(self, source: SourceMap, prefix: str = "", entry: str = ENTRY_NAME):
        self.source = source
        self.prefix = prefix
        self.entry = entry
        self.records: List[FunctionRecord] = []
        self.anchors: List[BodyAnchor] = []
        self.entry_offset: Optional[int] = None
        self.namespace: List[str] = []

    def declarations(self, body):
        for stmt in body:
            if isinstance(stmt, (ast.ClassDef,) + FUNCTION_NODES):
                self.visit(stmt)

    def visit_Module(self, node):
        self.declarations(node.body)

    def visit_ClassDef(self, node):
        self.namespace.append(node.name)
        self.declarations(node.body)
        self.namespace.pop()

    def visit_FunctionDef(self, node):
        qualname = ".".join(self.namespace + [node.name])
        self.records.append(FunctionRecord(self.prefix + qualname, node.lineno))
        self.anchors.append(self.body_anchor(node))

        # a later module-level redefinition rebinds the name, so the last one wins
        if not self.namespace and node.name == self.entry:
            self.entry_offset = self.source.offset(node.lineno, node.col_offset)

        LOG.debug("function %s at line %d", qualname, node.lineno)

    visit_AsyncFunctionDef = visit_FunctionDef

    def body_anchor(self, node) -> BodyAnchor:
        body = node.body
        first = body[0]
        if is_docstring(first):
            if len(body) == 1:
                end = self.source.offset(first.end_lineno, first.end_col_offset)
                return BodyAnchor(end, None, after=True)
            first = body[1]
        offset = self.source.statement_start(first)
        lineno = first.lineno
        if isinstance(first, DECORATED_NODES) and first.decorator_list:
            lineno = first.decorator_list[0].lineno
        indent = self.source.indentation(offset, lineno)
        # `def f(): \` joins a simple statement to the header line; a compound
        # statement can not follow, so its backslash sits in a comment.
        if indent is not None and not hasattr(first, "body") and self.source.continues_previous(lineno):
            indent = None
        return BodyAnchor(offset, indent)


def scan(content: bytes, filename: str = "", qualify: bool = False, entry: str = ENTRY_NAME) -> ScanResult:
    """Scan a source file for instrumentable functions.

    Args:
        content: Raw source bytes (UTF-8).
        filename: File identifier used in qualified names and error messages.
        qualify: Prefix function names with ``<filename>:``.
        entry: Name of the entry function.

    Returns:
        ScanResult with records and anchors in declaration order.

    Raises:
        ParseError: The content is not valid Python. No partial result.
    """
    tree = parse(content, filename)
    scanner = FunctionScanner(SourceMap(content), filename + ":" if qualify else "", entry)
    scanner.visit(tree)

    LOG.debug("%s: %d functions, entry %s", filename or "<source>", len(scanner.records),
              "found" if scanner.entry_offset is not None else "absent")

    return ScanResult(
        FunctionSet(tuple(scanner.records), entry),
        scanner.anchors,
        scanner.entry_offset,
    )
