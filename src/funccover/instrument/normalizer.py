"""
Import normalization for instrumented files.

After splicing, a file references the unit's runtime state. This module
re-parses the spliced source, makes sure the runtime module is imported and
places the runtime header (the state binding, or the full fragment for the
entry file) at the head of the module: after the docstring and any
``from __future__`` imports, before the first statement that could call an
instrumented function.

The source text is never re-printed from the tree, so comments and layout
survive unchanged; the result is a deterministic function of the input.
"""

import ast
import logging
from typing import Tuple

from .fragment import RUNTIME_ALIAS, RUNTIME_IMPORT, RUNTIME_MODULE
from .scanner import SourceMap, is_docstring, parse
from .splicer import newline_of

LOG = logging.getLogger(__name__)


def is_future_import(node: ast.stmt) -> bool:
    return isinstance(node, ast.ImportFrom) and node.module == "__future__"


def is_runtime_import(node: ast.stmt) -> bool:
    if not isinstance(node, ast.ImportFrom) or node.module != RUNTIME_MODULE or node.level:
        return False
    return any(a.name == "covcollect" and a.asname == RUNTIME_ALIAS for a in node.names)


def module_prefix(tree: ast.Module) -> Tuple[int, bool]:
    """Count the leading docstring, ``__future__`` and runtime imports.

    Returns:
        (number of leading statements, whether the runtime import is among them)
    """
    body = tree.body
    count = 0
    if body and is_docstring(body[0]):
        count = 1
    has_import = False
    while count < len(body):
        stmt = body[count]
        if is_future_import(stmt):
            pass
        elif is_runtime_import(stmt):
            has_import = True
        else:
            break
        count += 1
    return count, has_import


def header_offset(tree: ast.Module, source: SourceMap) -> int:
    """Offset of the line where the runtime header must start."""
    count, _ = module_prefix(tree)
    body = tree.body
    if count:
        return source.line_start(body[count - 1].end_lineno + 1)
    if body:
        first = body[0]
        lineno = first.lineno
        if isinstance(first, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)) and first.decorator_list:
            lineno = first.decorator_list[0].lineno
        return source.line_start(lineno)
    return len(source.content)


def insert_header(content: bytes, header: str, filename: str = "") -> bytes:
    """Ensure the runtime import and insert ``header`` at the module head.

    Adding the import is idempotent: an existing runtime import in the module
    prefix is reused.

    Raises:
        ParseError: ``content`` does not parse.
    """
    tree = parse(content, filename)
    source = SourceMap(content)
    _, has_import = module_prefix(tree)
    offset = header_offset(tree, source)
    newline = newline_of(content)

    text = header.replace("\n", newline.decode("ascii"))
    if not has_import:
        text = RUNTIME_IMPORT + newline.decode("ascii") + text
    else:
        LOG.debug("%s: runtime import already present", filename or "<source>")

    data = text.encode("utf-8")
    if offset == len(content) and content and not content.endswith(b"\n"):
        data = newline + data

    LOG.debug("%s: runtime header at byte %d", filename or "<source>", offset)
    return content[:offset] + data + content[offset:]
