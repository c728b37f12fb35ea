"""
File ordering for multi-file units.

The counter index space of a unit follows the order its files are processed
in. The order is chosen by the caller through a policy:

- ``given``: the order files were added in
- ``sorted``: lexicographic path order
- ``imports``: files before the files that import them

The ``imports`` policy builds an import graph between the files of the unit
with networkx. Import cycles are condensed into one node whose members keep
the given order, so the result is deterministic for any graph.
"""

import ast
import logging
import os
from typing import Dict, List, Mapping, Sequence, Set

import networkx as nx

LOG = logging.getLogger(__name__)

ORDERS = ("given", "sorted", "imports")


def module_name(path: str) -> str:
    name = os.path.splitext(os.path.basename(path))[0]
    if name == "__init__":
        name = os.path.basename(os.path.dirname(os.path.abspath(path)))
    return name


def imported_names(tree: ast.AST) -> Set[str]:
    """Every dotted-name component and relative-import name a module imports."""
    names = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                names.update(alias.name.split("."))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                names.update(node.module.split("."))
            if node.level:
                # from . import x: x may be a sibling module
                names.update(alias.name for alias in node.names)
    return names


def import_graph(sources: Mapping[str, bytes]) -> nx.DiGraph:
    """Edge A -> B when file B imports the module of file A."""
    graph = nx.DiGraph()
    graph.add_nodes_from(sources)

    by_module: Dict[str, List[str]] = {}
    for path in sources:
        by_module.setdefault(module_name(path), []).append(path)

    for path, content in sources.items():
        try:
            tree = ast.parse(content)
        except (SyntaxError, ValueError):
            # reported by the scanner with a proper ParseError
            continue
        for name in imported_names(tree):
            for dependency in by_module.get(name, ()):
                if dependency != path:
                    graph.add_edge(dependency, path)
    return graph


def order_by_imports(paths: Sequence[str], sources: Mapping[str, bytes]) -> List[str]:
    position = {path: i for i, path in enumerate(paths)}
    graph = import_graph({path: sources[path] for path in paths})

    condensed = nx.condensation(graph)
    members = condensed.graph["mapping"]
    first = {}
    for path, component in members.items():
        first[component] = min(first.get(component, len(paths)), position[path])

    ordered = []
    for component in nx.lexicographical_topological_sort(condensed, key=lambda c: first[c]):
        group = sorted(condensed.nodes[component]["members"], key=position.__getitem__)
        if len(group) > 1:
            LOG.debug("import cycle between %s", ", ".join(group))
        ordered.extend(group)
    return ordered


def order_files(paths: Sequence[str], sources: Mapping[str, bytes], policy: str = "given") -> List[str]:
    """Return ``paths`` in processing order according to ``policy``."""
    if policy == "given":
        return list(paths)
    if policy == "sorted":
        return sorted(paths)
    if policy == "imports":
        return order_by_imports(paths, sources)
    raise ValueError("unknown file order %r, expected one of %s" % (policy, ", ".join(ORDERS)))
