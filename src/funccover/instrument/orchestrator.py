"""
Instrumentation of a compilation unit.

A unit is the set of files instrumented together: they share one runtime
state and one counter index space. The orchestrator scans every file,
checks that at most one of them defines the entry function, splices the
files in a deterministic order with a counter index that continues from
file to file, and adds the runtime header to each instrumented file. The
entry file hosts the full runtime fragment.

Nothing is returned unless every file of the unit was instrumented.
"""

import codecs
import logging
import os
import re
import sys
from typing import Dict, List, Mapping, Optional

from funccover.config import InstrumentConfig
from funccover.util.application.exceptions import ConsistencyError
from funccover.util.io import filesystem

from .fragment import render_declarations, render_reference
from .normalizer import insert_header
from .ordering import order_files
from .records import FunctionSet, ScanResult
from .scanner import scan
from .splicer import add_counters, newline_of

LOG = logging.getLogger(__name__)

CODING_LINE = re.compile(rb"^[ \t\f]*#.*?coding[:=]")


def with_provenance(src: str, content: bytes) -> bytes:
    """Add a ``# <src>`` comment line naming the original file.

    A byte order mark, a shebang and a coding declaration stay in front of
    the comment, where the interpreter looks for them.
    """
    pos = len(codecs.BOM_UTF8) if content.startswith(codecs.BOM_UTF8) else 0
    for lineno in (1, 2):
        end = content.find(b"\n", pos)
        if end == -1:
            break
        line = content[pos:end]
        if not ((lineno == 1 and line.startswith(b"#!")) or CODING_LINE.match(line)):
            break
        pos = end + 1
    comment = ("# %s" % src).encode("utf-8") + newline_of(content)
    return content[:pos] + comment + content[pos:]


class PackageInstrumentation(object):
    """Collects the files of a unit and instruments them together.

    Example:
        unit = PackageInstrumentation(InstrumentConfig(output="cover.out"))
        unit.add_file("app/main.py")
        unit.add_file("app/util.py")
        unit.write_instrumented(unit.instrument())

    Attributes:
        config: Options of the run.
        sources: Source bytes by path, in the order the files were added.
    """

    def __init__(self, config: Optional[InstrumentConfig] = None):
        self.config = (config or InstrumentConfig()).validate()
        self.sources: Dict[str, bytes] = {}

    def add_file(self, path: str):
        """Read ``path`` and add it to the unit."""
        self.add_source(path, filesystem.readSource(path))

    def add_source(self, path: str, content: bytes):
        if path in self.sources:
            LOG.warning("%s added twice, keeping the last content", path)
        self.sources[path] = content

    def scan_all(self, paths: List[str]) -> Dict[str, ScanResult]:
        qualify = len(paths) > 1
        return {
            path: scan(self.sources[path], path, qualify, self.config.entry)
            for path in paths
        }

    def entry_file(self, paths: List[str], scans: Mapping[str, ScanResult]) -> Optional[str]:
        entries = [path for path in paths if scans[path].has_entry]
        if len(entries) > 1:
            raise ConsistencyError(
                "entry function %r defined in more than one file: %s"
                % (self.config.entry, ", ".join(entries))
            )
        return entries[0] if entries else None

    def instrument(self) -> Dict[str, bytes]:
        """Instrument every file of the unit.

        Returns:
            Instrumented bytes by original path, in processing order.

        Raises:
            ParseError: a file is not valid Python.
            ConsistencyError: several entry files, or inconsistent offsets.
            TemplateError: the runtime fragment failed to render.
        """
        config = self.config
        if not self.sources:
            return {}

        paths = order_files(list(self.sources), self.sources, config.order)
        suffix = config.suffix_for(list(self.sources))
        scans = self.scan_all(paths)
        main_file = self.entry_file(paths, scans)
        funcs = FunctionSet.merge((scans[path].functions for path in paths), config.entry)

        LOG.debug("unit %s: %d files, %d functions, entry in %s",
                  suffix, len(paths), len(funcs), main_file)

        instrumented = {}
        index = 0
        for path in paths:
            result = scans[path]
            data, index = add_counters(self.sources[path], result, suffix, config.output, index)

            if path == main_file:
                header = render_declarations(suffix, config.output, config.period, funcs.records, config.signals)
            elif len(result.functions):
                header = render_reference(suffix, len(funcs))
            else:
                instrumented[path] = data
                continue

            instrumented[path] = insert_header(data, header, path)

        if index != len(funcs):
            raise ConsistencyError("spliced %d counters for %d functions" % (index, len(funcs)))

        return instrumented

    def write_instrumented(self, instrumented: Mapping[str, bytes], out=None):
        """Write instrumented files under ``config.directory`` with their base names.

        Each written file names its source in a ``# <path>`` comment line.
        Without a directory every file goes to ``out`` (stdout by default),
        preceded by a ``# <path>`` line.
        """
        directory = self.config.directory
        for src, content in instrumented.items():
            if directory:
                written = filesystem.writeSource(directory, os.path.basename(src), with_provenance(src, content))
                LOG.info("instrumented %s -> %s", src, written)
            else:
                stream = out if out is not None else sys.stdout
                stream.write("# %s\n" % src)
                stream.write(content.decode("utf-8"))
                if not content.endswith(b"\n"):
                    stream.write("\n")


def instrument_sources(sources: Mapping[str, bytes], config: Optional[InstrumentConfig] = None) -> Dict[str, bytes]:
    """Instrument a unit given as ``{path: content}``."""
    unit = PackageInstrumentation(config)
    for path, content in sources.items():
        unit.add_source(path, content)
    return unit.instrument()
