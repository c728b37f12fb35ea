"""
Exception classes for instrumentation error handling.

This module defines exceptions used to signal instrumentation errors and
abort the instrumentation of a compilation unit when an unrecoverable error
is encountered. None of these errors is retried.
"""


class InstrumentAbort(Exception):
    """Exception raised when instrumentation of a unit must be aborted.

    No instrumented output is produced for a unit once this is raised.

    Example:
        if entry_files > 1:
            raise ConsistencyError("...")
    """
    pass


class ParseError(InstrumentAbort):
    """The source is not syntactically valid Python.

    Attributes:
        filename: Name of the offending file (may be empty).
        lineno: Line of the syntax error, or None when unknown.
        msg: Parser message.
    """

    def __init__(self, filename, lineno, msg):
        self.filename = filename
        self.lineno = lineno
        self.msg = msg
        super().__init__(self._format())

    def _format(self):
        where = self.filename or "<source>"
        if self.lineno is not None:
            where = "%s:%d" % (where, self.lineno)
        return "%s: %s" % (where, self.msg)


class ConsistencyError(InstrumentAbort):
    """Internal disagreement between engine stages, or misuse of a unit.

    Raised when splice offsets are not increasing or fall outside the
    source, or when more than one file of a unit defines the entry function.
    """
    pass


class TemplateError(InstrumentAbort):
    """The runtime fragment template failed to render."""
    pass
