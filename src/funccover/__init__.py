"""funccover - function-level coverage instrumentation for Python.

funccover rewrites Python source files so that, once executed, the program
records which functions were invoked and writes that record to a coverage
file on exit (and optionally on a fixed period).

Instrumented programs import ``funccover.covcollect`` at runtime, so this
package module stays free of engine imports.
"""

__version__ = "0.1.0"
