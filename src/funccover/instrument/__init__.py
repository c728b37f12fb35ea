"""
Instrumentation engine.

- scanner: finds function declarations and their body offsets
- splicer: injects counter statements and the entry flush
- normalizer: adds the runtime import and header to instrumented files
- fragment: renders the runtime fragment of a unit
- ordering: file order policies of a unit
- orchestrator: instruments all files of a unit together
"""
