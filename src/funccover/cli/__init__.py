"""
funccover CLI tools.

This package contains the command-line tools of funccover:
- instrument: rewrite Python sources for function coverage
- report: summarize a coverage file written by an instrumented program
"""

from .main import main

__all__ = ["main"]
