from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from pathlib import Path
from typing import Mapping

import pytest

import funccover


def normalize_code(code: str) -> str:
    # Allow indented triple-quoted snippets in tests.
    code = textwrap.dedent(code)
    # Trim leading blank line to keep expected line numbers stable.
    code = code.lstrip("\n")
    if code and not code.endswith("\n"):
        code += "\n"
    return code


def package_root() -> str:
    """Directory that must be on sys.path for ``import funccover``."""
    return os.path.dirname(os.path.dirname(os.path.abspath(funccover.__file__)))


class Workspace:
    """Writes source files into a temporary directory and runs programs there."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, files: Mapping[str, str]) -> dict[str, str]:
        paths = {}
        for rel_name, code in files.items():
            p = self.root / rel_name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(normalize_code(code), encoding="utf-8")
            paths[rel_name] = str(p)
        return paths

    def run(self, script: str, *args: str, timeout: float = 30) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (package_root(), env.get("PYTHONPATH", "")) if p
        )
        return subprocess.run(
            [sys.executable, script, *args],
            cwd=str(self.root),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )


@pytest.fixture()
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path)
