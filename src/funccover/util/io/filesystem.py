"""
File system helpers for reading sources and writing instrumented output.
"""
import os.path


def ensureDirectoryExists(dirname):
    """Create ``dirname`` and its parents unless it exists already."""
    if dirname and not os.path.exists(dirname):
        os.makedirs(dirname)


def readSource(path):
    """Read a source file as raw bytes."""
    with open(path, "rb") as f:
        return f.read()


def writeSource(directory, name, data):
    """
    Write instrumented bytes to ``directory/name``.

    The directory is created if missing and an existing file is replaced.

    Returns:
        Full path of the written file
    """
    ensureDirectoryExists(directory)
    fullname = os.path.join(directory, name)
    with open(fullname, "wb") as f:
        f.write(data)
    return fullname
