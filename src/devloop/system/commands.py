"""
Command line helpers for the external compiler and worker runtime.
"""

import os
import shlex
import shutil
from pathlib import Path
from typing import Iterable, Sequence, Union


def join_classpath(entries: Iterable[Union[str, Path]]) -> str:
    """Join classpath entries with the platform separator (':' or ';')."""
    return os.pathsep.join(str(e) for e in entries)


def format_command(argv: Sequence[Union[str, Path]], max_args: int = 8) -> str:
    """Render a command for log output, eliding long file lists."""
    parts = [str(a) for a in argv]
    if len(parts) > max_args:
        hidden = len(parts) - max_args
        parts = parts[:max_args] + [f"... (+{hidden} more)"]
    return shlex.join(parts)


def check_executable_installed(name: str) -> bool:
    """Check if an executable is available on the system PATH (or is a path to one)."""
    return shutil.which(name) is not None
