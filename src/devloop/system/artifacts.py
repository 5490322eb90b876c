"""
Runtime artifact discovery.

Finds the runtime jar the worker is launched from, given an ordered list of
candidate directories. Order encodes priority: project-local build output
comes before global installs.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from ..validation import ArtifactNotFoundError

logger = logging.getLogger(__name__)

RUNTIME_PATH_ENV = "DEVLOOP_RUNTIME_PATH"
EXCLUDED_SUFFIXES = ("-sources.jar", "-javadoc.jar")


def is_runtime_artifact(
    file_name: str,
    prefix: str,
    suffix: str = ".jar",
    excluded_suffixes: Sequence[str] = EXCLUDED_SUFFIXES,
) -> bool:
    """Whether a file name is the binary artifact, not a sources/docs variant."""
    return (
        file_name.startswith(prefix)
        and file_name.endswith(suffix)
        and not file_name.endswith(tuple(excluded_suffixes))
    )


def locate_artifact(
    candidate_dirs: Iterable[Path],
    prefix: str,
    suffix: str = ".jar",
    excluded_suffixes: Sequence[str] = EXCLUDED_SUFFIXES,
) -> Optional[Path]:
    """
    Return the first matching artifact across the candidates, in order.

    Within a directory entries are examined in name order. Missing or
    unreadable directories are skipped.

    Returns:
        Path to the artifact, or None if no candidate contains one
    """
    for directory in candidate_dirs:
        directory = Path(directory)
        try:
            entries = sorted(os.listdir(directory))
        except (FileNotFoundError, NotADirectoryError):
            continue
        except PermissionError:
            logger.warning(f"Cannot list artifact directory {directory}, skipping")
            continue

        for entry in entries:
            if is_runtime_artifact(entry, prefix, suffix, excluded_suffixes) and (directory / entry).is_file():
                found = directory / entry
                logger.info(f"Found runtime artifact: {found}")
                return found
    return None


def require_artifact(candidate_dirs: Sequence[Path], prefix: str) -> Path:
    """
    Like locate_artifact, but a miss is fatal.

    Raises:
        ArtifactNotFoundError: If no candidate contains a match
    """
    candidates = list(candidate_dirs)
    found = locate_artifact(candidates, prefix)
    if found is None:
        raise ArtifactNotFoundError(prefix, candidates)
    return found


def default_search_paths(
    project_dir: Path,
    configured: Sequence[Path] = (),
    env: Optional[Mapping[str, str]] = None,
) -> List[Path]:
    """
    Build the ordered candidate list for the runtime artifact.

    Descriptor-configured paths come first, then the entries of
    DEVLOOP_RUNTIME_PATH, then conventional runtime build locations
    relative to the project.
    """
    env = os.environ if env is None else env
    project_dir = Path(project_dir)

    candidates: List[Path] = list(configured)
    env_value = env.get(RUNTIME_PATH_ENV, "")
    candidates.extend(Path(p).expanduser() for p in env_value.split(os.pathsep) if p.strip())
    candidates.extend([
        project_dir / ".." / ".." / "runtime" / "target",
        project_dir / ".." / "runtime" / "target",
        project_dir / "runtime" / "target",
    ])

    unique: List[Path] = []
    seen = set()
    for path in candidates:
        key = os.path.normpath(str(path))
        if key not in seen:
            seen.add(key)
            unique.append(path)
    return unique
