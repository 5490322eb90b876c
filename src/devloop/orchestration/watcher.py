"""
Filesystem watch subscription for the source tree.

Publishes a WatchEvent on a queue for every saved source file under the
source root, skipping hidden (dot-prefixed) paths. Editors that save by
renaming a temp file over the source produce an addition, which is
reported as a modification too.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from watchfiles import Change, DefaultFilter, awatch

from ..executor.build_process import SOURCE_SUFFIX
from ..models.runtime import ChangeKind, WatchEvent

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300


class SourceChangeFilter(DefaultFilter):
    """
    Accepts saves of source files outside hidden directories.

    A save is a modification, or an addition of a path that still exists
    (an atomic rename-over by the editor).
    """

    def __init__(self, source_root: Path, suffix: str = SOURCE_SUFFIX):
        super().__init__()
        self.source_root = Path(source_root).resolve()
        self.suffix = suffix

    def __call__(self, change: Change, path: str) -> bool:
        if not path.endswith(self.suffix):
            return False
        if change == Change.deleted:
            return False
        if change == Change.added and not Path(path).exists():
            return False
        candidate = Path(path).resolve()
        try:
            parts = candidate.relative_to(self.source_root).parts
        except ValueError:
            parts = candidate.parts
        if any(part.startswith(".") for part in parts):
            return False
        return super().__call__(change, path)


class SourceWatcher:
    """
    Recursive change subscription on a source root.

    `run` blocks until `stop` is called, pushing events onto the queue it
    was given.
    """

    def __init__(
        self,
        source_root: Path,
        suffix: str = SOURCE_SUFFIX,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        watch_func: Optional[Callable[..., Any]] = None,
    ):
        self.source_root = Path(source_root)
        self.watch_filter = SourceChangeFilter(self.source_root, suffix)
        self.debounce_ms = debounce_ms
        self._watch = watch_func or awatch
        self._stop_event = asyncio.Event()

    async def run(self, queue: "asyncio.Queue[WatchEvent]") -> None:
        if not self.source_root.is_dir():
            logger.warning(f"Source directory {self.source_root} does not exist, creating it")
            self.source_root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Watching {self.source_root} for changes to *{self.watch_filter.suffix} files")
        async for changes in self._watch(
            self.source_root,
            watch_filter=self.watch_filter,
            debounce=self.debounce_ms,
            stop_event=self._stop_event,
        ):
            # An atomic save can report both an addition and a modification
            for path in sorted({path for _, path in changes}):
                logger.debug(f"Change detected: {path}")
                await queue.put(WatchEvent(path=Path(path), kind=ChangeKind.MODIFIED))
        logger.debug("Watch subscription released")

    def stop(self) -> None:
        self._stop_event.set()
