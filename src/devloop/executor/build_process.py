"""
Build pipeline: full recompilation of a source tree.

Discovers every source file under the source root and compiles them all in
one external compiler invocation. There is no caching and no incremental
logic; every build recompiles the full discovered file set.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import List, Sequence, Tuple

from ..models.results import BuildFailure, BuildResult, BuildSuccess, FailureReason
from ..models.runtime import BuildRequest
from ..system.commands import format_command, join_classpath
from ..validation import ErrorSeverity, handle_subprocess_error

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".java"


def discover_source_files(source_root: Path, suffix: str = SOURCE_SUFFIX) -> List[Path]:
    """
    Recursively list source files under `source_root`.

    Traversal is sorted, so the order is stable between runs. A missing
    source root yields an empty list.
    """
    source_root = Path(source_root)
    if not source_root.is_dir():
        return []

    files = []
    for dirpath, dirnames, filenames in os.walk(source_root):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(suffix):
                files.append(Path(dirpath) / filename)
    return files


class BuildPipeline:
    """
    Compiles a source tree with an external compiler.

    The caller is suspended until the compiler exits. Compiler output is
    only kept when the compiler fails.
    """

    def __init__(self, compiler: str = "javac", source_suffix: str = SOURCE_SUFFIX):
        self.compiler = compiler
        self.source_suffix = source_suffix
        self.builds_run = 0

    def build_command(self, request: BuildRequest, source_files: Sequence[Path]) -> List[str]:
        argv = [self.compiler]
        if request.classpath_entries:
            argv += ["-cp", join_classpath(request.classpath_entries)]
        argv += ["-d", str(request.output_dir)]
        argv += [str(f) for f in source_files]
        return argv

    async def build(self, request: BuildRequest) -> BuildResult:
        """
        Compile every source file under the request's source root.

        Returns:
            BuildSuccess, or BuildFailure carrying the diagnostics
        """
        source_files = discover_source_files(request.source_root, self.source_suffix)
        if not source_files:
            message = f"No source files found in {request.source_root}"
            logger.error(message)
            return BuildFailure(message, FailureReason.NO_SOURCES)

        try:
            Path(request.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return BuildFailure(f"Cannot create output directory {request.output_dir}: {e}",
                                FailureReason.COMPILE_ERROR)

        argv = self.build_command(request, source_files)
        logger.info(f"Compiling {len(source_files)} source files...")
        logger.debug(f"Compiler command: {format_command(argv)}")

        start_time = time.monotonic()
        try:
            return_code, stdout, stderr = await self._run_compiler(argv)
        except OSError as e:
            handle_subprocess_error(
                error=e,
                command=self.compiler,
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger
            )
            return BuildFailure(f"Cannot run compiler '{self.compiler}': {e}",
                                FailureReason.COMPILER_UNAVAILABLE)
        finally:
            self.builds_run += 1
        duration = time.monotonic() - start_time

        if return_code != 0:
            logger.error(f"Compilation failed with exit code {return_code}")
            return BuildFailure(stderr or stdout, FailureReason.COMPILE_ERROR)

        logger.info(f"Compiled {len(source_files)} files in {duration:.2f}s")
        return BuildSuccess(source_count=len(source_files), duration_seconds=duration)

    async def _run_compiler(self, argv: Sequence[str]) -> Tuple[int, str, str]:
        """Run the compiler to completion. Returns (return_code, stdout, stderr)."""
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Do not leave an orphaned compiler behind when the loop is torn down
            if process.returncode is None:
                process.kill()
            raise
        return (
            process.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
