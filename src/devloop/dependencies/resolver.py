"""
Dependency resolution and artifact caching.

Resolves symbolic dependency specs to local jar files, downloading missing
artifacts from a Maven-layout repository into a per-project cache. Each spec
is resolved independently; one failure never aborts the others.
"""

import asyncio
import http.client
import logging
import os
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, BinaryIO, Callable, Mapping, Optional, Tuple

from ..models.results import DependencyResolution, DependencySpec, ResolutionReport
from ..validation import (
    DependencyError,
    ErrorSeverity,
    NetworkFailureError,
    UnknownDependencyError,
    WriteFailureError,
    handle_error,
)
from .registry import MAVEN_CENTRAL, CachedArtifact, Coordinate, expand_transitive, lookup_coordinate

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0
CHUNK_SIZE = 64 * 1024

Opener = Callable[[str, float], Any]


def _urlopen(url: str, timeout: float) -> Any:
    request = urllib.request.Request(url, headers={"User-Agent": "devloop"})
    return urllib.request.urlopen(request, timeout=timeout)


class DependencyResolver:
    """
    Maps dependency specs to cached artifacts, fetching on a cache miss.

    The cache is keyed by `{artifactId}-{version}.{ext}`. A file present at
    the cache path is trusted without re-validation, so a warm cache makes
    resolution idempotent and offline-safe.
    """

    def __init__(
        self,
        cache_dir: Path,
        base_url: str = MAVEN_CENTRAL,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        opener: Optional[Opener] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        """
        Args:
            cache_dir: Directory holding downloaded artifacts
            base_url: Repository root URL
            timeout: Per-request network timeout in seconds
            opener: Callable (url, timeout) returning a readable response
                context manager; defaults to urllib
            chunk_size: Bytes read per streaming step
        """
        self.cache_dir = Path(cache_dir)
        self.base_url = base_url
        self.timeout = timeout
        self._opener = opener or _urlopen
        self.chunk_size = chunk_size

    def cache_entry(self, coordinate: Coordinate, version: str) -> CachedArtifact:
        return CachedArtifact(coordinate, version, self.cache_dir / coordinate.file_name(version))

    async def resolve(self, specs: Mapping[str, str]) -> ResolutionReport:
        """
        Resolve every spec after transitive expansion.

        Specs are resolved concurrently; the report lists them in expanded
        order regardless of completion order.
        """
        expanded = expand_transitive(specs)
        if not expanded:
            return ResolutionReport()

        spec_list = [DependencySpec(name, version) for name, version in expanded.items()]
        logger.info(f"Resolving {len(spec_list)} dependencies: {', '.join(str(s) for s in spec_list)}")

        results = await asyncio.gather(*(self._resolve_one(spec) for spec in spec_list))
        report = ResolutionReport(list(results))

        logger.info(
            f"Dependency resolution finished: {len(report.classpath)} available "
            f"({report.downloaded_count} downloaded), {len(report.failures)} failed"
        )
        return report

    async def _resolve_one(self, spec: DependencySpec) -> DependencyResolution:
        try:
            path, cached = await self.resolve_spec(spec)
        except DependencyError as e:
            severity = ErrorSeverity.WARNING if isinstance(e, UnknownDependencyError) else ErrorSeverity.ERROR
            handle_error(
                error=e,
                context=f"resolving dependency {spec}",
                severity=severity,
                reraise=False,
                logger=logger
            )
            return DependencyResolution(spec=spec, error=e)
        return DependencyResolution(spec=spec, path=path, cached=cached)

    async def resolve_spec(self, spec: DependencySpec) -> Tuple[Path, bool]:
        """
        Resolve a single spec.

        Returns:
            Tuple of (local_path, was_cache_hit)

        Raises:
            UnknownDependencyError: If the name is not registered
            NetworkFailureError: If the download fails
            WriteFailureError: If the download cannot be stored
        """
        coordinate = lookup_coordinate(spec.name)
        if coordinate is None:
            raise UnknownDependencyError(spec.name)

        entry = self.cache_entry(coordinate, spec.version)
        target = entry.local_path
        if entry.is_present():
            logger.debug(f"Cache hit for {spec}: {target}")
            return target, True

        url = coordinate.url(self.base_url, spec.version)
        logger.info(f"Downloading {spec} from {url}")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._download, spec.name, url, target)
        return target, False

    def _download(self, name: str, url: str, target: Path) -> None:
        """
        Stream `url` into `target` via a temporary file in the cache directory.

        The temporary file is renamed into place only after the whole body
        has been written, and removed on any failure.
        """
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f"{target.name}.", suffix=".part", dir=self.cache_dir)
        except OSError as e:
            raise WriteFailureError(name, url, f"cannot prepare cache directory {self.cache_dir}: {e}") from e

        tmp_path = Path(tmp_name)
        completed = False
        try:
            with os.fdopen(fd, "wb") as out:
                written = self._stream(name, url, out)
            if written == 0:
                raise NetworkFailureError(name, url, "empty response body")
            try:
                os.replace(tmp_path, target)
            except OSError as e:
                raise WriteFailureError(name, url, f"cannot move artifact into cache: {e}") from e
            completed = True
            logger.debug(f"Stored {written} bytes at {target}")
        finally:
            if not completed:
                tmp_path.unlink(missing_ok=True)

    def _stream(self, name: str, url: str, out: BinaryIO) -> int:
        """Copy the response body to `out`, classifying failures. Returns bytes written."""
        try:
            response_cm = self._opener(url, self.timeout)
        except urllib.error.HTTPError as e:
            raise NetworkFailureError(name, url, f"HTTP {e.code} {e.reason}") from e
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            reason = getattr(e, "reason", e)
            raise NetworkFailureError(name, url, str(reason)) from e

        written = 0
        with response_cm as response:
            while True:
                try:
                    chunk = response.read(self.chunk_size)
                except (http.client.HTTPException, OSError) as e:
                    raise NetworkFailureError(name, url, f"connection failed mid-transfer: {e}") from e
                if not chunk:
                    break
                try:
                    out.write(chunk)
                except OSError as e:
                    raise WriteFailureError(name, url, f"cannot write to cache: {e}") from e
                written += len(chunk)
        return written
