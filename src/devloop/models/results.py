"""
Result data models.

Build outcomes and dependency resolution outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from ..validation import DependencyError


class FailureReason(Enum):
    """Why a build did not produce output."""
    NO_SOURCES = "no_sources"
    COMPILE_ERROR = "compile_error"
    COMPILER_UNAVAILABLE = "compiler_unavailable"


@dataclass(frozen=True)
class BuildSuccess:
    source_count: int
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class BuildFailure:
    # Raw compiler error stream, kept verbatim for the operator.
    diagnostics: str
    reason: FailureReason = FailureReason.COMPILE_ERROR

    @property
    def succeeded(self) -> bool:
        return False


BuildResult = Union[BuildSuccess, BuildFailure]


@dataclass(frozen=True)
class DependencySpec:
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass
class DependencyResolution:
    """
    Outcome of resolving a single dependency spec: a local path or an error.
    """

    spec: DependencySpec
    path: Optional[Path] = None
    error: Optional[DependencyError] = None
    # True when the artifact was already in the cache.
    cached: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.path is not None


@dataclass
class ResolutionReport:
    """
    Per-spec outcomes of one resolver run, in expanded-spec order.
    """

    results: List[DependencyResolution] = field(default_factory=list)

    @property
    def classpath(self) -> List[Path]:
        return [r.path for r in self.results if r.succeeded]

    @property
    def failures(self) -> List[DependencyResolution]:
        return [r for r in self.results if not r.succeeded]

    @property
    def downloaded_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded and not r.cached)

    def __len__(self) -> int:
        return len(self.results)
