"""
Static dependency registry and transitive expansion rules.

Both are plain immutable data: a symbolic-name -> coordinate table and a
short list of "name implies these companions" rules.
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

MAVEN_CENTRAL = "https://repo1.maven.org/maven2"


@dataclass(frozen=True)
class Coordinate:
    """A group/artifact address in a Maven-layout repository."""

    group_id: str
    artifact_id: str
    extension: str = "jar"

    @property
    def group_path(self) -> str:
        return self.group_id.replace(".", "/")

    def file_name(self, version: str) -> str:
        return f"{self.artifact_id}-{version}.{self.extension}"

    def url(self, base: str, version: str) -> str:
        return f"{base.rstrip('/')}/{self.group_path}/{self.artifact_id}/{version}/{self.file_name(version)}"

    @classmethod
    def parse(cls, value: str) -> "Coordinate":
        group_id, artifact_id = value.split(":")
        return cls(group_id, artifact_id)


@dataclass(frozen=True)
class CachedArtifact:
    """
    An artifact in the local cache. Presence of `local_path` on disk is
    authoritative; cached content is never re-validated.
    """

    coordinate: Coordinate
    version: str
    local_path: Path

    @property
    def key(self) -> Tuple[str, str]:
        return (self.coordinate.artifact_id, self.version)

    def is_present(self) -> bool:
        return self.local_path.is_file()


@dataclass(frozen=True)
class ExpansionRule:
    """Requesting `trigger` implies `implies` at the same version."""

    trigger: str
    implies: Tuple[str, ...]


DEPENDENCY_REGISTRY: Mapping[str, Coordinate] = MappingProxyType({
    name: Coordinate.parse(coords)
    for name, coords in {
        "postgresql": "org.postgresql:postgresql",
        "mysql": "com.mysql:mysql-connector-j",
        "mysql-connector": "com.mysql:mysql-connector-j",
        "redis": "redis.clients:jedis",
        "lombok": "org.projectlombok:lombok",
        "gson": "com.google.code.gson:gson",
        "jwt": "com.auth0:java-jwt",
        "mongodb": "org.mongodb:mongodb-driver-sync",
        "sqlite": "org.xerial:sqlite-jdbc",
        "h2": "com.h2database:h2",
        "logback": "ch.qos.logback:logback-classic",
        "jackson": "com.fasterxml.jackson.core:jackson-databind",
        "jackson-core": "com.fasterxml.jackson.core:jackson-core",
        "jackson-annotations": "com.fasterxml.jackson.core:jackson-annotations",
    }.items()
})

EXPANSION_RULES: Tuple[ExpansionRule, ...] = (
    ExpansionRule("jackson", ("jackson-core", "jackson-annotations")),
)


def _normalize(name: str) -> str:
    return name.strip().lower()


def lookup_coordinate(name: str) -> Optional[Coordinate]:
    """Case-insensitive registry lookup."""
    return DEPENDENCY_REGISTRY.get(_normalize(name))


def expand_transitive(
    specs: Mapping[str, str], rules: Tuple[ExpansionRule, ...] = EXPANSION_RULES
) -> Dict[str, str]:
    """
    Add implied companion specs, once and non-recursively.

    Explicitly requested names keep their version. The input order is kept,
    with implied specs appended after all explicit ones.
    """
    expanded = dict(specs)
    # Names match case-insensitively, like registry lookup
    requested = {_normalize(name): version for name, version in specs.items()}
    present = set(requested)
    for rule in rules:
        version = requested.get(rule.trigger)
        if version is None:
            continue
        for implied in rule.implies:
            if implied not in present:
                expanded[implied] = version
                present.add(implied)
    return expanded
