"""Exclusion policy for manifest and audit-result filtering.

A run is governed by one immutable PolicyConfig built at the command-line
boundary and handed explicitly to each filter. Name exclusions are plain
predicates; the manifest and the audit results each get their own, since
the packages an organization keeps out of the scan are not necessarily the
ones it wants hidden from the report.

Provides:
- SubstringExclusion: Predicate excluding names that contain any pattern
- no_exclusion: Predicate that never excludes
- PolicyConfig: Immutable policy for one run
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from auditwrapper.core.severity import Severity


def no_exclusion(name: str) -> bool:
    """Exclude nothing."""
    return False


@dataclass(frozen=True)
class SubstringExclusion:
    """Exclude a package when its name contains any of the patterns.

    An empty pattern list excludes nothing. Blank patterns are ignored so
    a stray comma in an environment variable cannot exclude everything.

    Example:
        >>> rule = SubstringExclusion.from_patterns(["internal-"])
        >>> rule("internal-utils")
        True
        >>> rule("lodash")
        False
    """

    patterns: tuple[str, ...] = ()

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "SubstringExclusion":
        return cls(tuple(p.strip() for p in patterns if p and p.strip()))

    def __call__(self, name: str) -> bool:
        return any(pattern in name for pattern in self.patterns)


class PolicyConfig(BaseModel):
    """Filtering policy for a single audit run.

    Attributes:
        min_severity: Lowest severity kept in the audit results
        exclude_dev_dependencies: Drop every devDependency before scanning
        scan_exclusion: Returns True for manifest entries to drop before scanning
        audit_exclusion: Returns True for result entries to drop from the report
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    min_severity: Severity = Severity.LOW
    exclude_dev_dependencies: bool = False
    scan_exclusion: Callable[[str], bool] = Field(default=no_exclusion)
    audit_exclusion: Callable[[str], bool] = Field(default=no_exclusion)
