"""Data model for manifests and npm audit results.

npm has shipped two audit report layouts. The legacy one (npm 6) keys
advisories by id under "advisories"; the current one (npm 7+) keys
vulnerable packages by name under "vulnerabilities". Both are modelled here
and ScanResultSet keeps the raw document so that fields this tool does not
understand survive a filter-and-write round.

Provides:
- DependencyManifest: package.json dependency sections
- ViaAdvisory, FixDescriptor, VulnerabilityEntry: current report shape
- LegacyFinding, AdvisoryEntry: legacy report shape
- ResultShape: Section discriminator
- ScanResultSet: Raw audit document with typed access to its sections
"""

import copy
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DependencyManifest(BaseModel):
    """Dependency sections of a package.json.

    Other top-level fields (name, version, scripts, ...) are kept as extras
    and written back unchanged. A section missing from the input stays
    missing on output.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = Field(default=None, alias="devDependencies")

    def to_document(self) -> dict[str, Any]:
        """Serialize back to package.json layout."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class ViaAdvisory(BaseModel):
    """Nested advisory inside a current-shape "via" list."""

    model_config = ConfigDict(extra="allow")

    source: int | str | None = None
    severity: str | None = None
    dependency: str | None = None
    range: str | None = None
    title: str | None = None
    url: str | None = None


class FixDescriptor(BaseModel):
    """Upgrade target from "fixAvailable"."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    version: str | None = None
    is_semver_major: bool | None = Field(default=None, alias="isSemVerMajor")


class VulnerabilityEntry(BaseModel):
    """One vulnerable package in the current report shape.

    Attributes:
        name: Affected package
        severity: low | moderate | high | critical (free text tolerated)
        via: Bare package names, name-first arrays, or nested advisories
        title: Advisory title, when npm provides one
        fix_available: False/True, or an upgrade target
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    severity: str | None = None
    via: list[Any] | None = None
    title: str | None = None
    fix_available: bool | FixDescriptor | None = Field(default=None, alias="fixAvailable")


class LegacyFinding(BaseModel):
    """Install paths for an advisory in the legacy shape."""

    model_config = ConfigDict(extra="allow")

    version: str | None = None
    dev: bool = False
    paths: list[str] | None = None


class AdvisoryEntry(BaseModel):
    """One advisory in the legacy report shape."""

    model_config = ConfigDict(extra="allow")

    module_name: str | None = None
    severity: str | None = None
    title: str | None = None
    findings: list[LegacyFinding] | None = None
    recommendation: str | None = None
    url: str | None = None


class ResultShape(str, Enum):
    """Top-level section of an npm audit document."""

    LEGACY = "advisories"
    CURRENT = "vulnerabilities"


def entry_shape(entry: dict[str, Any]) -> ResultShape:
    """Decide which layout a single entry uses.

    Entries carrying module_name or findings but no via are legacy
    advisories; everything else is read as the current layout.
    """
    if "via" not in entry and ("module_name" in entry or "findings" in entry):
        return ResultShape.LEGACY
    return ResultShape.CURRENT


def entry_name(entry: dict[str, Any]) -> str:
    """Package name of an entry in either layout ("" when absent)."""
    name = entry.get("name")
    if name is None:
        name = entry.get("module_name")
    return name if isinstance(name, str) else ""


class ScanResultSet:
    """Raw npm audit document with access to its result sections.

    The document is copied on construction; filters build new sets rather
    than editing one in place.
    """

    def __init__(self, document: dict[str, Any] | None = None):
        self.document: dict[str, Any] = copy.deepcopy(document) if document else {}

    @property
    def shapes(self) -> list[ResultShape]:
        """Result sections present, in document order."""
        present = []
        for key, value in self.document.items():
            if key in (ResultShape.LEGACY.value, ResultShape.CURRENT.value) and isinstance(value, dict):
                present.append(ResultShape(key))
        return present

    def section(self, shape: ResultShape) -> dict[str, Any]:
        """Entries of one section, or an empty mapping when absent."""
        value = self.document.get(shape.value)
        return value if isinstance(value, dict) else {}

    def entries(self) -> list[tuple[str, dict[str, Any]]]:
        """All (key, entry) pairs across sections, in scan order."""
        pairs = []
        for shape in self.shapes:
            pairs.extend(self.section(shape).items())
        return pairs

    def replace_section(self, shape: ResultShape, entries: dict[str, Any]) -> "ScanResultSet":
        """Copy of this set with one section swapped for ``entries``."""
        document = dict(self.document)
        document[shape.value] = entries
        return ScanResultSet(document)

    def to_document(self) -> dict[str, Any]:
        return copy.deepcopy(self.document)

    def __len__(self) -> int:
        return sum(len(self.section(shape)) for shape in self.shapes)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScanResultSet):
            return NotImplemented
        return self.document == other.document

    def __repr__(self) -> str:
        return f"ScanResultSet(shapes={[s.value for s in self.shapes]}, entries={len(self)})"
