"""Plain-text audit report from filtered npm audit results.

Each surviving entry becomes one stanza. The layout depends on the entry:
current npm output (via/fixAvailable) and legacy npm 6 advisories
(findings/recommendation) are rendered by separate stanza builders, chosen
per entry. Stanzas keep scan order.
"""

import json
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader

from auditwrapper.core.models import (
    AdvisoryEntry,
    FixDescriptor,
    ResultShape,
    ScanResultSet,
    ViaAdvisory,
    VulnerabilityEntry,
    entry_shape,
)
from auditwrapper.core.severity import severity_label

logger = structlog.get_logger()


class ReportGenerator:
    """Render a ScanResultSet as the human-readable audit report.

    Current-shape stanza::

        |---hig---| lodash
        lodash
        --cri-- minimist with version-range "<1.2.6" and problem: "Prototype Pollution" url: http://x
        | Prototype Pollution
        | Fix: update lodash to version 4.17.21

    Legacy-shape stanza::

        |-----low-----| ReDoS
        | qs [PROD] in
        - a>b
        | Rec.: upgrade

    Fields missing from an entry are left out of its stanza. An empty
    result set renders as an empty string, without the header.
    """

    def __init__(self, template_dir: str | None = None):
        """Initialize report generator with Jinja2 templates.

        Args:
            template_dir: Path to template directory (defaults to ./templates/)
        """
        if template_dir is None:
            template_dir = str(Path(__file__).parent / "templates")
        self.env = Environment(loader=FileSystemLoader(template_dir))

    def render(self, results: ScanResultSet) -> str:
        """Render the full report.

        Args:
            results: Filtered audit results (not modified)

        Returns:
            Report text, or "" when there is nothing to report
        """
        logger.debug("creating_dependency_report", entries=len(results))
        stanzas = []
        for key, entry in results.entries():
            if not isinstance(entry, dict):
                logger.debug("skipping_malformed_entry", key=key)
                continue
            if entry_shape(entry) is ResultShape.LEGACY:
                stanzas.append(self._render_legacy(AdvisoryEntry.model_validate(entry)))
            else:
                stanzas.append(self._render_current(VulnerabilityEntry.model_validate(entry)))

        template = self.env.get_template("audit_report.txt.j2")
        return template.render(stanzas=stanzas)

    def _render_current(self, entry: VulnerabilityEntry) -> str:
        label = severity_label(entry.severity)
        head = [f"|---{label}---|"] if label else []
        if entry.name:
            head.append(entry.name)
        lines = [" ".join(head)]

        for element in entry.via or []:
            line = self._render_via(element)
            if line is not None:
                lines.append(line)

        if entry.title:
            lines.append(f"| {entry.title}")

        if entry.fix_available is not None:
            lines.append(f"| Fix: {self._render_fix(entry.fix_available)}")

        return "\n".join(lines) + "\n\n"

    def _render_via(self, element: Any) -> str | None:
        """One line for a "via" element, or None when it carries nothing printable."""
        if isinstance(element, str):
            return element
        if isinstance(element, (list, tuple)) and element and isinstance(element[0], str):
            return ", ".join(str(part) for part in element)
        if not isinstance(element, dict):
            logger.debug("skipping_via_element", element=repr(element))
            return None

        advisory = ViaAdvisory.model_validate(element)
        label = severity_label(advisory.severity)
        parts = [f"--{label}--"] if label else []
        if advisory.dependency:
            parts.append(advisory.dependency)
        if advisory.range:
            parts.append(f'with version-range "{advisory.range}"')
        if advisory.title:
            parts.append(f'and problem: "{advisory.title}"')
        if advisory.url:
            parts.append(f"url: {advisory.url}")
        return " ".join(parts)

    def _render_fix(self, fix: bool | FixDescriptor) -> str:
        if isinstance(fix, bool):
            return json.dumps(fix)
        return f"update {fix.name} to version {fix.version}"

    def _render_legacy(self, entry: AdvisoryEntry) -> str:
        head = [f"|-----{entry.severity}-----|"] if entry.severity else []
        if entry.title:
            head.append(entry.title)
        lines = [" ".join(head)]

        finding = entry.findings[0] if entry.findings else None
        module_line = f"| {entry.module_name}" if entry.module_name else "|"
        if finding is not None:
            module_line += " [DEV] in" if finding.dev else " [PROD] in"
        if entry.module_name or finding is not None:
            lines.append(module_line)
        if finding is not None:
            lines.extend(f"- {path}" for path in finding.paths or [])

        if entry.recommendation:
            lines.append(f"| Rec.: {entry.recommendation}")

        return "\n".join(lines) + "\n\n"


def render_report(results: ScanResultSet) -> str:
    """Render ``results`` with the default templates."""
    return ReportGenerator().render(results)
