"""Severity ordering for npm audit results.

npm reports one of four severities per advisory. Policy thresholds compare
them by rank, with anything unrecognized treated as the lowest rank so an
odd value never hides a finding from the report.

Provides:
- Severity: Ordered enum of npm audit severities
- severity_rank: Numeric rank for threshold comparison
- meets_minimum: Threshold check used by the result filter
- severity_label: Short label used in report stanzas
"""

from enum import Enum

import structlog

logger = structlog.get_logger()


class Severity(str, Enum):
    """npm audit severity levels, lowest first."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_RANK: dict[str, int] = {
    Severity.LOW.value: 1,
    Severity.MODERATE.value: 2,
    Severity.HIGH.value: 3,
    Severity.CRITICAL.value: 4,
}


def severity_rank(severity: str | None) -> int:
    """Map a severity string to its rank.

    Args:
        severity: Severity as reported by npm (e.g. "high"), or None

    Returns:
        1 (low) through 4 (critical). Missing or unknown values rank as low.

    Example:
        >>> severity_rank("critical")
        4
        >>> severity_rank("info")
        1
    """
    if isinstance(severity, Severity):
        severity = severity.value
    rank = SEVERITY_RANK.get(severity) if isinstance(severity, str) else None
    if rank is None:
        logger.debug("unknown_severity", severity=severity, ranked_as=Severity.LOW.value)
        return SEVERITY_RANK[Severity.LOW.value]
    return rank


def meets_minimum(severity: str | None, minimum: str) -> bool:
    """Check whether a severity reaches the policy floor."""
    return severity_rank(severity) >= severity_rank(minimum)


def severity_label(severity: str | None) -> str:
    """First three characters of the severity, case preserved.

    Returns an empty string when the severity is missing.
    """
    if isinstance(severity, Severity):
        severity = severity.value
    if not severity:
        return ""
    return str(severity)[:3]
