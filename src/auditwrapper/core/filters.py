"""Policy filters for the manifest and the audit results.

Both filters are subtractive and idempotent: they build fresh mappings of
the surviving entries and never add or rewrite one.

Provides:
- filter_manifest: Drop excluded dependencies before the scan
- filter_results: Drop excluded or below-threshold audit entries
- summarize_results: Count surviving entries per severity
"""

from typing import Any

import structlog

from auditwrapper.core.models import DependencyManifest, ScanResultSet, entry_name
from auditwrapper.core.policy import PolicyConfig
from auditwrapper.core.severity import SEVERITY_RANK, Severity, meets_minimum

logger = structlog.get_logger()


def _kept_dependencies(
    deps: dict[str, str],
    dep_type: str,
    policy: PolicyConfig,
) -> dict[str, str]:
    kept = {}
    for name, spec in deps.items():
        logger.debug("dependency_found", dep_type=dep_type, name=name)
        drop_dev = dep_type == "devDependency" and policy.exclude_dev_dependencies
        if policy.scan_exclusion(name) or drop_dev:
            logger.debug("dependency_excluded", dep_type=dep_type, name=name)
            continue
        kept[name] = spec
    return kept


def filter_manifest(manifest: DependencyManifest, policy: PolicyConfig) -> DependencyManifest:
    """Remove excluded entries from a manifest's dependency sections.

    A dependency is dropped when the policy's scan exclusion matches its
    name. A devDependency is additionally dropped whenever the policy
    excludes dev dependencies. Sections absent from the input stay absent.

    Args:
        manifest: Parsed package.json
        policy: Run policy

    Returns:
        New DependencyManifest; the input is left untouched

    Example:
        >>> policy = PolicyConfig(scan_exclusion=lambda name: "internal-" in name)
        >>> m = DependencyManifest(dependencies={"internal-utils": "1.0.0", "qs": "^6.0.0"})
        >>> filter_manifest(m, policy).dependencies
        {'qs': '^6.0.0'}
    """
    logger.debug("checking_scan_exclusions")
    update: dict[str, Any] = {}
    if manifest.dependencies is not None:
        update["dependencies"] = _kept_dependencies(
            manifest.dependencies, "dependency", policy
        )
    if manifest.dev_dependencies is not None:
        update["dev_dependencies"] = _kept_dependencies(
            manifest.dev_dependencies, "devDependency", policy
        )
    return manifest.model_copy(update=update, deep=True)


def _is_excluded(key: str, entry: dict[str, Any], policy: PolicyConfig) -> bool:
    name = entry_name(entry)
    severity = entry.get("severity")
    logger.debug("result_entry_found", key=key, severity=severity, name=name)
    if policy.audit_exclusion(name):
        logger.debug("result_excluded_by_name", key=key, name=name)
        return True
    if not meets_minimum(severity, policy.min_severity):
        logger.debug(
            "result_below_min_severity",
            key=key,
            severity=severity,
            min_severity=policy.min_severity.value,
        )
        return True
    return False


def filter_results(results: ScanResultSet, policy: PolicyConfig) -> ScanResultSet:
    """Remove audit entries that fail the policy.

    An entry is dropped when the audit exclusion matches its package name
    or when its severity ranks below ``policy.min_severity``. Both the
    legacy "advisories" and the current "vulnerabilities" sections are
    filtered; everything else in the document passes through.

    Args:
        results: Raw audit result set
        policy: Run policy

    Returns:
        New ScanResultSet containing only surviving entries
    """
    logger.debug("checking_result_exclusions")
    filtered = results
    for shape in results.shapes:
        survivors = {
            key: entry
            for key, entry in results.section(shape).items()
            if not _is_excluded(key, entry if isinstance(entry, dict) else {}, policy)
        }
        filtered = filtered.replace_section(shape, survivors)
    return ScanResultSet(filtered.document)


def summarize_results(results: ScanResultSet) -> dict[str, int]:
    """Count entries per severity.

    Unknown or missing severities are counted as low, matching how they
    rank in filtering.

    Returns:
        {"critical": n, "high": n, "moderate": n, "low": n, "total": n}
    """
    counts = {s.value: 0 for s in reversed(list(Severity))}
    for _, entry in results.entries():
        severity = entry.get("severity") if isinstance(entry, dict) else None
        if not isinstance(severity, str) or severity not in SEVERITY_RANK:
            severity = Severity.LOW.value
        counts[severity] += 1
    counts["total"] = sum(counts.values())
    return counts
