"""Core audit functionality.

Provides:
- Severity ranking and threshold checks
- Exclusion policy and manifest/result filters
- Report rendering for both npm audit result layouts
- The file-based audit pipeline
"""

from .filters import filter_manifest, filter_results, summarize_results
from .models import DependencyManifest, ResultShape, ScanResultSet
from .policy import PolicyConfig, SubstringExclusion
from .reporting import ReportGenerator, render_report
from .severity import Severity, meets_minimum, severity_label, severity_rank

__all__ = [
    "filter_manifest",
    "filter_results",
    "summarize_results",
    "DependencyManifest",
    "ResultShape",
    "ScanResultSet",
    "PolicyConfig",
    "SubstringExclusion",
    "ReportGenerator",
    "render_report",
    "Severity",
    "meets_minimum",
    "severity_label",
    "severity_rank",
]
