"""Wrappers for external dependency scanners.

Provides:
- Base tool protocol and subprocess infrastructure
- NpmAuditTool for npm audit
"""

from .base import Tool, ToolResult, ToolStatus, check_binary, run_subprocess, run_with_retry
from .npm_audit import NpmAuditTool

__all__ = [
    "Tool",
    "ToolResult",
    "ToolStatus",
    "check_binary",
    "run_subprocess",
    "run_with_retry",
    "NpmAuditTool",
]
