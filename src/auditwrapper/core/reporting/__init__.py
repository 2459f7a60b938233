"""Audit report rendering.

Provides:
- ReportGenerator: Jinja2-backed plain-text report renderer
- render_report: Render a result set with the default templates
"""

from .generator import ReportGenerator, render_report

__all__ = ["ReportGenerator", "render_report"]
