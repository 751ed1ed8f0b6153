"""Report aggregation and rendering."""

from report.generator import build_report, exit_status, module_completion
from report.render import ReportFormat, render, render_json, render_text

__all__ = [
    "ReportFormat",
    "build_report",
    "exit_status",
    "module_completion",
    "render",
    "render_json",
    "render_text",
]
