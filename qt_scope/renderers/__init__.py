"""qt-scope Renderers.

Markdown and HTML output for job analysis results.
"""

from .markdown_renderer import (
    format_bytes,
    format_duration,
    format_report,
    render_job_report,
    render_plan_vertices,
    render_plan_candidates,
    render_correlation,
)
from .html_renderer import ScopeRenderer

__all__ = [
    "format_bytes",
    "format_duration",
    "format_report",
    "render_job_report",
    "render_plan_vertices",
    "render_plan_candidates",
    "render_correlation",
    "ScopeRenderer",
]
