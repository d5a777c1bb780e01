"""SCOPE job report renderer for QueryTorque.

Transforms ``JobAnalyzer.to_dict`` output into a self-contained HTML
report using Jinja2 templating with scope_report.html.j2.
"""

from pathlib import Path
from typing import Any
from jinja2 import Environment, FileSystemLoader

from .markdown_renderer import format_bytes, format_duration, ANOMALY_LABELS, SKEW_LABELS


class ScopeRenderer:
    """Render SCOPE job bottleneck reports as HTML."""

    def __init__(self):
        # Templates are in qt_scope/templates/
        template_dir = Path(__file__).parent.parent / 'templates'
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=True
        )
        self.env.filters['bytes'] = format_bytes
        self.env.filters['duration'] = format_duration
        self.env.filters['number_format'] = self._number_format

    def _number_format(self, value: int | float) -> str:
        """Format number with thousand separators."""
        if value is None:
            return "-"
        return f"{value:,.0f}"

    def render(self, report_data: dict[str, Any]) -> str:
        """Render complete HTML report from analyzer output.

        Args:
            report_data: Output of ``JobAnalyzer.to_dict``

        Returns:
            Complete HTML string
        """
        template = self.env.get_template('scope_report.html.j2')
        return template.render(**self._build_template_context(report_data))

    def render_to_file(self, report_data: dict[str, Any], output_path: Path) -> Path:
        """Render and write to file."""
        html = self.render(report_data)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding='utf-8')
        return output_path

    def _build_template_context(self, data: dict[str, Any]) -> dict[str, Any]:
        totals = data.get('totals') or {}
        sections = [
            ('Top Memory-Intensive Vertices', data.get('most_memory_intensive') or []),
            ('Top Time-Consuming Vertices', data.get('most_time_consuming') or []),
            ('Top Data-Intensive Vertices', data.get('most_data_intensive') or []),
        ]
        skew = [
            dict(entry, label=SKEW_LABELS.get(entry.get('classification'), entry.get('classification')))
            for entry in data.get('data_skew') or []
        ]
        anomalies = [
            dict(entry, labels=[ANOMALY_LABELS.get(r, r) for r in entry.get('reasons') or []])
            for entry in data.get('anomalies') or []
        ]
        return {
            'runtime_source': data.get('runtime_source'),
            'plan_source': data.get('plan_source'),
            'analysis_timestamp': data.get('analysis_timestamp'),
            'has_runtime_data': data.get('has_runtime_data', False),
            'totals': totals,
            'vertex_sections': sections,
            'skew': skew,
            'anomalies': anomalies,
            'exceptions': data.get('exceptions') or [],
            'correlated_operators': data.get('correlated_operators') or [],
            'unresolved_count': len(data.get('unresolved_operators') or []),
            'plan_fallback': data.get('plan_fallback') or [],
            'plan_bottlenecks': data.get('plan_bottlenecks') or [],
            'notices': data.get('notices') or [],
        }
