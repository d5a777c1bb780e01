"""HTML report rendering tests."""

import pytest

from qt_scope import JobAnalyzer
from qt_scope.renderers.html_renderer import ScopeRenderer


class TestScopeRenderer:
    """Tests for Jinja2 HTML rendering of analyzer output."""

    @pytest.fixture
    def renderer(self):
        return ScopeRenderer()

    @pytest.fixture
    def report_data(self, plan_file, runtime_file, settings):
        analyzer = JobAnalyzer(plan_path=plan_file, runtime_path=runtime_file, settings=settings)
        return analyzer.to_dict(analyzer.generate())

    def test_render_full_report(self, renderer, report_data):
        html = renderer.render(report_data)
        assert html.startswith("<!DOCTYPE html>")
        assert "Top Memory-Intensive Vertices" in html
        assert "SV3_Aggregate" in html
        assert "Key Operator Details" in html
        assert "job.script:42" in html
        assert "1 operators had no source mapping." in html
        assert "Data Expansion" in html

    def test_filters(self, renderer, report_data):
        html = renderer.render(report_data)
        assert "13.00s" in html
        assert "4.00 MB" in html

    def test_empty_report(self, renderer):
        html = renderer.render({})
        assert "No data available for this dimension." in html
        assert "No operators could be correlated" in html

    def test_plan_fallback(self, renderer, plan_file, malformed_file, settings):
        analyzer = JobAnalyzer(plan_path=plan_file, runtime_path=malformed_file, settings=settings)
        html = renderer.render(analyzer.to_dict(analyzer.generate()))
        assert "Plan Bottleneck Candidates" in html
        assert "300.00%" in html
        assert "Analysis Notes" in html
        assert html.count("Plan Bottleneck Candidates") == 1

    def test_plan_candidates_follow_correlated_operators(self, renderer, report_data):
        html = renderer.render(report_data)
        assert html.index("Key Operator Details") < html.index("Plan Bottleneck Candidates")
        assert "300.00%" in html

    def test_unresolved_count_without_correlated_operators(self, renderer):
        html = renderer.render({"unresolved_operators": ["op_7", "op_8"]})
        assert "No operators could be correlated" in html
        assert "2 operators had no source mapping." in html

    def test_values_are_escaped(self, renderer):
        html = renderer.render({"runtime_source": "<script>alert(1)</script>"})
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_render_to_file(self, renderer, report_data, tmp_path):
        out = renderer.render_to_file(report_data, tmp_path / "reports" / "job.html")
        assert out.exists()
        assert "SCOPE Job Bottleneck Report" in out.read_text(encoding="utf-8")
