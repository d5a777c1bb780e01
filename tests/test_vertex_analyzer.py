"""Plan-side vertex scoring tests."""

import pytest

from qt_scope.analyzers.vertex_analyzer import VertexAnalyzer, is_complex_operator, memory_ratio
from qt_scope.config import Settings
from qt_scope.parsers.vertex_parser import MemoryEstimate, PlanOperator, PlanOperatorIO, PlanVertex


def _op(class_name: str, inputs: int = 0) -> PlanOperator:
    ports = [PlanOperatorIO(id=f"in{i}", uid=f"in{i}", schema="") for i in range(inputs)]
    return PlanOperator(id=class_name, uid=class_name, class_name=class_name,
                        assembly_name="Scope.Runtime", inputs=ports)


class TestComplexOperators:
    def test_markers(self):
        assert is_complex_operator(_op("ScopeHashAggregate"))
        assert is_complex_operator(_op("ScopeSort"))
        assert is_complex_operator(_op("ScopeMergeJoin"))
        assert not is_complex_operator(_op("ScopeFilter"))

    def test_marker_match_is_case_sensitive(self):
        assert not is_complex_operator(_op("scopesort"))
        assert not is_complex_operator(_op("SCOPEJOIN"))

    def test_multiple_inputs(self):
        assert is_complex_operator(_op("ScopeUnion", inputs=2))
        assert not is_complex_operator(_op("ScopeUnion", inputs=1))

    def test_custom_markers(self):
        assert is_complex_operator(_op("ScopeWindow"), markers=("Window",))
        assert not is_complex_operator(_op("ScopeSort"), markers=("Window",))


class TestMemoryRatio:
    def test_ratio(self):
        vertex = PlanVertex(
            id="SV1",
            limit_memory=MemoryEstimate(engine_operator_memory=300),
            optimal_memory=MemoryEstimate(engine_operator_memory=100),
        )
        assert memory_ratio(vertex) == pytest.approx(3.0)

    def test_zero_optimal_is_zero(self):
        vertex = PlanVertex(id="SV1", limit_memory=MemoryEstimate(engine_operator_memory=300))
        assert memory_ratio(vertex) == 0.0


class TestVertexAnalyzer:
    """Tests for importance scoring and ranking."""

    def test_scores(self, plan_document, settings):
        analyzer = VertexAnalyzer(settings)
        sv1, sv3 = (analyzer.score_vertex(v) for v in plan_document.vertices)
        assert sv1.memory_ratio == pytest.approx(2.0)
        assert sv1.complex_operators == []
        assert sv1.score == pytest.approx(1.4)
        assert [op.uid for op in sv3.complex_operators] == ["op_42", "op_43", "op_44"]
        assert sv3.score == pytest.approx(0.7 * 3.0 + 0.3 * 3)

    def test_top_vertices_order(self, plan_document, settings):
        ranked = VertexAnalyzer(settings).top_vertices(plan_document.vertices)
        assert [s.vertex.id for s in ranked] == ["SV3_Aggregate", "SV1_Extract"]

    def test_top_vertices_k(self, plan_document, settings):
        ranked = VertexAnalyzer(settings).top_vertices(plan_document.vertices, k=1)
        assert len(ranked) == 1

    def test_weights_from_settings(self, plan_document):
        settings = Settings(plan_memory_weight=0.0, plan_complexity_weight=1.0)
        sv3 = VertexAnalyzer(settings).score_vertex(plan_document.vertices[1])
        assert sv3.score == pytest.approx(3.0)

    def test_empty(self, settings):
        assert VertexAnalyzer(settings).top_vertices([]) == []
