"""Plan-side vertex scoring.

Scores each compiled vertex by how far its operator memory estimate
exceeds the optimal one and by how many heavyweight operators it runs:

    score = memory_weight * (limit.engineOperatorMemory / optimal.engineOperatorMemory)
          + complexity_weight * complex_operator_count

The memory ratio is 0 when the optimal estimate is 0.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import Settings, get_settings
from ..parsers.vertex_parser import PlanOperator, PlanVertex
from .ranking import safe_div, top_k

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VertexScore:
    vertex: PlanVertex
    score: float
    memory_ratio: float
    complex_operators: list = field(default_factory=list)


def is_complex_operator(operator: PlanOperator, markers: tuple = ("Sort", "Aggregate", "Join")) -> bool:
    """An operator is complex if it merges inputs or sorts/aggregates/joins.

    Class names are generated identifiers, so the match is case-sensitive.
    """
    if len(operator.inputs) > 1:
        return True
    return any(marker in operator.class_name for marker in markers)


def memory_ratio(vertex: PlanVertex) -> float:
    return safe_div(
        vertex.limit_memory.engine_operator_memory,
        vertex.optimal_memory.engine_operator_memory,
    )


class VertexAnalyzer:
    """Rank plan vertices by importance score."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def score_vertex(self, vertex: PlanVertex) -> VertexScore:
        markers = self.settings.complex_markers
        complex_ops = [op for op in vertex.operators if is_complex_operator(op, markers)]
        ratio = memory_ratio(vertex)
        score = (self.settings.plan_memory_weight * ratio
                 + self.settings.plan_complexity_weight * len(complex_ops))
        return VertexScore(vertex=vertex, score=score, memory_ratio=ratio, complex_operators=complex_ops)

    def top_vertices(self, vertices: list, k: Optional[int] = None) -> list:
        """Top-k ``VertexScore`` entries, highest score first."""
        k = self.settings.top_n if k is None else k
        scores = [self.score_vertex(v) for v in vertices]
        ranked = top_k(scores, key=lambda s: s.score, k=k)
        logger.debug("Scored %d plan vertices; top score %.2f",
                     len(scores), ranked[0].score if ranked else 0.0)
        return ranked
