"""Operator Correlator - map runtime operator ids back to plan operators.

The runtime document identifies operators by ``opId``, which is the plan
operator's ``uid``. Plan operator ``id`` values are vertex-local display
names and are never used for matching.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..config import Settings, get_settings
from .runtime_analyzer import RuntimeAnalysis
from .vertex_analyzer import VertexAnalyzer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrelatedOperator:
    """A runtime-surfaced operator resolved to its plan definition."""
    vertex_id: str
    operator_id: str
    uid: str
    class_name: str
    assembly_name: str
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    args: Optional[str] = None
    input_ids: list = field(default_factory=list)
    output_ids: list = field(default_factory=list)
    input_fields: list = field(default_factory=list)
    output_fields: list = field(default_factory=list)

    @property
    def location(self) -> Optional[str]:
        if not self.source_file:
            return None
        if self.source_line is None:
            return self.source_file
        return f"{self.source_file}:{self.source_line}"


@dataclass
class CorrelationResult:
    records: list = field(default_factory=list)
    requested: int = 0
    unresolved: list = field(default_factory=list)
    fallback: list = field(default_factory=list)  # VertexScore, only when nothing was requested

    @property
    def unresolved_count(self) -> int:
        return len(self.unresolved)

    @property
    def used_fallback(self) -> bool:
        return self.requested == 0


# =============================================================================
# RUNTIME OPERATOR ID HELPERS
# =============================================================================

def _unique(ids: Iterable) -> list:
    seen = set()
    ordered = []
    for op_id in ids:
        if op_id and op_id not in seen:
            seen.add(op_id)
            ordered.append(op_id)
    return ordered


def collect_operator_ids(analysis: RuntimeAnalysis) -> list:
    """Operator ids from every ranked runtime view, de-duplicated in order."""
    return _unique(op.id for vertex in analysis.ranked_vertices() for op in vertex.operators)


def operator_ids_by_vertex(vertices: list) -> dict:
    """Map vertex id to its operator ids, skipping vertices without operators."""
    mapping = {}
    for vertex in vertices:
        op_ids = [op.id for op in vertex.operators if op.id]
        if op_ids:
            mapping[vertex.id] = op_ids
    return mapping


def filter_operator_ids(
    vertices: list,
    min_row_count: Optional[int] = None,
    min_time: Optional[int] = None,
    vertex_kinds: Optional[Iterable[str]] = None,
    include_patterns: Optional[Iterable[str]] = None,
    exclude_patterns: Optional[Iterable[str]] = None,
) -> list:
    """Select runtime operator ids matching all the given conditions.

    An operator without the counter a threshold applies to is excluded.
    Patterns are regular expressions searched against the operator id.
    """
    kinds = set(vertex_kinds) if vertex_kinds is not None else None
    includes = [re.compile(p) for p in include_patterns] if include_patterns else None
    excludes = [re.compile(p) for p in exclude_patterns] if exclude_patterns else []

    selected = []
    for vertex in vertices:
        if kinds is not None and vertex.kind not in kinds:
            continue
        for op in vertex.operators:
            if not op.id:
                continue
            if min_row_count is not None and (op.row_count is None or op.row_count < min_row_count):
                continue
            if min_time is not None and (op.inclusive_time is None or op.inclusive_time < min_time):
                continue
            if includes is not None and not any(p.search(op.id) for p in includes):
                continue
            if any(p.search(op.id) for p in excludes):
                continue
            selected.append(op.id)
    return selected


# =============================================================================
# CORRELATOR
# =============================================================================

def build_uid_index(plan_vertices: list) -> dict:
    """Index plan operators by ``uid``; the first occurrence wins."""
    index = {}
    for vertex in plan_vertices:
        for op in vertex.operators:
            if op.uid and op.uid not in index:
                index[op.uid] = (vertex, op)
    return index


def _to_record(vertex, op) -> CorrelatedOperator:
    return CorrelatedOperator(
        vertex_id=vertex.id,
        operator_id=op.id,
        uid=op.uid,
        class_name=op.class_name,
        assembly_name=op.assembly_name,
        source_file=op.source_file,
        source_line=op.source_line,
        args=op.args,
        input_ids=[io.id for io in op.inputs],
        output_ids=[io.id for io in op.outputs],
        input_fields=[name for io in op.inputs for name in io.field_names],
        output_fields=[name for io in op.outputs for name in io.field_names],
    )


class OperatorCorrelator:
    """Resolve runtime operator ids against the plan graph."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def correlate(self, operator_ids: Iterable[str], plan_vertices: list) -> CorrelationResult:
        """Look up each id as a plan operator ``uid``.

        Ids without a plan match are dropped from ``records`` and listed in
        ``unresolved``. With no ids at all, ``fallback`` carries the
        plan-only top vertices by importance score instead.
        """
        requested = _unique(operator_ids)
        if not requested:
            logger.info("No runtime operator ids supplied; using plan-only vertex ranking")
            fallback = VertexAnalyzer(self.settings).top_vertices(plan_vertices)
            return CorrelationResult(fallback=fallback)

        index = build_uid_index(plan_vertices)
        result = CorrelationResult(requested=len(requested))
        for op_id in requested:
            match = index.get(op_id)
            if match is None:
                result.unresolved.append(op_id)
                continue
            result.records.append(_to_record(*match))

        if result.unresolved:
            logger.warning("%d of %d operators had no source mapping in the plan document",
                           result.unresolved_count, result.requested)
        logger.debug("Correlated %d operators", len(result.records))
        return result
