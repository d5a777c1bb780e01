"""Runtime Analyzer - job totals, top-N vertex rankings and anomaly scan.

All views are projections over the caller's ``RuntimeVertex`` list: ranked
lists hold references to the original vertices and nothing is modified.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import Settings, get_settings
from ..parsers.runtime_parser import RuntimeVertex
from .ranking import mean_of_positive, safe_div, top_k

logger = logging.getLogger(__name__)

SKEW_EXPANSION = "expansion"
SKEW_REDUCTION = "reduction"

ANOMALY_LONG_ELAPSED_LOW_INPUT = "long_elapsed_low_input"
ANOMALY_LOW_READ_RATE = "low_read_rate"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class JobTotals:
    """Job-wide sums plus the averages used by the anomaly scan."""
    vertex_count: int = 0
    total_elapsed_time: int = 0
    total_cpu_time: int = 0
    total_input_bytes: int = 0
    total_output_bytes: int = 0
    total_output_rows: int = 0
    average_elapsed_time: float = 0.0
    average_input_bytes: float = 0.0
    read_rate: float = 0.0  # input bytes per time unit


@dataclass(frozen=True)
class SkewEntry:
    vertex: RuntimeVertex
    ratio: float           # written / read
    score: float           # |ratio - 1|
    classification: str    # expansion | reduction


@dataclass(frozen=True)
class VertexAnomaly:
    vertex: RuntimeVertex
    reasons: list
    read_rate: float


@dataclass
class RuntimeAnalysis:
    """Rankings over one job's runtime vertices."""
    totals: JobTotals
    by_memory: list = field(default_factory=list)
    by_time: list = field(default_factory=list)
    by_data: list = field(default_factory=list)
    by_skew: list = field(default_factory=list)
    anomalies: list = field(default_factory=list)
    by_exceptions: list = field(default_factory=list)
    vertices: list = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.totals.vertex_count > 0

    def ranked_vertices(self) -> list:
        """Vertices from the memory, time, data and skew views, first-seen order."""
        seen = set()
        ordered = []
        candidates = (
            list(self.by_memory) + list(self.by_time) + list(self.by_data)
            + [entry.vertex for entry in self.by_skew]
        )
        for vertex in candidates:
            if id(vertex) not in seen:
                seen.add(id(vertex))
                ordered.append(vertex)
        return ordered


# =============================================================================
# COMPUTATIONS
# =============================================================================

def compute_totals(vertices: list) -> JobTotals:
    """Sum elapsed/CPU time and data volume across all vertices."""
    if not vertices:
        return JobTotals()
    total_elapsed = sum(v.time.elapsed_time for v in vertices)
    total_input = sum(v.data.input_bytes for v in vertices)
    return JobTotals(
        vertex_count=len(vertices),
        total_elapsed_time=total_elapsed,
        total_cpu_time=sum(v.time.total_cpu_time for v in vertices),
        total_input_bytes=total_input,
        total_output_bytes=sum(v.data.output_bytes for v in vertices),
        total_output_rows=sum(v.output_rows for v in vertices),
        average_elapsed_time=mean_of_positive(v.time.elapsed_time for v in vertices),
        average_input_bytes=mean_of_positive(v.data.input_bytes for v in vertices),
        read_rate=safe_div(total_input, total_elapsed),
    )


def skew_ratio(vertex: RuntimeVertex) -> float:
    return safe_div(vertex.data.output_bytes, vertex.data.input_bytes)


def rank_by_skew(vertices: list, k: int = 5, expansion_ratio: float = 1.5) -> list:
    """Rank vertices by how far their write/read ratio deviates from 1:1.

    Only vertices that both read and wrote data are considered.
    """
    entries = []
    for vertex in vertices:
        if vertex.data.input_bytes <= 0 or vertex.data.output_bytes <= 0:
            continue
        ratio = skew_ratio(vertex)
        entries.append(SkewEntry(
            vertex=vertex,
            ratio=ratio,
            score=abs(ratio - 1),
            classification=SKEW_EXPANSION if ratio > expansion_ratio else SKEW_REDUCTION,
        ))
    return top_k(entries, key=lambda e: e.score, k=k)


def find_anomalies(vertices: list, totals: JobTotals, settings: Settings) -> list:
    """Flag vertices that are busy without moving much data.

    Two signals: elapsed time well above the job average while reading well
    below the average input, or a read rate far below the job's read rate.
    """
    elapsed_limit = totals.average_elapsed_time * settings.anomaly_elapsed_factor
    input_limit = totals.average_input_bytes * settings.anomaly_input_factor
    rate_limit = totals.read_rate * settings.anomaly_rate_factor

    anomalies = []
    for vertex in vertices:
        elapsed = vertex.time.elapsed_time
        read_rate = safe_div(vertex.data.input_bytes, elapsed)
        reasons = []
        if elapsed > elapsed_limit and vertex.data.input_bytes < input_limit:
            reasons.append(ANOMALY_LONG_ELAPSED_LOW_INPUT)
        if elapsed > 0 and rate_limit > 0 and read_rate < rate_limit:
            reasons.append(ANOMALY_LOW_READ_RATE)
        if reasons:
            anomalies.append(VertexAnomaly(vertex=vertex, reasons=reasons, read_rate=read_rate))
    return anomalies


# =============================================================================
# RUNTIME ANALYZER
# =============================================================================

class RuntimeAnalyzer:
    """Rank runtime vertices along memory, time, data, skew and exceptions."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def analyze(self, vertices: list) -> RuntimeAnalysis:
        totals = compute_totals(vertices)
        if not vertices:
            logger.warning("No runtime vertices to rank; returning empty analysis")
            return RuntimeAnalysis(totals=totals)

        k = self.settings.top_n
        analysis = RuntimeAnalysis(
            totals=totals,
            by_memory=top_k(vertices, key=lambda v: v.memory.avg_overall_memory_peak_size, k=k),
            by_time=top_k(vertices, key=lambda v: v.time.elapsed_time, k=k),
            by_data=top_k(vertices, key=lambda v: v.data.total_bytes, k=k),
            by_skew=rank_by_skew(vertices, k=k, expansion_ratio=self.settings.skew_expansion_ratio),
            anomalies=find_anomalies(vertices, totals, self.settings),
            by_exceptions=top_k(
                [v for v in vertices if v.exceptions.total > 0],
                key=lambda v: v.exceptions.total,
                k=k,
            ),
            vertices=list(vertices),
        )
        logger.debug(
            "Ranked %d vertices: %d skewed, %d anomalies, %d with exceptions",
            totals.vertex_count, len(analysis.by_skew), len(analysis.anomalies), len(analysis.by_exceptions)
        )
        return analysis
