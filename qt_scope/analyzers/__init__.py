"""qt-scope Analyzers.

Runtime vertex ranking, plan vertex scoring, runtime-to-plan operator
correlation and the job-level report pipeline.
"""

from .ranking import top_k, safe_div
from .runtime_analyzer import (
    RuntimeAnalyzer,
    RuntimeAnalysis,
    JobTotals,
    SkewEntry,
    VertexAnomaly,
    compute_totals,
    rank_by_skew,
    find_anomalies,
)
from .vertex_analyzer import VertexAnalyzer, VertexScore, is_complex_operator
from .operator_correlator import (
    OperatorCorrelator,
    CorrelationResult,
    CorrelatedOperator,
    collect_operator_ids,
    operator_ids_by_vertex,
    filter_operator_ids,
)
from .job_analyzer import JobAnalyzer, JobAnalysisReport, analyze_documents

__all__ = [
    "top_k",
    "safe_div",
    # Runtime
    "RuntimeAnalyzer",
    "RuntimeAnalysis",
    "JobTotals",
    "SkewEntry",
    "VertexAnomaly",
    "compute_totals",
    "rank_by_skew",
    "find_anomalies",
    # Plan
    "VertexAnalyzer",
    "VertexScore",
    "is_complex_operator",
    # Correlation
    "OperatorCorrelator",
    "CorrelationResult",
    "CorrelatedOperator",
    "collect_operator_ids",
    "operator_ids_by_vertex",
    "filter_operator_ids",
    # Job
    "JobAnalyzer",
    "JobAnalysisReport",
    "analyze_documents",
]
