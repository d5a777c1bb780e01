#!/usr/bin/env python3
"""
SCOPE Job Analyzer - Runtime/Plan Bottleneck Report
===================================================
Loads a job's vertex-definition and runtime-statistics documents, ranks
runtime vertices, correlates the operators they ran back to the plan and
produces a structured report for programmatic callers plus Markdown, JSON
and HTML renderings.

Each document loads independently: if one is malformed the other is
still analyzed and the failure is recorded as a notice.
"""

import json
import logging
import sys
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..config import Settings, get_settings
from ..errors import AnalysisNotice, MalformedDocument, NoticeKind
from ..parsers.documents import PLAN, RUNTIME, load_document
from ..parsers.runtime_parser import DISCOVERY_NONE, RuntimeDocument
from ..parsers.vertex_parser import PlanDocument
from ..renderers.markdown_renderer import render_job_report
from .operator_correlator import CorrelationResult, OperatorCorrelator, collect_operator_ids
from .runtime_analyzer import RuntimeAnalysis, RuntimeAnalyzer
from .vertex_analyzer import VertexAnalyzer

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class JobAnalysisReport:
    """Complete analysis of one job."""
    runtime: RuntimeAnalysis
    correlation: Optional[CorrelationResult]
    plan_bottlenecks: list = field(default_factory=list)
    runtime_source: Optional[str] = None
    plan_source: Optional[str] = None
    discovery: str = DISCOVERY_NONE
    plan_vertex_count: int = 0
    plan_operator_count: int = 0
    defaulted_attributes: dict = field(default_factory=dict)
    notices: list = field(default_factory=list)
    analysis_timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def operator_ids(self) -> list:
        return collect_operator_ids(self.runtime)


# =============================================================================
# PIPELINE
# =============================================================================

def _missing_data_notices(document: RuntimeDocument) -> list:
    return [
        AnalysisNotice(
            kind=NoticeKind.MISSING_OPTIONAL_DATA.value,
            message=f"{count} vertices had no <{section}> element; its statistics were treated as zero.",
            count=count,
            source=document.source,
        )
        for section, count in document.missing_sections.items()
    ]


def analyze_documents(
    plan: Optional[PlanDocument],
    runtime: Optional[RuntimeDocument],
    settings: Optional[Settings] = None,
) -> JobAnalysisReport:
    """Run ranking and correlation over already-loaded documents.

    Either document may be None. Without runtime data every ranking view is
    empty; without a plan nothing is correlated.
    """
    settings = settings or get_settings()
    notices = []

    vertices = runtime.vertices if runtime is not None else []
    if runtime is not None:
        notices.extend(_missing_data_notices(runtime))
        if not vertices:
            notices.append(AnalysisNotice(
                kind=NoticeKind.EMPTY_DATASET.value,
                message="The runtime statistics document contained no vertices.",
                source=runtime.source,
            ))
    analysis = RuntimeAnalyzer(settings).analyze(vertices)

    correlation = None
    plan_bottlenecks = []
    if plan is not None:
        plan_bottlenecks = VertexAnalyzer(settings).top_vertices(plan.vertices)
        correlation = OperatorCorrelator(settings).correlate(collect_operator_ids(analysis), plan.vertices)
        if correlation.unresolved_count:
            notices.append(AnalysisNotice(
                kind=NoticeKind.UNRESOLVED_CORRELATION.value,
                message=f"{correlation.unresolved_count} operators had no source mapping.",
                count=correlation.unresolved_count,
                source=plan.source,
            ))

    return JobAnalysisReport(
        runtime=analysis,
        correlation=correlation,
        plan_bottlenecks=plan_bottlenecks,
        runtime_source=runtime.source if runtime is not None else None,
        plan_source=plan.source if plan is not None else None,
        discovery=runtime.discovery if runtime is not None else DISCOVERY_NONE,
        plan_vertex_count=len(plan.vertices) if plan is not None else 0,
        plan_operator_count=plan.operator_count if plan is not None else 0,
        notices=notices,
        defaulted_attributes=dict(runtime.missing_attributes) if runtime is not None else {},
    )


def _vertex_summary(vertex) -> dict:
    return {
        "id": vertex.id,
        "kind": vertex.kind,
        "avg_overall_memory_peak_size": vertex.memory.avg_overall_memory_peak_size,
        "max_overall_memory_peak_size": vertex.memory.max_overall_memory_peak_size,
        "elapsed_time": vertex.time.elapsed_time,
        "total_cpu_time": vertex.time.total_cpu_time,
        "input_bytes": vertex.data.input_bytes,
        "output_bytes": vertex.data.output_bytes,
        "exception_count": vertex.exceptions.total,
        "operators": [asdict(op) for op in vertex.operators],
    }


def _score_summary(entry) -> dict:
    return {
        "vertex_id": entry.vertex.id,
        "score": entry.score,
        "memory_ratio": entry.memory_ratio,
        "complex_operators": [op.uid for op in entry.complex_operators],
    }


class JobAnalyzer:
    """Generate bottleneck reports for a SCOPE job."""

    def __init__(
        self,
        plan_path: Optional[Union[str, Path]] = None,
        runtime_path: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
    ):
        if plan_path is None and runtime_path is None:
            raise ValueError("At least one of plan_path or runtime_path is required")
        self.plan_path = Path(plan_path) if plan_path is not None else None
        self.runtime_path = Path(runtime_path) if runtime_path is not None else None
        self.settings = settings or get_settings()
        logger.info("Initializing JobAnalyzer (plan=%s, runtime=%s)", self.plan_path, self.runtime_path)

    def _load(self, path: Optional[Path], kind: str, notices: list):
        if path is None:
            return None
        try:
            return load_document(path, kind, self.settings)
        except MalformedDocument as exc:
            logger.warning("Skipping %s document: %s", kind, exc)
            notices.append(AnalysisNotice(
                kind=NoticeKind.MALFORMED_DOCUMENT.value,
                message=f"The {kind} document could not be parsed: {exc.reason}",
                source=exc.source,
            ))
            return None

    def generate(self) -> JobAnalysisReport:
        """Load both documents and produce the job report."""
        logger.info("Starting job analysis")
        start_time = time.time()

        load_notices = []
        runtime = self._load(self.runtime_path, RUNTIME, load_notices)
        plan = self._load(self.plan_path, PLAN, load_notices)

        report = analyze_documents(plan, runtime, self.settings)
        report.notices = load_notices + report.notices
        if report.runtime_source is None and self.runtime_path is not None:
            report.runtime_source = str(self.runtime_path)
        if report.plan_source is None and self.plan_path is not None:
            report.plan_source = str(self.plan_path)

        logger.info(
            "Job analysis complete: vertices=%d, correlated=%d, notices=%d, duration=%.2fs",
            report.runtime.totals.vertex_count,
            len(report.correlation.records) if report.correlation else 0,
            len(report.notices),
            time.time() - start_time,
        )
        return report

    def to_dict(self, report: JobAnalysisReport) -> dict:
        """Compact, JSON-ready view of the report."""
        analysis = report.runtime
        correlation = report.correlation
        return {
            "runtime_source": report.runtime_source,
            "plan_source": report.plan_source,
            "analysis_timestamp": report.analysis_timestamp,
            "discovery": report.discovery,
            "has_runtime_data": analysis.has_data,
            "totals": asdict(analysis.totals),
            "most_memory_intensive": [_vertex_summary(v) for v in analysis.by_memory],
            "most_time_consuming": [_vertex_summary(v) for v in analysis.by_time],
            "most_data_intensive": [_vertex_summary(v) for v in analysis.by_data],
            "data_skew": [
                {"vertex_id": e.vertex.id, "ratio": e.ratio, "score": e.score, "classification": e.classification}
                for e in analysis.by_skew
            ],
            "anomalies": [
                {"vertex_id": a.vertex.id, "reasons": list(a.reasons), "read_rate": a.read_rate}
                for a in analysis.anomalies
            ],
            "exceptions": [_vertex_summary(v) for v in analysis.by_exceptions],
            "correlated_operators": [asdict(r) for r in correlation.records] if correlation else [],
            "unresolved_operators": list(correlation.unresolved) if correlation else [],
            "plan_fallback": [_score_summary(s) for s in correlation.fallback] if correlation else [],
            "plan_bottlenecks": [_score_summary(s) for s in report.plan_bottlenecks],
            "plan_vertex_count": report.plan_vertex_count,
            "plan_operator_count": report.plan_operator_count,
            "defaulted_attributes": dict(report.defaulted_attributes),
            "notices": [asdict(n) for n in report.notices],
        }

    def to_json(self, report: JobAnalysisReport) -> str:
        """Convert report to JSON."""
        return json.dumps(self.to_dict(report), indent=2, default=str)

    def to_markdown(self, report: JobAnalysisReport) -> str:
        """Generate the Markdown bottleneck report."""
        return render_job_report(report)


# =============================================================================
# CLI INTERFACE
# =============================================================================

def main():
    """Main entry point."""
    if len(sys.argv) < 3:
        print("Usage: python -m qt_scope.analyzers.job_analyzer <ScopeVertexDef.xml> "
              "<__ScopeRuntimeStatistics__.xml> [--json|--markdown]")
        sys.exit(1)

    plan_path, runtime_path = sys.argv[1], sys.argv[2]
    output_format = sys.argv[3] if len(sys.argv) > 3 else "--markdown"

    for path in (plan_path, runtime_path):
        if not Path(path).exists():
            print(f"Error: File not found: {path}")
            sys.exit(1)

    analyzer = JobAnalyzer(plan_path=plan_path, runtime_path=runtime_path)
    report = analyzer.generate()

    if output_format == "--json":
        print(analyzer.to_json(report))
    else:
        print(analyzer.to_markdown(report))


if __name__ == "__main__":
    main()
