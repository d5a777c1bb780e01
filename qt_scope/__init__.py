"""QueryTorque SCOPE - Job Telemetry Bottleneck Analysis.

This package turns a SCOPE job's execution telemetry into a ranked,
cross-referenced bottleneck report:
- Vertex-definition (plan) and runtime-statistics XML parsing
- Top-N vertex rankings by memory, time, data volume and skew
- "Busy but not moving data" anomaly scan
- Runtime operator to plan operator/source correlation
- Markdown, JSON and HTML report generation
"""

__version__ = "0.1.0"

from .analyzers.job_analyzer import JobAnalyzer, JobAnalysisReport, analyze_documents
from .errors import MalformedDocument, ScopeAnalysisError

__all__ = [
    "JobAnalyzer",
    "JobAnalysisReport",
    "analyze_documents",
    "MalformedDocument",
    "ScopeAnalysisError",
]
