"""Markdown rendering for SCOPE job analysis results.

Section order is fixed: overall summary, memory, time, data, skew,
anomalies, exceptions, then correlated operators (or the plan-only
fallback) and the plan bottleneck candidates. A section with nothing to
show says so instead of being dropped.
"""

from typing import TYPE_CHECKING, Optional

from ..parsers.schema_parser import format_fields

if TYPE_CHECKING:
    from ..analyzers.job_analyzer import JobAnalysisReport
    from ..analyzers.operator_correlator import CorrelationResult
    from ..analyzers.runtime_analyzer import RuntimeAnalysis

NO_DATA = "_No data available for this dimension._"

SKEW_LABELS = {
    "expansion": "Data Expansion",
    "reduction": "Data Reduction",
}

ANOMALY_LABELS = {
    "long_elapsed_low_input": "Long execution time but small input volume",
    "low_read_rate": "Read rate far below the job average",
}

BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


# =============================================================================
# VALUE FORMATTING
# =============================================================================

def format_bytes(num_bytes: float) -> str:
    """Format a byte count with binary (1024) steps."""
    if not num_bytes or num_bytes < 0:
        return "0 B"
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(BYTE_UNITS) - 1:
        size /= 1024
        unit += 1
    if unit == 0:
        return f"{int(size)} B"
    return f"{size:.2f} {BYTE_UNITS[unit]}"


def format_duration(ms: float) -> str:
    """Format a millisecond duration as ms, seconds, minutes or hours."""
    if not ms or ms < 0:
        return "0 ms"
    if ms < 1000:
        return f"{int(ms)} ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.2f}s"
    if seconds < 3600:
        minutes, secs = divmod(seconds, 60)
        return f"{int(minutes)}m {secs:.0f}s"
    hours, rest = divmod(seconds, 3600)
    return f"{int(hours)}h {int(rest // 60)}m"


def format_percent(part: float, whole: float) -> str:
    if not whole:
        return "0.0%"
    return f"{part / whole * 100:.1f}%"


def format_rate(num_bytes: float, ms: float) -> str:
    """Bytes per second for a millisecond duration, ``n/a`` when untimed."""
    if not ms or ms <= 0:
        return "n/a"
    return f"{format_bytes(num_bytes / (ms / 1000))}/sec"


def _rows(value: Optional[int]) -> str:
    return "N/A" if value is None else f"{value:,}"


# =============================================================================
# SECTIONS
# =============================================================================

def _vertex_heading(index: int, vertex) -> str:
    kind = f" ({vertex.kind})" if vertex.kind else ""
    return f"{index}. **{vertex.id}**{kind}"


def _operator_lines(vertex) -> list:
    if not vertex.operators:
        return ["   - Operators: none recorded"]
    lines = ["   - Operators:"]
    for op in vertex.operators:
        lines.append(
            f"     * operator_{op.id}: {_rows(op.row_count)} rows, "
            f"{format_duration(op.inclusive_time or 0)} inclusive time"
        )
    return lines


def render_summary(analysis: "RuntimeAnalysis") -> list:
    totals = analysis.totals
    lines = ["## Overall Job Statistics"]
    if not analysis.has_data:
        return lines + [NO_DATA, ""]
    lines += [
        f"- **Number of Vertices**: {totals.vertex_count}",
        f"- **Total Elapsed Time**: {format_duration(totals.total_elapsed_time)}",
        f"- **Total CPU Time**: {format_duration(totals.total_cpu_time)}",
        f"- **Average Vertex Elapsed Time**: {format_duration(totals.average_elapsed_time)}",
        f"- **Total Input Data**: {format_bytes(totals.total_input_bytes)}",
        f"- **Total Output Data**: {format_bytes(totals.total_output_bytes)}",
        f"- **Total Rows Written**: {totals.total_output_rows:,}",
        "",
    ]
    return lines


def render_memory(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Top Memory-Intensive Vertices"]
    if not analysis.by_memory:
        return lines + [NO_DATA, ""]
    for i, v in enumerate(analysis.by_memory, 1):
        lines.append(_vertex_heading(i, v))
        lines.append(
            f"   - Memory: {format_bytes(v.memory.avg_overall_memory_peak_size)} avg, "
            f"{format_bytes(v.memory.max_overall_memory_peak_size)} max"
        )
        lines.append(
            f"   - Private: {format_bytes(v.memory.avg_private_memory_peak_size)} avg, "
            f"Working set: {format_bytes(v.memory.avg_working_set_peak_size)} avg"
        )
        lines += _operator_lines(v)
        lines.append("")
    return lines


def render_time(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Top Time-Consuming Vertices"]
    if not analysis.by_time:
        return lines + [NO_DATA, ""]
    total = analysis.totals.total_elapsed_time
    for i, v in enumerate(analysis.by_time, 1):
        lines.append(_vertex_heading(i, v))
        lines.append(
            f"   - Time: {format_duration(v.time.elapsed_time)} "
            f"({format_percent(v.time.elapsed_time, total)} of total time)"
        )
        lines.append(f"   - CPU Time: {format_duration(v.time.total_cpu_time)}")
        lines += _operator_lines(v)
        lines.append("")
    return lines


def render_data(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Top Data-Intensive Vertices"]
    if not analysis.by_data:
        return lines + [NO_DATA, ""]
    for i, v in enumerate(analysis.by_data, 1):
        lines.append(_vertex_heading(i, v))
        lines.append(f"   - Data: {format_bytes(v.data.input_bytes)} in, {format_bytes(v.data.output_bytes)} out")
        lines.append(f"   - Processing Efficiency: {format_rate(v.data.total_bytes, v.time.elapsed_time)}")
        lines += _operator_lines(v)
        lines.append("")
    return lines


def render_skew(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Vertices with Severe Data Skew"]
    if not analysis.by_skew:
        return lines + [NO_DATA, ""]
    for i, entry in enumerate(analysis.by_skew, 1):
        v = entry.vertex
        label = SKEW_LABELS.get(entry.classification, entry.classification)
        lines.append(f"{_vertex_heading(i, v)} - {label}")
        lines.append(f"   - Write/Read Ratio: {entry.ratio:.2f} (output/input)")
        lines.append(f"   - Data Read: {format_bytes(v.data.input_bytes)}")
        lines.append(f"   - Data Written: {format_bytes(v.data.output_bytes)}")
        lines.append(f"   - Execution Time: {format_duration(v.time.elapsed_time)}")
        lines.append("")
    return lines


def render_anomalies(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Potential Problem Vertices"]
    if not analysis.anomalies:
        return lines + [NO_DATA, ""]
    for anomaly in analysis.anomalies:
        v = anomaly.vertex
        lines.append(f"- **{v.id}**")
        for reason in anomaly.reasons:
            lines.append(f"   - Pattern: {ANOMALY_LABELS.get(reason, reason)}")
        lines.append(
            f"   - Elapsed {format_duration(v.time.elapsed_time)}, "
            f"read {format_bytes(v.data.input_bytes)} ({format_rate(v.data.input_bytes, v.time.elapsed_time)})"
        )
        lines.append("   - Possible causes: CPU bottleneck, resource contention, complex computation or waiting")
    lines.append("")
    return lines


def render_exceptions(analysis: "RuntimeAnalysis") -> list:
    lines = ["## Vertices with Exceptions"]
    if not analysis.by_exceptions:
        return lines + [NO_DATA, ""]
    for v in analysis.by_exceptions:
        stats = v.exceptions
        lines.append(
            f"- **{v.id}**: {stats.total} exceptions "
            f"({stats.cpp_exception_count} C++, {stats.csharp_exception_count} C#, "
            f"{stats.other_exception_count} other)"
        )
    lines.append("")
    return lines


def render_correlation(correlation: Optional["CorrelationResult"]) -> list:
    if correlation is None:
        return ["## Key Operator Details", "_No plan document available; operators were not correlated._", ""]
    if correlation.used_fallback:
        return render_plan_candidates(correlation.fallback)

    lines = ["## Key Operator Details"]
    if not correlation.records:
        lines.append("_No matching key operators found in the plan document._")
    for i, rec in enumerate(correlation.records, 1):
        lines.append(f"{i}. **{rec.operator_id}** (uid `{rec.uid}`)")
        lines.append(f"   - Vertex: {rec.vertex_id}")
        lines.append(f"   - Class: {rec.class_name} ({rec.assembly_name})" if rec.assembly_name
                     else f"   - Class: {rec.class_name}")
        if rec.location:
            lines.append(f"   - Source: {rec.location}")
        if rec.input_ids:
            lines.append(f"   - Inputs: {', '.join(rec.input_ids)}")
            lines.append(f"     Fields: {', '.join(rec.input_fields) or 'none'}")
        if rec.output_ids:
            lines.append(f"   - Outputs: {', '.join(rec.output_ids)}")
            lines.append(f"     Fields: {', '.join(rec.output_fields) or 'none'}")
    if correlation.unresolved_count:
        lines.append("")
        lines.append(f"_{correlation.unresolved_count} operators had no source mapping._")
    lines.append("")
    return lines


def render_plan_candidates(scores: list) -> list:
    lines = ["## Plan Bottleneck Candidates"]
    if not scores:
        return lines + [NO_DATA, ""]
    for i, entry in enumerate(scores, 1):
        vertex = entry.vertex
        lines.append(f"{i}. **Vertex {vertex.id}** (score {entry.score:.2f})")
        lines.append(f"   - Memory Usage Ratio: {entry.memory_ratio * 100:.2f}%")
        lines.append(f"   - Actual Memory: {format_bytes(vertex.limit_memory.engine_operator_memory)}")
        lines.append(f"   - Optimal Memory: {format_bytes(vertex.optimal_memory.engine_operator_memory)}")
        if entry.complex_operators:
            lines.append("   - Critical Operators:")
        for op in entry.complex_operators:
            if op.source_file and op.source_line is not None:
                where = f"{op.source_file}:{op.source_line}"
            else:
                where = f"{op.assembly_name}.{op.class_name}"
            lines.append(f"     * {op.id} ({op.class_name}) at {where}")
            if op.args:
                lines.append(f"       Args: {op.args}")
    lines.append("")
    return lines


# =============================================================================
# DOCUMENTS
# =============================================================================

def format_report(analysis: "RuntimeAnalysis", correlation: Optional["CorrelationResult"],
                  notices: Optional[list] = None, title: str = "SCOPE Job Bottleneck Report",
                  plan_bottlenecks: Optional[list] = None) -> str:
    """Render rankings and correlation results as a Markdown report.

    ``plan_bottlenecks`` adds a trailing plan-candidates section unless the
    correlation already fell back to showing it.
    """
    lines = [f"# {title}", ""]
    lines += render_summary(analysis)
    lines += render_memory(analysis)
    lines += render_time(analysis)
    lines += render_data(analysis)
    lines += render_skew(analysis)
    lines += render_anomalies(analysis)
    lines += render_exceptions(analysis)
    lines += render_correlation(correlation)
    if plan_bottlenecks and not (correlation is not None and correlation.used_fallback):
        lines += render_plan_candidates(plan_bottlenecks)
    if notices:
        lines.append("## Analysis Notes")
        for notice in notices:
            lines.append(f"- {notice.message}")
        lines.append("")
    return "\n".join(lines)


def render_job_report(report: "JobAnalysisReport") -> str:
    lines = []
    if report.runtime_source:
        lines.append(f"- Runtime statistics: `{report.runtime_source}`")
    if report.plan_source:
        lines.append(f"- Vertex definitions: `{report.plan_source}`")
    lines.append(f"- Analyzed: {report.analysis_timestamp}")
    body = format_report(report.runtime, report.correlation, report.notices,
                         plan_bottlenecks=report.plan_bottlenecks)
    header, _, rest = body.partition("\n\n")
    return "\n".join([header, ""] + lines + ["", rest])


def render_plan_vertices(vertices: list) -> str:
    """Render every plan vertex with its memory estimates and operator chain."""
    result = "# Scope Vertex Analysis\n\n"
    if not vertices:
        return result + NO_DATA + "\n"

    for vertex in vertices:
        result += f"## Vertex {vertex.id}\n\n"
        result += "### Memory Estimates\n"
        result += f"- Total Process Memory: {format_bytes(vertex.limit_memory.process_memory)}\n"
        result += f"- Engine Memory: {format_bytes(vertex.limit_memory.engine_memory)}\n"
        result += f"- Operator Memory: {format_bytes(vertex.limit_memory.engine_operator_memory)}\n\n"

        result += f"### Operator Chain ({len(vertex.operators)} operators)\n\n"
        for index, op in enumerate(vertex.operators, 1):
            result += f"#### {index}. {op.id} ({op.class_name})\n"
            if op.source_file:
                line = f":{op.source_line}" if op.source_line is not None else ""
                result += f"- Source: {op.source_file}{line}\n"
            if op.args:
                result += f"- Args: {op.args}\n"
            for port in op.inputs:
                result += f"- Input: {port.id}\n"
                result += f"  - Schema: {format_fields(port.fields)}\n"
            for port in op.outputs:
                result += f"- Output: {port.id}\n"
                result += f"  - Schema: {format_fields(port.fields)}\n"
            result += "\n"
    return result
