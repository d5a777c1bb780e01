"""QueryTorque SCOPE CLI.

Command-line interface for SCOPE job telemetry analysis.

Commands:
    qt-scope analyze -p <ScopeVertexDef.xml> -r <__ScopeRuntimeStatistics__.xml>
                                        Full bottleneck report
    qt-scope runtime <stats.xml>        Runtime rankings only
    qt-scope plan <vertexdef.xml>       Vertex definitions (or --top candidates)
    qt-scope operators <vertexdef.xml> <uid>...
                                        Resolve operator uids to source
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from qt_scope import __version__
from qt_scope.analyzers.job_analyzer import JobAnalyzer, JobAnalysisReport
from qt_scope.analyzers.operator_correlator import OperatorCorrelator
from qt_scope.analyzers.vertex_analyzer import VertexAnalyzer
from qt_scope.config import get_settings
from qt_scope.errors import MalformedDocument
from qt_scope.parsers.vertex_parser import load_plan_document
from qt_scope.renderers.markdown_renderer import (
    format_bytes,
    format_duration,
    render_correlation,
    render_plan_candidates,
    render_plan_vertices,
)

console = Console()
logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def read_xml_file(file_path: str) -> Path:
    """Validate and return an XML telemetry file path."""
    path = Path(file_path)
    if not path.exists():
        raise click.ClickException(f"File not found: {file_path}")
    if path.is_dir():
        raise click.ClickException(f"Expected a file, got a directory: {file_path}")
    if path.suffix and path.suffix.lower() != ".xml":
        raise click.ClickException(f"Expected .xml file, got: {path.suffix}")
    return path


def print_markdown(text: str, raw: bool) -> None:
    if raw:
        click.echo(text)
    else:
        console.print(Markdown(text))


def display_job_summary(report: JobAnalysisReport) -> None:
    """Display job totals and notices with rich formatting."""
    totals = report.runtime.totals
    correlation = report.correlation
    correlated = len(correlation.records) if correlation else 0
    unresolved = correlation.unresolved_count if correlation else 0
    color = "green" if not report.notices else "yellow"

    console.print(Panel(
        f"Vertices: [bold]{totals.vertex_count}[/bold] | "
        f"Plan operators: [bold]{report.plan_operator_count}[/bold]\n"
        f"Correlated operators: {correlated} | Without source mapping: {unresolved}",
        title="SCOPE Job Analysis",
        border_style=color,
    ))

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value")
    table.add_row("Total elapsed time", format_duration(totals.total_elapsed_time))
    table.add_row("Total CPU time", format_duration(totals.total_cpu_time))
    table.add_row("Total input", format_bytes(totals.total_input_bytes))
    table.add_row("Total output", format_bytes(totals.total_output_bytes))
    table.add_row("Vertex discovery", report.discovery)
    console.print(table)

    for notice in report.notices:
        console.print(f"[yellow]Note:[/yellow] {notice.message}")
    console.print()


def run_job_analysis(
    plan: Optional[str],
    runtime: Optional[str],
    output_json: bool,
    output: Optional[str],
    raw: bool,
) -> None:
    plan_path = read_xml_file(plan) if plan else None
    runtime_path = read_xml_file(runtime) if runtime else None

    analyzer = JobAnalyzer(plan_path=plan_path, runtime_path=runtime_path)
    report = analyzer.generate()

    if output_json:
        click.echo(analyzer.to_json(report))
        return

    markdown = analyzer.to_markdown(report)
    if output:
        out_path = Path(output)
        if out_path.suffix.lower() in (".html", ".htm"):
            from qt_scope.renderers.html_renderer import ScopeRenderer
            ScopeRenderer().render_to_file(analyzer.to_dict(report), out_path)
        else:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(markdown, encoding="utf-8")
        console.print(f"[green]Report saved to: {out_path}[/green]")
        return

    if not raw:
        display_job_summary(report)
    print_markdown(markdown, raw)


@click.group()
@click.version_option(version=__version__, prog_name="qt-scope")
def cli():
    """QueryTorque SCOPE - job telemetry bottleneck analysis."""
    pass


@cli.command()
@click.option("--plan", "-p", type=click.Path(), help="Vertex definition document (ScopeVertexDef.xml)")
@click.option("--runtime", "-r", type=click.Path(), help="Runtime statistics document (__ScopeRuntimeStatistics__.xml)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write report to file (.html for HTML, otherwise Markdown)")
@click.option("--raw", is_flag=True, help="Print plain Markdown instead of rich output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def analyze(
    plan: Optional[str],
    runtime: Optional[str],
    output_json: bool,
    output: Optional[str],
    raw: bool,
    verbose: bool,
):
    """Rank vertices and correlate key operators for a SCOPE job."""
    configure_logging(verbose)
    if not plan and not runtime:
        raise click.ClickException("Provide --plan, --runtime, or both")

    try:
        run_job_analysis(plan, runtime, output_json, output, raw)
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception("Job analysis failed")
        console.print(f"[red]Analysis failed: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--raw", is_flag=True, help="Print plain Markdown instead of rich output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def runtime(file: str, output_json: bool, raw: bool, verbose: bool):
    """Rank vertices from a runtime statistics document only."""
    configure_logging(verbose)
    try:
        run_job_analysis(None, file, output_json, None, raw)
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception("Runtime analysis failed")
        console.print(f"[red]Analysis failed: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--top", is_flag=True, help="Show plan-side bottleneck candidates instead of every vertex")
@click.option("--raw", is_flag=True, help="Print plain Markdown instead of rich output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def plan(file: str, top: bool, raw: bool, verbose: bool):
    """Show vertex definitions from a plan document."""
    configure_logging(verbose)
    path = read_xml_file(file)
    settings = get_settings()
    try:
        document = load_plan_document(path, vertex_element=settings.plan_vertex_element)
    except MalformedDocument as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if top:
        scores = VertexAnalyzer(settings).top_vertices(document.vertices)
        text = "\n".join(["# Top Performance Issue Vertex Analysis", ""] + render_plan_candidates(scores))
    else:
        text = render_plan_vertices(document.vertices)
    print_markdown(text, raw)


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@click.argument("uids", nargs=-1, required=True)
@click.option("--raw", is_flag=True, help="Print plain Markdown instead of rich output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def operators(file: str, uids: tuple, raw: bool, verbose: bool):
    """Resolve operator uids to their plan definitions and source location."""
    configure_logging(verbose)
    path = read_xml_file(file)
    settings = get_settings()
    try:
        document = load_plan_document(path, vertex_element=settings.plan_vertex_element)
    except MalformedDocument as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    result = OperatorCorrelator(settings).correlate(uids, document.vertices)
    print_markdown("\n".join(render_correlation(result)), raw)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
