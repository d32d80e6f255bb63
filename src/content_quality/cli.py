"""
content-quality CLI - run the quality pipeline from the terminal.

Commands:
    content-quality run PATH      Analyze, approve and refine a file (- for stdin)
    content-quality detect PATH   Mechanical error check, optionally fixed
    content-quality status        Print the pipeline status descriptor
    content-quality serve         Run the HTTP API with uvicorn

Exit codes for run: 0 approved, 1 not approved or pipeline error,
2 invalid input.
"""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .analyzers.error_detection import ErrorDetectionCorrection
from .analyzers.models import Severity
from .config import default_criteria, get_settings
from .errors import QualityPipelineError, ValidationError
from .pipeline.orchestrator import FinalValidationReport, PipelineOptions, QualityPipeline, pipeline_status
from .pipeline.report import build_audit

app = typer.Typer(help="Multi-stage content quality pipeline")
console = Console()
err_console = Console(stderr=True)

SEVERITY_STYLES = {
    Severity.HIGH.value: "bold red",
    Severity.MEDIUM.value: "yellow",
    Severity.LOW.value: "dim",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Analyze generated content, decide approval, and refine it automatically."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _read_content(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    file = Path(path)
    if not file.is_file():
        err_console.print(f"[bold red]Error:[/bold red] {path} is not a file")
        raise typer.Exit(2)
    try:
        return file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        err_console.print(f"[bold red]Error:[/bold red] {path} is not valid UTF-8 ({e.reason} at byte {e.start})")
        raise typer.Exit(2)


def _print_report(final: FinalValidationReport) -> None:
    audit = build_audit(final)

    table = Table(title=f"Quality Report (revision {final.final_report.revision})")
    table.add_column("Stage", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Minimum", justify="right")
    table.add_column("Status")
    for stage in audit["stages"]:
        if stage["degraded"]:
            status = f"[red]degraded[/red] ({stage['degradedReason']})"
        elif stage["passed"]:
            status = "[green]pass[/green]"
        else:
            status = "[yellow]below minimum[/yellow]"
        minimum = "-" if stage["minimum"] is None else f"{stage['minimum']:.1f}"
        table.add_row(stage["stage"], f"{stage['score']:.1f}", f"{stage['weight']:.2f}", minimum, status)
    console.print(table)

    counts = audit["issueCounts"]["bySeverity"]
    console.print(
        f"Issues: {audit['issueCounts']['total']} "
        f"([bold red]{counts['high']} high[/bold red], "
        f"[yellow]{counts['medium']} medium[/yellow], {counts['low']} low)"
    )

    trajectory = " -> ".join(f"{step['overallScore']:.1f}" for step in audit["scoreTrajectory"])
    console.print(f"Score trajectory: {trajectory}")

    style = "bold green" if audit["approved"] else "bold red"
    console.print(
        f"\nDecision: [{style}]{audit['outcome']}[/{style}] "
        f"(overall {audit['overallScore']:.1f}, minimum {audit['minimumOverallScore']:.1f}, "
        f"{final.total_iterations} iteration(s))"
    )
    for line in audit["rationale"]:
        console.print(f"  - {line}")
    if audit["refinementError"]:
        console.print(f"[yellow]Refinement stopped:[/yellow] {audit['refinementError']}")

    if audit["recommendations"]:
        console.print("\n[bold]Recommendations[/bold]")
        for rec in audit["recommendations"]:
            console.print(f"  - {rec}")


# =============================================================================
# RUN
# =============================================================================


@app.command()
def run(
    path: str = typer.Argument(..., help="File to evaluate, or - for stdin"),
    audience: str = typer.Option(..., "--audience", "-a", help="Target audience"),
    tone: str = typer.Option(..., "--tone", "-t", help="Desired tone"),
    keyword: list[str] = typer.Option(..., "--keyword", "-k", help="Required keyword (repeatable)"),
    max_iterations: int = typer.Option(None, "--max-iterations", help="Decisions recorded per run"),
    force_refinement: bool = typer.Option(False, "--force-refinement", help="Refine once even if approved"),
    min_score: float = typer.Option(None, "--min-score", help="Minimum overall score for approval"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the final content here"),
):
    """Run content through analysis, approval and refinement."""
    content = _read_content(path)
    settings = get_settings()

    try:
        criteria = default_criteria(settings)
        if min_score is not None:
            criteria = dataclasses.replace(criteria, minimum_overall_score=min_score)
        options = PipelineOptions(
            force_refinement=force_refinement,
            max_refinement_iterations=max_iterations,
            approval_criteria=criteria,
        )
        requirements = {"targetAudience": audience, "tone": tone, "keywords": keyword}
        final = asyncio.run(QualityPipeline(settings=settings).run(content, requirements, options))
    except ValidationError as e:
        err_console.print(f"[bold red]Invalid input:[/bold red] {e}")
        raise typer.Exit(2)
    except QualityPipelineError as e:
        err_console.print(f"[bold red]Pipeline error ({e.code}):[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(final.to_dict(), indent=2))
    else:
        _print_report(final)

    if output is not None:
        output.write_text(final.final_content, encoding="utf-8")
        if not as_json:
            console.print(f"\nFinal content written to {output}")

    raise typer.Exit(0 if final.success else 1)


# =============================================================================
# DETECT
# =============================================================================


@app.command()
def detect(
    path: str = typer.Argument(..., help="File to check, or - for stdin"),
    fix: bool = typer.Option(False, "--fix", help="Print the corrected content"),
):
    """Find mechanical errors (spelling, grammar, punctuation, citations, links)."""
    content = _read_content(path)
    detector = ErrorDetectionCorrection()
    issues = detector.detect(content)

    if fix:
        typer.echo(detector.correct(content, issues), nl=False)
        return

    if not issues:
        console.print("[bold green]No errors found[/bold green]")
        return

    table = Table(title=f"Errors ({len(issues)})")
    table.add_column("Severity")
    table.add_column("Code", style="bold")
    table.add_column("Text")
    table.add_column("Suggestion")
    for issue in issues:
        style = SEVERITY_STYLES[issue.severity.value]
        table.add_row(f"[{style}]{issue.severity.value}[/{style}]", issue.code, issue.location, issue.suggestion)
    console.print(table)


# =============================================================================
# STATUS / SERVE
# =============================================================================


@app.command()
def status():
    """Print the pipeline status descriptor as JSON."""
    typer.echo(json.dumps(pipeline_status(get_settings()), indent=2))


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"[bold blue]content-quality {__version__}[/bold blue] serving on http://{host}:{port}")
    uvicorn.run("content_quality.api.gateway:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
