"""
Reporting and output formatting for enrichment results.

Console output uses Rich tables; markdown and JSON renderings are plain
strings suitable for files or CI logs.
"""

import json
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .enrichment import EnrichmentReport, EnrichmentResult

NO_REPOSITORY = "No repository information"
NO_SCORE = "Not available"


def format_repository(result: EnrichmentResult) -> str:
    return result.repository if result.repository is not None else NO_REPOSITORY


def format_score(result: EnrichmentResult) -> str:
    if result.error is not None:
        return f"Error: {result.error}"
    if result.security_score is None:
        return NO_SCORE
    return f"{result.security_score:.1f}"


def _score_style(score: Optional[float]) -> str:
    if score is None:
        return "dim"
    if score >= 7.0:
        return "green"
    if score >= 4.0:
        return "yellow"
    return "red"


class ScorecardReporter:
    """Formats and displays enrichment results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_report(
        self, report: EnrichmentReport, source: str, verbose: bool = False
    ) -> None:
        """
        Print an enrichment report as a Rich table.

        Args:
            report: The report to display
            source: Where the dependency list came from
            verbose: Also print per-item lookup diagnostics
        """
        self.console.print()
        self.console.print(
            Panel(
                f"🔍 Scorecard results for {source}",
                title="[bold blue]Cargo Scorecard[/bold blue]",
                border_style="blue",
            )
        )

        if not report.results:
            self.console.print("ℹ️  No dependencies to report.", style="yellow")
            return

        self._print_results(report.results)

        if verbose and report.errors:
            self._print_errors([str(error) for error in report.errors])

        self._print_footer(report)

    def _print_results(self, results: Sequence[EnrichmentResult]) -> None:
        table = Table(box=box.ROUNDED)
        table.add_column("Crate Name", style="bold")
        table.add_column("Version")
        table.add_column("Repository URL")
        table.add_column("Security Score", justify="right")

        for result in results:
            repository = escape(format_repository(result))
            if result.repository is None:
                repository = f"[dim]{repository}[/dim]"
            style = "red" if result.error else _score_style(result.security_score)
            table.add_row(
                escape(result.name),
                escape(result.version),
                repository,
                f"[{style}]{escape(format_score(result))}[/{style}]",
            )

        self.console.print(table)

    def _print_errors(self, errors: List[str]) -> None:
        error_text = "\n".join(f"• {escape(error)}" for error in errors)
        self.console.print(
            Panel(
                error_text,
                title="[bold yellow]⚠️  Lookup Errors[/bold yellow]",
                border_style="yellow",
            )
        )

    def _print_footer(self, report: EnrichmentReport) -> None:
        duration_seconds = report.duration_ms / 1000
        summary = (
            f"Scored {len(report.scored_results)} of {report.total_dependencies} "
            f"dependencies in {duration_seconds:.2f} seconds"
        )
        if report.average_score is not None:
            summary += f" (average {report.average_score:.1f})"
        self.console.print(f"\n[dim]{summary}[/dim]")


def render_markdown(results: Sequence[EnrichmentResult]) -> str:
    """Render results as a markdown table."""
    lines = [
        "## Cargo Scorecard Results",
        "",
        "| Crate Name | Version | Repository URL | Security Score |",
        "| --- | --- | --- | --- |",
    ]
    for result in results:
        lines.append(
            f"| {result.name} | {result.version} | "
            f"{format_repository(result)} | {format_score(result)} |"
        )
    return "\n".join(lines) + "\n"


def render_json(report: EnrichmentReport) -> str:
    """Render a report as pretty-printed JSON."""
    average = report.average_score
    data = {
        "total_dependencies": report.total_dependencies,
        "duration_ms": report.duration_ms,
        "summary": {
            "scored": len(report.scored_results),
            "missing_repository": len(report.missing_repository),
            "failed": len(report.failed_items),
            "average_score": round(average, 2) if average is not None else None,
        },
        "results": [
            {
                "name": result.name,
                "version": result.version,
                "repository": result.repository,
                "security_score": result.security_score,
                **({"error": result.error} if result.error is not None else {}),
            }
            for result in report.results
        ],
    }
    if report.errors:
        data["lookup_errors"] = [
            {
                "dependency": error.dependency,
                "stage": error.stage,
                "kind": error.error.kind,
                "message": str(error.error),
            }
            for error in report.errors
        ]
    return json.dumps(data, indent=2, ensure_ascii=False)
