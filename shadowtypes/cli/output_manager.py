"""
Output manager for the CLI: rich tables on a terminal, JSON or Markdown otherwise.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.reporting import FAIL, PASS, WARN, ViolationReport, render_markdown, render_text


class OutputFormat(Enum):
    """Supported output formats."""
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


STATUS_STYLES = {
    PASS: "green",
    FAIL: "bold red",
    WARN: "yellow",
}


class OutputManager:
    """Renders reports and messages for one CLI invocation."""

    def __init__(
        self,
        output_format: OutputFormat = OutputFormat.TEXT,
        output_file: Optional[Path] = None,
        verbose: int = 0,
    ):
        """
        Initialize output manager.

        Args:
            output_format: Output format
            output_file: Optional file to write the report to
            verbose: Verbosity count from the command line
        """
        self.output_format = output_format
        self.output_file = output_file
        self.verbose = verbose
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def error(self, message: str):
        """Errors always go to stderr."""
        self.err_console.print(f"[bold red]error:[/bold red] {escape(message)}")

    def output_report(self, report: ViolationReport):
        """Write the report in the selected format."""
        if self.output_format == OutputFormat.JSON:
            self._emit(report.to_json())
        elif self.output_format == OutputFormat.MARKDOWN:
            self._emit(render_markdown(report))
        elif self.output_file is not None:
            self._emit(render_text(report))
        else:
            self._output_report_rich(report)

    def _emit(self, text: str):
        if self.output_file is not None:
            self.output_file.parent.mkdir(parents=True, exist_ok=True)
            self.output_file.write_text(text + "\n", encoding="utf-8")
            self.err_console.print(f"Report written to {self.output_file}")
        else:
            click.echo(text)

    def _output_report_rich(self, report: ViolationReport):
        summary = Table(title="Shadow type analysis", show_header=True, header_style="bold magenta", box=box.SIMPLE)
        summary.add_column("Concept", style="cyan", no_wrap=True)
        summary.add_column("Severity")
        summary.add_column("Status", justify="center")
        summary.add_column("Count", justify="right")
        for concept, result in report.results.items():
            style = STATUS_STYLES.get(result.status, "white")
            summary.add_row(
                concept,
                result.severity.value,
                f"[{style}]{result.status}[/{style}]",
                str(len(result.violations)),
            )
        self.console.print(summary)

        for concept, result in report.results.items():
            if not result.violations:
                continue
            table = Table(title=concept, show_header=True, header_style="bold", box=box.MINIMAL)
            table.add_column("Declarations", style="yellow")
            table.add_column("Reason", style="white")
            for violation in result.violations:
                table.add_row(
                    escape("\n".join(f"{d.qualified_name} ({d.location})" for d in violation.declarations)),
                    escape(violation.reason),
                )
            self.console.print(table)

        if report.skipped and self.verbose:
            skipped = Table(title="Skipped during extraction", box=box.MINIMAL)
            skipped.add_column("Path", style="yellow")
            skipped.add_column("Kind")
            skipped.add_column("Reason")
            for item in report.skipped:
                skipped.add_row(
                    escape(f"{item.path}:{item.line}" if item.line else item.path),
                    item.kind,
                    escape(item.reason),
                )
            self.console.print(skipped)

        verdict = "[green]PASS[/green]" if report.passed else "[bold red]FAIL[/bold red]"
        self.console.print(Panel(
            f"{verdict}  files: [bold]{report.files_scanned}[/bold]  "
            f"declarations: [bold]{report.declarations_scanned}[/bold]  "
            f"violations: [bold]{len(report.violations)}[/bold]  "
            f"suppressed: [bold]{len(report.suppressed)}[/bold]  "
            f"skipped: [bold]{len(report.skipped)}[/bold]",
            title="Summary",
            border_style="blue" if report.passed else "red",
        ))
