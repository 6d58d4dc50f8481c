"""
Console reporter for staging results.

Formats load reports, restore reports and store snapshots using Rich.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from footstage.errors import IssueKind
from footstage.etl.loader import LoadReport
from footstage.etl.pipeline import StoreSnapshot
from footstage.store.persistence import RestoreReport

# Per relation, how many issue lines to print before truncating
MAX_ISSUES_SHOWN = 10


class ConsoleReporter:
    """Formats and displays staging results to the console."""

    def __init__(self, console: Console) -> None:
        """
        Initialize console reporter.

        Args:
            console: Rich Console instance for output.
        """
        self.console = console

    def print_load_reports(self, reports: list[LoadReport]) -> None:
        """
        Print load reports as a table, followed by issue details.

        Args:
            reports: One report per loaded relation.
        """
        table = Table(title="Staging Results", show_header=True)
        table.add_column("Relation", style="cyan", no_wrap=True)
        table.add_column("Records", justify="right")
        table.add_column("Inserted", justify="right", style="green")
        table.add_column("Skipped", justify="right")
        table.add_column("Missing", justify="right")
        table.add_column("Invalid", justify="right")
        table.add_column("Duplicate", justify="right")
        table.add_column("Orphaned", justify="right")

        for report in reports:
            by_kind = report.counts_by_kind
            table.add_row(
                report.relation.value,
                str(report.n_records),
                str(report.inserted),
                self._format_skipped(report),
                self._format_count(by_kind[IssueKind.MISSING_FIELDS], "red"),
                self._format_count(by_kind[IssueKind.INVALID_VALUE], "red"),
                self._format_count(by_kind[IssueKind.DUPLICATE_RECORD], "yellow"),
                self._format_count(by_kind[IssueKind.REFERENTIAL_ERROR], "red"),
            )

        self.console.print(table)
        self._print_issues(reports)

    def print_snapshot(self, snapshot: StoreSnapshot) -> None:
        """Print per-relation row counts."""
        table = Table(title="Store Snapshot", show_header=True)
        table.add_column("Relation", style="cyan")
        table.add_column("Rows", justify="right", style="green")

        table.add_row("results", str(snapshot.results_count))
        table.add_row("goalscorers", str(snapshot.goalscorers_count))
        table.add_row("shootouts", str(snapshot.shootouts_count))
        table.add_row("former_names", str(snapshot.former_names_count))

        self.console.print(table)
        self.console.print(f"[dim]Taken at {snapshot.last_updated.isoformat()}[/dim]")

    def print_restore_report(self, report: RestoreReport) -> None:
        """Print restored/replaced/rejected counts per relation."""
        table = Table(
            title=f"Restore from {report.source.name} ({report.format.value})",
            show_header=True,
        )
        table.add_column("Relation", style="cyan")
        table.add_column("Restored", justify="right", style="green")
        table.add_column("Replaced", justify="right")
        table.add_column("Rejected", justify="right")

        for relation, counts in report.relations.items():
            table.add_row(
                relation.value,
                str(counts.restored),
                str(counts.replaced),
                self._format_count(counts.rejected, "red"),
            )
        self.console.print(table)

    @staticmethod
    def _format_count(n: int, color: str) -> str:
        if n == 0:
            return "[dim]0[/dim]"
        return f"[{color}]{n}[/{color}]"

    @staticmethod
    def _format_skipped(report: LoadReport) -> str:
        if report.silent_skips:
            return f"{report.skipped} [dim]({report.silent_skips} silent)[/dim]"
        return str(report.skipped)

    def _print_issues(self, reports: list[LoadReport]) -> None:
        """
        Print the first issues of each relation.

        Args:
            reports: Load reports.
        """
        with_issues = [r for r in reports if r.issues]
        if not with_issues:
            return

        self.console.print()
        self.console.print("[bold red]Record Issues:[/bold red]")

        for report in with_issues:
            self.console.print()
            self.console.print(
                f"[bold]{report.relation.value}[/bold] "
                f"({len(report.errors)} errors, {len(report.warnings)} warnings)"
            )
            if report.source is not None:
                self.console.print(f"  File: {report.source}")
            for issue in report.issues[:MAX_ISSUES_SHOWN]:
                color = "yellow" if issue.severity == "warning" else "red"
                self.console.print(
                    f"  [{color}]line {issue.line}[/{color}] {issue.kind.value}: {escape(issue.message)}",
                    highlight=False,
                )
            hidden = len(report.issues) - MAX_ISSUES_SHOWN
            if hidden > 0:
                self.console.print(f"  [dim]... {hidden} more[/dim]")
