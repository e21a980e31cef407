"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from atomtrace.memory.metrics_history import MetricsSnapshot
    from atomtrace.metrics.coupling import CouplingMetrics
    from atomtrace.metrics.epistemic import EpistemicMetrics
    from atomtrace.models.coverage import CoverageReport, DimensionSummary, FileCoverage

console = Console()

_HIGH_COVERAGE = 80.0
_MEDIUM_COVERAGE = 50.0

# Display limits for truncation
_MAX_FILES_DISPLAY = 25
_MAX_ORPHANS_DISPLAY = 10
_MAX_UNCOVERED_LINES_DISPLAY = 15
_MAX_DESCRIPTION_LENGTH = 50


def _coverage_color(percentage: float) -> str:
    """Return a Rich color name for a percentage in ``[0, 100]``."""
    if percentage >= _HIGH_COVERAGE:
        return "green"
    if percentage >= _MEDIUM_COVERAGE:
        return "yellow"
    return "red"


def _pct_cell(percentage: float) -> str:
    style = _coverage_color(percentage)
    return f"[{style}]{percentage:.2f}%[/{style}]"


def _ratio_cell(ratio: float) -> str:
    return _pct_cell(ratio * 100)


def _dimension_cell(dim: DimensionSummary) -> str:
    return f"{_pct_cell(dim.pct)} [dim]({dim.covered}/{dim.total})[/dim]"


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class CLIReporter:
    """Rich terminal output for coverage reports and trust metrics."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    # ── Coverage ───────────────────────────────────────────────────────

    def print_coverage_report(self, report: CoverageReport, *, show_files: bool = True) -> None:
        """Print a report's metadata, its summary and (optionally) per-file rows."""
        meta = [f"[bold]id[/bold] {report.id}", f"[bold]format[/bold] {report.format.value}"]
        if report.project_id:
            meta.append(f"[bold]project[/bold] {report.project_id}")
        if report.commit_hash:
            meta.append(f"[bold]commit[/bold] {report.commit_hash}")
        if report.branch_name:
            meta.append(f"[bold]branch[/bold] {report.branch_name}")
        meta.append(f"[bold]created[/bold] {report.created_at}")
        self.console.print(Panel("\n".join(meta), title="Coverage Report", border_style="cyan"))

        table = Table(title="Coverage Summary", title_style="bold cyan")
        table.add_column("Dimension", style="bold")
        table.add_column("Coverage", justify="right")
        for name, dim in (
            ("Statements", report.summary.statements),
            ("Branches", report.summary.branches),
            ("Functions", report.summary.functions),
            ("Lines", report.summary.lines),
        ):
            table.add_row(name, _dimension_cell(dim))
        self.console.print(table)

        if show_files and report.files:
            self.print_file_table(report.files)

    def print_file_table(self, files: list[FileCoverage]) -> None:
        """Print per-file coverage, lowest line coverage first."""
        table = Table(title="Files", title_style="bold cyan")
        table.add_column("File", style="bold")
        table.add_column("Lines", justify="right")
        table.add_column("Branches", justify="right")
        table.add_column("Functions", justify="right")

        ordered = sorted(files, key=lambda f: f.lines.pct)
        for file_cov in ordered[:_MAX_FILES_DISPLAY]:
            table.add_row(
                file_cov.file_path,
                _pct_cell(file_cov.lines.pct),
                _pct_cell(file_cov.branches.pct),
                _pct_cell(file_cov.functions.pct),
            )
        self.console.print(table)
        if len(files) > _MAX_FILES_DISPLAY:
            self.print_info(f"... and {len(files) - _MAX_FILES_DISPLAY} more files")

    def print_file_coverage(self, file_cov: FileCoverage) -> None:
        """Print a single file's dimensions and uncovered lines."""
        table = Table(title=file_cov.file_path, title_style="bold cyan")
        table.add_column("Dimension", style="bold")
        table.add_column("Coverage", justify="right")
        table.add_row("Statements", _dimension_cell(file_cov.statements))
        table.add_row("Branches", _dimension_cell(file_cov.branches))
        table.add_row("Functions", _dimension_cell(file_cov.functions))
        table.add_row("Lines", _dimension_cell(file_cov.lines))
        self.console.print(table)

        if file_cov.uncovered_lines:
            head = file_cov.uncovered_lines[:_MAX_UNCOVERED_LINES_DISPLAY]
            shown = ", ".join(str(n) for n in head)
            extra = len(file_cov.uncovered_lines) - _MAX_UNCOVERED_LINES_DISPLAY
            suffix = f" [dim](+{extra} more)[/dim]" if extra > 0 else ""
            self.console.print(f"[red]Uncovered lines:[/red] {shown}{suffix}")

    def print_coverage_history(self, reports: list[CoverageReport], total: int) -> None:
        table = Table(
            title=f"Coverage History ({len(reports)} of {total})", title_style="bold cyan"
        )
        table.add_column("Created", style="dim")
        table.add_column("ID")
        table.add_column("Format")
        table.add_column("Branch")
        table.add_column("Lines", justify="right")
        table.add_column("Branches", justify="right")

        for report in reports:
            table.add_row(
                report.created_at,
                report.id,
                report.format.value,
                report.branch_name or "-",
                _pct_cell(report.summary.lines.pct),
                _pct_cell(report.summary.branches.pct),
            )
        self.console.print(table)

    # ── Metrics ────────────────────────────────────────────────────────

    def print_coupling_metrics(self, metrics: CouplingMetrics) -> None:
        """Print the three coupling rates, coupling strength and orphans."""
        atc = metrics.atom_test_coupling
        tac = metrics.test_atom_coupling
        cac = metrics.code_atom_coverage

        table = Table(title="Coupling", title_style="bold cyan")
        table.add_column("Direction", style="bold")
        table.add_column("Matched", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Rate", justify="right")
        table.add_row(
            "Atoms → Tests", str(atc.atoms_with_tests), str(atc.total_atoms), _ratio_cell(atc.rate)
        )
        table.add_row(
            "Tests → Atoms", str(tac.tests_with_atoms), str(tac.total_tests), _ratio_cell(tac.rate)
        )
        table.add_row(
            "Test files → Atoms",
            str(cac.files_with_atoms),
            str(cac.total_source_files),
            _ratio_cell(cac.rate),
        )
        self.console.print(table)

        dist = atc.strength_distribution
        self.console.print(
            f"Average coupling strength: [bold]{atc.average_coupling_strength:.2f}[/bold]  "
            f"[green]strong {dist.strong}[/green] · "
            f"[yellow]moderate {dist.moderate}[/yellow] · "
            f"[red]weak {dist.weak}[/red]"
        )

        if atc.orphan_atoms:
            orphans = Table(title="Orphan Atoms", title_style="bold yellow")
            orphans.add_column("Atom", style="bold")
            orphans.add_column("Description")
            for atom in atc.orphan_atoms[:_MAX_ORPHANS_DISPLAY]:
                orphans.add_row(atom.atom_id, _truncate(atom.description, _MAX_DESCRIPTION_LENGTH))
            self.console.print(orphans)
            if len(atc.orphan_atoms) > _MAX_ORPHANS_DISPLAY:
                self.print_info(
                    f"... and {len(atc.orphan_atoms) - _MAX_ORPHANS_DISPLAY} more orphan atoms"
                )

        if tac.orphan_tests:
            orphans = Table(title="Orphan Tests", title_style="bold yellow")
            orphans.add_column("File", style="bold")
            orphans.add_column("Test")
            for test in tac.orphan_tests[:_MAX_ORPHANS_DISPLAY]:
                orphans.add_row(test.file_path, test.test_name)
            self.console.print(orphans)
            if len(tac.orphan_tests) > _MAX_ORPHANS_DISPLAY:
                self.print_info(
                    f"... and {len(tac.orphan_tests) - _MAX_ORPHANS_DISPLAY} more orphan tests"
                )

    def print_epistemic_metrics(self, metrics: EpistemicMetrics) -> None:
        """Print the epistemic stack and its refinements."""
        table = Table(title="Epistemic Stack", title_style="bold cyan")
        table.add_column("Level", style="bold")
        table.add_column("Count", justify="right")
        table.add_column("Share", justify="right")
        for label, level in (
            ("[green]Proven[/green]", metrics.proven),
            ("Committed", metrics.committed),
            ("Inferred", metrics.inferred),
        ):
            table.add_row(label, str(level.count), f"{level.percentage * 100:.2f}%")
        table.add_section()
        table.add_row("[dim]Orphan tests[/dim]", str(metrics.unknown.orphan_tests_count), "-")
        table.add_row(
            "[dim]Uncovered test files[/dim]", str(metrics.unknown.uncovered_code_files_count), "-"
        )
        self.console.print(table)

        self.console.print(
            f"Total certainty: [bold]{metrics.total_certainty:.2f}[/bold]  "
            f"Quality-weighted: [bold]{metrics.quality_weighted_certainty:.2f}[/bold]"
        )

        breakdown = metrics.proven_breakdown
        self.console.print(
            f"Proven confidence: [green]high {breakdown.high_confidence.count}[/green] · "
            f"[yellow]medium {breakdown.medium_confidence.count}[/yellow] · "
            f"[red]low {breakdown.low_confidence.count}[/red]"
        )

        depth = metrics.coverage_depth
        self.console.print(
            f"Coverage depth: {depth.atoms_with_coverage} atoms covered "
            f"(avg {depth.average_coverage_depth:.2f}%), "
            f"{depth.atoms_without_coverage} without coverage"
        )

    def print_snapshot_trends(self, snapshots: list[MetricsSnapshot], period: str) -> None:
        table = Table(title=f"Metrics Trends ({period})", title_style="bold cyan")
        table.add_column("Date", style="bold")
        table.add_column("Certainty", justify="right")
        table.add_column("Quality-weighted", justify="right")
        table.add_column("Coupling strength", justify="right")
        table.add_column("Line coverage", justify="right")

        for snapshot in snapshots:
            additional = snapshot.additional_metrics or {}
            coverage = additional.get("coverage") or {}
            lines_pct = coverage.get("lines")
            table.add_row(
                snapshot.snapshot_date,
                f"{snapshot.epistemic_metrics.get('total_certainty', 0):.2f}",
                f"{additional.get('quality_weighted_certainty', 0):.2f}",
                f"{additional.get('average_coupling_strength', 0):.2f}",
                _pct_cell(lines_pct) if isinstance(lines_pct, (int, float)) else "-",
            )
        self.console.print(table)


# Singleton instance for easy import
reporter = CLIReporter()
