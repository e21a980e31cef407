"""atomtrace CLI: top-level command group."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from atomtrace import __version__
from atomtrace.adapters.coverage import CoverageFormatError
from atomtrace.config import AtomtraceConfig, load_config, validate_config
from atomtrace.memory.coverage_store import CoverageStore, ingest_coverage
from atomtrace.memory.metrics_history import TREND_PERIODS, MetricsHistory
from atomtrace.memory.record_store import RecordLoadError, load_records
from atomtrace.metrics.coupling import LinkageIndex, compute_coupling_metrics
from atomtrace.metrics.epistemic import compute_epistemic_metrics
from atomtrace.models.coverage import CoverageFormat
from atomtrace.models.records import RecordSnapshot
from atomtrace.reporters.terminal import reporter

logger = logging.getLogger(__name__)
console = Console()

_path_option = click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)

_json_option = click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output results as JSON.",
)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config_or_abort(path: str) -> AtomtraceConfig:
    try:
        return load_config(path)
    except (yaml.YAMLError, ValueError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _coverage_store(config: AtomtraceConfig) -> CoverageStore:
    return CoverageStore(config.root_path, coverage_dir=config.storage.coverage_dir)


def _metrics_history(config: AtomtraceConfig) -> MetricsHistory:
    return MetricsHistory(config.root_path, history_dir=config.storage.history_dir)


def _project_scope(config: AtomtraceConfig, project_id: str | None) -> str | None:
    return project_id or config.project.project_id or None


def _load_records_or_abort(config: AtomtraceConfig, records: str | None) -> RecordSnapshot:
    records_path = config.resolve_records_file(records)
    if records_path is None:
        reporter.print_error(
            "No records file given. Pass RECORDS or set metrics.records_file in .atomtrace.yml."
        )
        raise click.Abort
    try:
        return load_records(records_path)
    except RecordLoadError as e:
        reporter.print_error(str(e))
        raise click.Abort from e


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show informational log messages.")
@click.version_option(version=__version__, prog_name="atomtrace")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """atomtrace: Intent Atom traceability and trust metrics."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


# ── coverage ─────────────────────────────────────────────────────


@cli.group("coverage")
def coverage_group() -> None:
    """Ingest and inspect coverage reports."""


@coverage_group.command("upload")
@click.argument("report_file", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option(
    "--format",
    "format_name",
    type=click.Choice([f.value for f in CoverageFormat]),
    default=None,
    help="Label to store instead of the detected format.",
)
@click.option("--project-id", default=None, help="Project identifier for the report.")
@click.option("--commit", "commit_hash", default=None, help="Commit hash the report belongs to.")
@click.option("--branch", "branch_name", default=None, help="Branch the report belongs to.")
@_path_option
@_json_option
def coverage_upload(
    report_file: str,
    format_name: str | None,
    project_id: str | None,
    commit_hash: str | None,
    branch_name: str | None,
    path: str,
    *,
    as_json: bool,
) -> None:
    """Normalize an lcov, Istanbul JSON or Cobertura XML report and store it.

    Example:
      atomtrace coverage upload coverage/lcov.info --branch main
    """
    config = _load_config_or_abort(path)
    try:
        content = Path(report_file).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        reporter.print_error(f"Unable to parse coverage report: invalid UTF-8 ({e.reason})")
        raise click.Abort from e
    except OSError as e:
        reporter.print_error(f"Failed to read coverage report: {e}")
        raise click.Abort from e

    try:
        report = ingest_coverage(
            _coverage_store(config),
            content,
            format=format_name,
            project_id=_project_scope(config, project_id),
            commit_hash=commit_hash,
            branch_name=branch_name,
            metadata={"source_file": report_file},
        )
    except CoverageFormatError as e:
        reporter.print_error(str(e))
        raise click.Abort from e
    except OSError as e:
        reporter.print_error(f"Failed to store coverage report: {e}")
        raise click.Abort from e

    if as_json:
        _echo_json(report.to_dict())
        return

    reporter.print_success(f"Stored {report.format.value} coverage report {report.id}")
    reporter.print_coverage_report(report, show_files=False)


@coverage_group.command("latest")
@click.option("--project-id", default=None, help="Restrict to one project.")
@_path_option
@_json_option
def coverage_latest(project_id: str | None, path: str, *, as_json: bool) -> None:
    """Show the most recently stored coverage report."""
    config = _load_config_or_abort(path)
    report = _coverage_store(config).get_latest(_project_scope(config, project_id))
    if report is None:
        reporter.print_warning("No coverage reports stored yet.")
        raise click.Abort

    if as_json:
        _echo_json(report.to_dict())
    else:
        reporter.print_coverage_report(report)


@coverage_group.command("show")
@click.argument("report_id")
@_path_option
@_json_option
def coverage_show(report_id: str, path: str, *, as_json: bool) -> None:
    """Show a stored coverage report by id."""
    config = _load_config_or_abort(path)
    report = _coverage_store(config).get_by_id(report_id)
    if report is None:
        reporter.print_error(f"Coverage report not found: {report_id}")
        raise click.Abort

    if as_json:
        _echo_json(report.to_dict())
    else:
        reporter.print_coverage_report(report)


@coverage_group.command("history")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Page size.")
@click.option("--offset", type=click.IntRange(min=0), default=0, help="Reports to skip.")
@click.option("--project-id", default=None, help="Restrict to one project.")
@_path_option
@_json_option
def coverage_history(
    limit: int | None, offset: int, project_id: str | None, path: str, *, as_json: bool
) -> None:
    """List stored coverage reports, newest first."""
    config = _load_config_or_abort(path)
    reports, total = _coverage_store(config).get_history(
        _project_scope(config, project_id),
        limit=limit or config.storage.history_page_size,
        offset=offset,
    )

    if as_json:
        _echo_json({"reports": [r.to_dict() for r in reports], "total": total})
        return

    if total == 0:
        reporter.print_info("No coverage reports stored yet.")
        return
    reporter.print_coverage_history(reports, total)


@coverage_group.command("file")
@click.argument("file_path")
@click.option("--project-id", default=None, help="Restrict to one project.")
@_path_option
@_json_option
def coverage_file(file_path: str, project_id: str | None, path: str, *, as_json: bool) -> None:
    """Show one file's coverage from the latest report (exact path match)."""
    config = _load_config_or_abort(path)
    file_cov = _coverage_store(config).get_file_coverage(
        file_path, _project_scope(config, project_id)
    )
    if file_cov is None:
        reporter.print_error(f"No coverage for {file_path} in the latest report")
        raise click.Abort

    if as_json:
        _echo_json(file_cov.to_dict())
    else:
        reporter.print_file_coverage(file_cov)


# ── metrics ──────────────────────────────────────────────────────


@cli.group("metrics")
def metrics_group() -> None:
    """Compute and track coupling and epistemic metrics."""


_records_argument = click.argument("records", required=False)


@metrics_group.command("coupling")
@_records_argument
@_path_option
@_json_option
def metrics_coupling(records: str | None, path: str, *, as_json: bool) -> None:
    """Atom/test/code coupling rates and coupling strength."""
    config = _load_config_or_abort(path)
    snapshot = _load_records_or_abort(config, records)
    metrics = compute_coupling_metrics(snapshot.atoms, snapshot.tests, snapshot.recommendations)

    if as_json:
        _echo_json(metrics.to_dict())
    else:
        reporter.print_coupling_metrics(metrics)


@metrics_group.command("epistemic")
@_records_argument
@_path_option
@_json_option
def metrics_epistemic(records: str | None, path: str, *, as_json: bool) -> None:
    """Proven / committed / inferred / unknown stack and certainty."""
    config = _load_config_or_abort(path)
    snapshot = _load_records_or_abort(config, records)
    latest = _coverage_store(config).get_latest(_project_scope(config, None))
    metrics = compute_epistemic_metrics(
        snapshot.atoms, snapshot.tests, snapshot.recommendations, latest
    )

    if as_json:
        _echo_json(metrics.to_dict())
    else:
        reporter.print_epistemic_metrics(metrics)


@metrics_group.command("snapshot")
@_records_argument
@_path_option
@_json_option
def metrics_snapshot(records: str | None, path: str, *, as_json: bool) -> None:
    """Record today's metrics snapshot (re-running overwrites today's entry)."""
    config = _load_config_or_abort(path)
    snapshot = _load_records_or_abort(config, records)
    latest = _coverage_store(config).get_latest(_project_scope(config, None))

    index = LinkageIndex.build(snapshot.tests, snapshot.recommendations)
    coupling = compute_coupling_metrics(
        snapshot.atoms, snapshot.tests, snapshot.recommendations, index=index
    )
    epistemic = compute_epistemic_metrics(
        snapshot.atoms, snapshot.tests, snapshot.recommendations, latest, index=index
    )
    stored = _metrics_history(config).record_snapshot(coupling, epistemic, snapshot.tests, latest)

    if as_json:
        _echo_json(stored.to_dict())
        return
    reporter.print_success(f"Recorded metrics snapshot for {stored.snapshot_date}")


@metrics_group.command("trends")
@click.option(
    "--period",
    type=click.Choice(list(TREND_PERIODS)),
    default=None,
    help="Trend window (defaults to metrics.trend_period).",
)
@_path_option
@_json_option
def metrics_trends(period: str | None, path: str, *, as_json: bool) -> None:
    """Show stored snapshots for the last week, month or quarter."""
    config = _load_config_or_abort(path)
    chosen = period or config.metrics.trend_period
    try:
        snapshots = _metrics_history(config).get_trends(chosen)
    except ValueError as e:
        reporter.print_error(str(e))
        raise click.Abort from e

    if as_json:
        _echo_json([s.to_dict() for s in snapshots])
        return

    if not snapshots:
        reporter.print_info(f"No metrics snapshots in the last {chosen}.")
        return
    reporter.print_snapshot_trends(snapshots, chosen)


@metrics_group.command("latest")
@_path_option
@_json_option
def metrics_latest(path: str, *, as_json: bool) -> None:
    """Show the most recent metrics snapshot."""
    config = _load_config_or_abort(path)
    latest = _metrics_history(config).get_latest()
    if latest is None:
        reporter.print_warning("No metrics snapshots recorded yet.")
        raise click.Abort

    if as_json:
        _echo_json(latest.to_dict())
    else:
        reporter.print_snapshot_trends([latest], latest.snapshot_date)


# ── config ───────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Inspect `.atomtrace.yml` configuration."""


def _config_to_dict(config: AtomtraceConfig) -> dict[str, Any]:
    result = asdict(config)
    result.pop("raw", None)
    return result


@config_group.command("show")
@_path_option
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    config = _load_config_or_abort(path)
    config_dict = _config_to_dict(config)

    if as_json:
        _echo_json(config_dict)
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@_path_option
def config_validate(path: str) -> None:
    """Validate `.atomtrace.yml`.

    Example:
      atomtrace config validate
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    console.print(
        "[dim]Fix these errors in .atomtrace.yml and run 'atomtrace config validate' again.[/dim]"
    )
    raise click.Abort


if __name__ == "__main__":
    cli()
