"""Typer CLI entrypoint for interview panel management."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pendulum
import typer
from pydantic import ValidationError

from . import __version__
from .config import ConfigManager
from .container import create_container
from .errors import EngineError
from .logging import configure_logging
from .schemas import Scope
from .schemas.config import load_config
from .workflow import InterviewWorkflow, OutputWriter

app = typer.Typer(help="Interview panel allocation and scoring CLI.")

CONSENT_PROMPT = (
    "Forwarded interview records can no longer be edited. "
    "Have the marks been verified?"
)

RecordsOption = typer.Option(
    ..., exists=True, readable=True, dir_okay=False, help="Examination records JSON path."
)
DepartmentOption = typer.Option(None, help="Department (program) to operate on.")
FacultyOption = typer.Option(None, help="Faculty (institution) of the department.")
ConfigOption = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path.")
LogLevelOption = typer.Option("WARNING", help="Log level for structured logging.")
AuditLogOption = typer.Option(None, dir_okay=False, help="Audit log output (JSONL).")
EvaluatorOption = typer.Option(
    ...,
    "--evaluator",
    "-e",
    help='Evaluator as "name | designation | affiliation"; repeat for up to three.',
)


def _open_workflow(
    records: Path,
    department: Optional[str],
    faculty: Optional[str],
    config: Optional[Path],
    log_level: str,
    audit_log: Optional[Path],
) -> InterviewWorkflow:
    raw = ConfigManager.load_file(config) if config else {}
    try:
        app_config = load_config(raw)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid config file: {exc}", param_hint="--config") from exc

    configure_logging(log_level)

    department = department or app_config.scope.department
    faculty = faculty or app_config.scope.faculty
    if not department:
        raise typer.BadParameter(
            "A department is required (option or config scope)", param_hint="--department"
        )

    container = create_container(
        settings=app_config.to_settings(),
        records=records,
        scope=Scope(department=department, faculty=faculty),
        audit_log=audit_log,
    )
    workflow = container.workflow()
    workflow.load()
    return workflow


def _parse_evaluators(values: List[str]) -> list[dict[str, str]]:
    evaluators: list[dict[str, str]] = []
    for value in values:
        parts = [part.strip() for part in value.split("|")]
        parts += [""] * (3 - len(parts))
        evaluators.append(
            {"name": parts[0], "designation": parts[1], "affiliation": parts[2]}
        )
    return evaluators


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _echo_sizes(workflow: InterviewWorkflow) -> None:
    for panel_id, ids in workflow.assignments.items():
        typer.echo(f"Panel {panel_id}: {len(ids)} scholar(s)")


@app.command()
def allocate(
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Rebalance scholars across the existing panels."""
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        if not workflow.panels:
            raise _fail(EngineError("No panels exist yet; add one with add-panel"))
        result = workflow.allocate()
        _echo_sizes(workflow)
        for warning in result.plan.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        if not result.ok:
            raise _fail(EngineError(f"{len(result.failures)} panel(s) could not be saved"))
    finally:
        workflow.close()


@app.command("add-panel")
def add_panel(
    evaluator: List[str] = EvaluatorOption,
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Create a panel and redistribute scholars."""
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        panel = workflow.create_panel(_parse_evaluators(evaluator))
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()
    typer.echo(f"Created {panel.label} with {len(panel.evaluators)} evaluator(s).")
    _echo_sizes(workflow)


@app.command("edit-panel")
def edit_panel(
    panel_id: int = typer.Argument(..., help="Panel number."),
    evaluator: List[str] = EvaluatorOption,
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Replace the evaluators of a panel."""
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        panel = workflow.update_panel(panel_id, _parse_evaluators(evaluator))
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()
    typer.echo(f"Updated {panel.label}.")


@app.command("remove-panel")
def remove_panel(
    panel_id: int = typer.Argument(..., help="Panel number."),
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Remove a panel, renumber the rest and redistribute scholars."""
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        workflow.remove_panel(panel_id)
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()
    typer.echo(f"Removed Panel {panel_id}.")
    _echo_sizes(workflow)


@app.command()
def score(
    candidate_id: str = typer.Argument(..., help="Examination record id."),
    marks: List[str] = typer.Argument(..., help="Marks per evaluator (0-30 or Ab)."),
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Record evaluator marks for one scholar."""
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        updated = workflow.record_marks(candidate_id, marks)
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()
    if updated is None:
        raise _fail(EngineError(f"Marks for {candidate_id} were not saved"))
    typer.echo(f"Saved marks for {updated.name} ({updated.id}): average {updated.average}")


@app.command()
def forward(
    candidate_id: Optional[str] = typer.Argument(None, help="Examination record id."),
    panel: Optional[int] = typer.Option(None, help="Forward every scholar of this panel."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Acknowledge that forwarding is final."),
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
    audit_log: Optional[Path] = AuditLogOption,
) -> None:
    """Forward interview records to the faculty; they become read-only."""
    if (candidate_id is None) == (panel is None):
        raise typer.BadParameter("Give either a record id or --panel", param_hint="--panel")

    consent = yes or typer.confirm(CONSENT_PROMPT, default=False)
    workflow = _open_workflow(records, department, faculty, config, log_level, audit_log)
    try:
        if candidate_id is not None:
            forwarded = workflow.forward(candidate_id, consent=consent)
            typer.echo(f"Forwarded {forwarded.id} to {forwarded.destination}.")
            return

        report = workflow.forward_panel(panel, consent=consent)
        typer.echo(
            f"Panel {panel}: {len(report.succeeded)} forwarded, {len(report.failed)} failed."
        )
        for failed_id, error in report.failed.items():
            typer.echo(f"  {failed_id}: {error}", err=True)
        if report.failed:
            raise typer.Exit(code=1)
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()


@app.command()
def roster(
    panel: Optional[int] = typer.Option(None, help="Only show this panel."),
    output: Optional[Path] = typer.Option(
        None, dir_okay=False, resolve_path=True, help="Write the rosters as JSON."
    ),
    records: Path = RecordsOption,
    department: Optional[str] = DepartmentOption,
    faculty: Optional[str] = FacultyOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show panel rosters with marks and averages."""
    workflow = _open_workflow(records, department, faculty, config, log_level, None)
    try:
        rosters = {panel: workflow.roster(panel)} if panel is not None else workflow.rosters()
    except EngineError as exc:
        raise _fail(exc) from exc
    finally:
        workflow.close()

    for panel_id, entries in rosters.items():
        typer.echo(f"{workflow.registry.get(panel_id).label} ({len(entries)} scholar(s))")
        for entry in entries:
            marks = ", ".join(str(mark) if mark is not None else "-" for mark in entry.marks)
            status = " [forwarded]" if entry.candidate.forwarded else ""
            average = entry.average if entry.average is not None else "-"
            typer.echo(f"  {entry.candidate.id}  {entry.candidate.name}  [{marks}] -> {average}{status}")

    if output:
        scope = workflow.context.scope
        OutputWriter().write(
            output,
            {
                "metadata": {
                    "department": scope.department,
                    "faculty": scope.faculty,
                    "timestamp": pendulum.now().to_iso8601_string(),
                    "app_version": __version__,
                },
                "panels": [
                    {
                        "panel": workflow.registry.get(panel_id).model_dump(mode="json"),
                        "scholars": [entry.to_dict() for entry in entries],
                    }
                    for panel_id, entries in rosters.items()
                ],
            },
        )
        typer.echo(f"Rosters saved to {output}.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
