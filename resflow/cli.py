"""Command line interface for inspecting and simulating reservation workflows."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Tuple

import typer
import yaml

from resflow.catalog import WorkflowTemplateCatalog
from resflow.config import ResflowConfig, load_config
from resflow.contracts import (
    NotificationRequest,
    ReservationSnapshot,
    WorkflowInstance,
    WorkflowStats,
    utcnow,
)
from resflow.errors import UnknownTemplateError
from resflow.notifications import InMemoryNotificationGateway
from resflow.roster import StaticRoleRoster
from resflow.service import ReservationWorkflowService

app = typer.Typer(help="CLI for reservation workflows")

# Command groups
template_app = typer.Typer(help="Commands for inspecting workflow templates")
workflow_app = typer.Typer(help="Commands for running workflows")
roles_app = typer.Typer(help="Commands for the role roster")

app.add_typer(template_app, name="template")
app.add_typer(workflow_app, name="workflow")
app.add_typer(roles_app, name="roles")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Root logging level"),
) -> None:
    """Resflow CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@template_app.command("show")
def template_show(
    workflow_type: str,
    priority: str = typer.Option("medium", help="Workflow priority"),
    rooms: int = typer.Option(1, help="Number of rooms on the reservation"),
    config: Optional[Path] = typer.Option(None, help="Path to a resflow YAML config"),
) -> None:
    """
    Print the step plan a workflow type would run.

    Example:
        resflow template show corporate
        resflow template show group --rooms 12 --priority urgent
    """
    cfg = load_config(str(config) if config else None)
    catalog = WorkflowTemplateCatalog(cfg.templates)
    snapshot = ReservationSnapshot(reservation_id="preview", room_count=rooms)
    try:
        blueprints = catalog.build_steps(workflow_type, priority, snapshot)
    except UnknownTemplateError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        typer.echo(f"Known types: {', '.join(catalog.workflow_types)}")
        raise typer.Exit(code=1)

    for index, bp in enumerate(blueprints, start=1):
        details = [bp.type]
        if bp.assigned_to_role:
            details.append(f"role={bp.assigned_to_role}")
        if bp.timeout:
            details.append(f"timeout={bp.timeout}m")
        if bp.required_fields:
            details.append(f"requires={','.join(bp.required_fields)}")
        if bp.skippable:
            details.append("skippable")
        typer.echo(f"{index}. {bp.name} ({', '.join(details)})")


@workflow_app.command("simulate")
def workflow_simulate(
    reservations_file: Path,
    advance_minutes: int = typer.Option(
        0, help="Age the clock by this many minutes and run a timeout sweep"
    ),
    approve: bool = typer.Option(False, help="Approve every waiting approval step"),
    config: Optional[Path] = typer.Option(None, help="Path to a resflow YAML config"),
) -> None:
    """
    Run reservations from a YAML or JSON file through an in-memory engine.

    Prints the active workflows in operator priority order followed by the
    aggregate statistics.

    Example:
        resflow workflow simulate bookings.yaml
        resflow workflow simulate bookings.yaml --advance-minutes 180
    """
    if not reservations_file.exists():
        typer.secho("Specified file does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    with open(reservations_file) as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("reservations", [])
    reservations = [ReservationSnapshot.model_validate(item) for item in data]

    cfg = load_config(str(config) if config else None)
    active, stats, escalations = asyncio.run(
        _simulate(reservations, cfg, advance_minutes, approve)
    )

    if not active:
        typer.echo("No active workflows")
    for wf in active:
        step = wf.current_step
        line = f"{wf.id}\t{wf.priority}\t{wf.workflow_type}\t{step.name if step else '-'}"
        if step is not None and step.is_overdue:
            line += "\tOVERDUE"
        typer.echo(line)
    for request in escalations:
        typer.echo(f"Escalated to {request.recipient_role}: {request.message}")
    typer.echo(stats.model_dump_json(indent=2))


async def _simulate(
    reservations: List[ReservationSnapshot],
    config: ResflowConfig,
    advance_minutes: int,
    approve: bool,
) -> Tuple[List[WorkflowInstance], WorkflowStats, List[NotificationRequest]]:
    base = utcnow()
    offset = {"delta": timedelta(0)}

    service = ReservationWorkflowService(
        config=config,
        gateway=InMemoryNotificationGateway(),
        clock=lambda: base + offset["delta"],
    )
    await service.start(run_monitor=False)
    try:
        for snapshot in reservations:
            await service.create_workflow(snapshot, created_by="cli")
        if approve:
            for wf in await service.list_active_workflows():
                step = wf.current_step
                if step is not None and step.type == "approval":
                    await service.approve_step(wf.id, step.id, "approved from cli", actor="cli")
        escalations: List[NotificationRequest] = []
        if advance_minutes:
            offset["delta"] = timedelta(minutes=advance_minutes)
            escalations = await service.check_timeouts()
        active = await service.list_active_workflows()
        stats = await service.get_workflow_stats()
    finally:
        await service.shutdown()
    return active, stats, escalations


@roles_app.command("show")
def roles_show(
    role: str,
    config: Optional[Path] = typer.Option(None, help="Path to a resflow YAML config"),
) -> None:
    """List the staff currently holding ``role``."""
    cfg = load_config(str(config) if config else None)
    staff = StaticRoleRoster(cfg.roles).resolve_role(role)
    if not staff:
        typer.echo(f"No staff assigned to {role}")
        return
    for member in staff:
        typer.echo(member)


@roles_app.command("list")
def roles_list(
    config: Optional[Path] = typer.Option(None, help="Path to a resflow YAML config"),
) -> None:
    """List configured roles with their head count."""
    cfg = load_config(str(config) if config else None)
    roster = StaticRoleRoster(cfg.roles)
    if not roster.roles:
        typer.echo("No roles configured")
        return
    for role in roster.roles:
        typer.echo(f"{role}\t{len(roster.resolve_role(role))}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
