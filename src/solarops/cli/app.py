from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
import uvicorn
from pydantic import ValidationError

from solarops.api.app import create_app
from solarops.api.schemas import ProjectCreateRequest
from solarops.config import get_settings
from solarops.core.errors import WorkflowError
from solarops.core.onboarding import check_new_profile, validate_company_type
from solarops.core.orchestrator import JobTransitionOrchestrator
from solarops.db.init import init_database
from solarops.db.repositories import Repository
from solarops.db.session import SessionLocal
from solarops.logging_config import configure_logging

app = typer.Typer(help="SolarOps CLI")
company_app = typer.Typer(help="Manage companies")
profile_app = typer.Typer(help="Manage user profiles")
project_app = typer.Typer(help="Manage projects")
job_app = typer.Typer(help="Job workflow commands")

app.add_typer(company_app, name="company")
app.add_typer(profile_app, name="profile")
app.add_typer(project_app, name="project")
app.add_typer(job_app, name="job")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@contextmanager
def reporting_errors() -> Iterator[None]:
    try:
        yield
    except WorkflowError as exc:
        typer.echo(json.dumps(exc.to_dict(), indent=2), err=True)
        raise typer.Exit(code=1) from exc


@app.command("init")
def init_cmd() -> None:
    """Initialize database, directories, and seed records."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@company_app.command("create")
def company_create(
    name: str = typer.Option(..., "--name"),
    type: str = typer.Option(..., "--type"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        company = Repository(db).create_company(name=name, type=validate_company_type(type))
        typer.echo(json.dumps({"id": company.id, "name": company.name, "type": company.type}, indent=2))


@company_app.command("list")
def company_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_companies()
        typer.echo(json.dumps([{"id": row.id, "name": row.name, "type": row.type} for row in rows], indent=2))


@profile_app.command("create")
def profile_create(
    user_id: str = typer.Option(..., "--user-id"),
    role: str = typer.Option(..., "--role"),
    company_id: int | None = typer.Option(None, "--company-id"),
    first_name: str = typer.Option("", "--first-name"),
    last_name: str = typer.Option("", "--last-name"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        repo = Repository(db)
        check_new_profile(repo, user_id=user_id, role=role, company_id=company_id)
        profile = repo.create_profile(
            user_id=user_id,
            role=role,
            company_id=company_id,
            first_name=first_name,
            last_name=last_name,
        )
        typer.echo(json.dumps({"user_id": profile.user_id, "role": profile.role}, indent=2))


@project_app.command("import")
def project_import(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    """Create projects from a JSON object or list of objects."""
    configure_logging()
    ensure_initialized()
    payload = json.loads(file.read_text(encoding="utf-8"))
    items = payload if isinstance(payload, list) else [payload]

    with SessionLocal() as db:
        repo = Repository(db)
        imported = []
        for index, item in enumerate(items):
            try:
                request = ProjectCreateRequest.model_validate(item)
            except ValidationError as exc:
                raise typer.BadParameter(f"project #{index}: {exc}") from exc
            if not repo.get_company(request.company_id):
                raise typer.BadParameter(f"project #{index}: company {request.company_id} not found")
            project = repo.create_project(request.model_dump())
            imported.append({"id": project.id, "customer_name": project.customer_name})
        typer.echo(json.dumps({"imported": imported}, indent=2))


@job_app.command("create")
def job_create(
    acting_as: str = typer.Option(..., "--as"),
    project_id: int = typer.Option(..., "--project-id"),
    job_type: str = typer.Option(..., "--type"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        job = orchestrator.create_job(project_id=project_id, job_type=job_type, caller=caller)
        typer.echo(json.dumps(orchestrator.get_job_view(job.id, caller), indent=2))


@job_app.command("list")
def job_list(
    acting_as: str = typer.Option(..., "--as"),
    project_id: int | None = typer.Option(None, "--project-id"),
    status: str | None = typer.Option(None, "--status"),
    job_type: str | None = typer.Option(None, "--type"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        jobs = orchestrator.list_jobs(caller, project_id=project_id, status=status, job_type=job_type)
        typer.echo(json.dumps(jobs, indent=2))


@job_app.command("show")
def job_show(
    acting_as: str = typer.Option(..., "--as"),
    job_id: int = typer.Option(..., "--job-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        typer.echo(json.dumps(orchestrator.get_job_view(job_id, caller), indent=2))


@job_app.command("status")
def job_status(
    acting_as: str = typer.Option(..., "--as"),
    job_id: int = typer.Option(..., "--job-id"),
    status: str = typer.Option(..., "--to"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        orchestrator.request_status_change(job_id, status, caller)
        typer.echo(json.dumps(orchestrator.get_job_view(job_id, caller), indent=2))


@job_app.command("step")
def job_step(
    acting_as: str = typer.Option(..., "--as"),
    job_id: int = typer.Option(..., "--job-id"),
    step: str = typer.Option(..., "--step"),
    status: str = typer.Option(..., "--to"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        orchestrator.request_step_change(job_id, step, status, caller)
        typer.echo(json.dumps(orchestrator.get_job_view(job_id, caller), indent=2))


@job_app.command("assign")
def job_assign(
    acting_as: str = typer.Option(..., "--as"),
    job_id: int = typer.Option(..., "--job-id"),
    engineer: str | None = typer.Option(None, "--engineer", help="Omit to unassign"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        orchestrator.assign_engineer(job_id, engineer, caller)
        typer.echo(json.dumps(orchestrator.get_job_view(job_id, caller), indent=2))


@job_app.command("history")
def job_history(
    acting_as: str = typer.Option(..., "--as"),
    job_id: int = typer.Option(..., "--job-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db, reporting_errors():
        orchestrator = JobTransitionOrchestrator(db)
        caller = orchestrator.resolve_caller(acting_as)
        rows = orchestrator.list_history(job_id, caller)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": row.id,
                        "user_id": row.user_id,
                        "action": row.action,
                        "details": row.details,
                        "created_at": row.created_at.isoformat() if row.created_at else None,
                    }
                    for row in rows
                ],
                indent=2,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
