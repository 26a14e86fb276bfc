from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NoReturn

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from solarops.config import Settings, get_settings
from solarops.core import workflow
from solarops.core.errors import AuthorizationError, ConflictError, InvalidStateError, NotFoundError
from solarops.core.policy import JobAccess, can_manage_company_records, job_list_scope, sort_statuses
from solarops.db.models import Job, JobHistory
from solarops.db.repositories import Repository
from solarops.types import CallerContext

logger = logging.getLogger(__name__)


class JobTransitionOrchestrator:
    """Entry point for every job mutation.

    Each operation authorizes the caller through the access policy, derives a
    consistent status/step pair through the workflow mapper, then writes the
    job row and exactly one history entry in a single transaction. Failed
    checks write nothing.
    """

    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)

    def resolve_caller(self, user_id: str) -> CallerContext:
        profile = self.repo.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"profile for user {user_id} not found")
        return CallerContext(user_id=profile.user_id, role=profile.role, company_id=profile.company_id)

    def create_job(
        self,
        *,
        project_id: int,
        job_type: str,
        caller: CallerContext,
        details: dict[str, Any] | None = None,
    ) -> Job:
        workflow.validate_job_type(job_type)
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError(f"project {project_id} not found")
        if not can_manage_company_records(caller, project.company_id):
            self._deny(caller, None, f"{caller.role} may not create jobs for project {project_id}")

        payload = {key: value for key, value in (details or {}).items() if key != "workflowSteps"}
        payload["workflowSteps"] = {}

        with self._transaction(None):
            job = self.repo.create_job(project_id=project_id, type=job_type, details=payload)
            self.repo.append_history(
                job_id=job.id,
                user_id=caller.user_id,
                action="created",
                details="Job created",
            )
        self.session.refresh(job)
        logger.info("Job created job_id=%s project_id=%s type=%s by=%s", job.id, project_id, job_type, caller.user_id)
        return job

    def request_status_change(
        self,
        job_id: int,
        requested_status: str,
        caller: CallerContext,
        *,
        expected_version: int | None = None,
    ) -> Job:
        workflow.validate_job_status(requested_status)
        job, access = self._load(job_id, caller)
        self._check_version(job, expected_version)

        previous = job.status
        if requested_status not in access.allowed_next_statuses(previous):
            self._deny(caller, job_id, f"{caller.role} may not move job {job_id} from {previous} to {requested_status}")

        values: dict[str, Any] = {"status": requested_status}
        if requested_status != previous:
            values["details"] = workflow.reconcile_steps(job.type, job.details, requested_status)

        with self._transaction(job_id):
            self.repo.update_job(job_id, values)
            self.repo.append_history(
                job_id=job_id,
                user_id=caller.user_id,
                action="status_change",
                details=f"Status changed from {previous} to {requested_status}",
            )
        self.session.refresh(job)
        logger.info("Status change job_id=%s %s -> %s by=%s", job_id, previous, requested_status, caller.user_id)
        return job

    def request_step_change(
        self,
        job_id: int,
        step_name: str,
        step_status: str,
        caller: CallerContext,
        *,
        expected_version: int | None = None,
    ) -> Job:
        workflow.validate_step_status(step_status)
        job, access = self._load(job_id, caller)
        workflow.validate_step(job.type, step_name)
        self._check_version(job, expected_version)

        if not access.can_edit_step(step_name):
            self._deny(caller, job_id, f"{caller.role} may not edit step '{step_name}' on job {job_id}")

        previous = job.status
        new_status = workflow.status_after_step_change(job.type, step_name, step_status, previous)
        details = workflow.with_step_status(job.details, step_name, step_status)

        message = f"Step '{step_name}' set to {step_status}"
        if new_status != previous:
            action = "status_change"
            message += f"; status changed from {previous} to {new_status}"
        else:
            action = "step_update"

        with self._transaction(job_id):
            self.repo.update_job(job_id, {"status": new_status, "details": details})
            self.repo.append_history(job_id=job_id, user_id=caller.user_id, action=action, details=message)
        self.session.refresh(job)
        logger.info(
            "Step change job_id=%s step=%r -> %s status %s -> %s by=%s",
            job_id,
            step_name,
            step_status,
            previous,
            new_status,
            caller.user_id,
        )
        return job

    def assign_engineer(
        self,
        job_id: int,
        engineer_id: str | None,
        caller: CallerContext,
        *,
        expected_version: int | None = None,
    ) -> Job:
        job, _ = self._load(job_id, caller)
        self._check_version(job, expected_version)

        if caller.role != "ops":
            self._deny(caller, job_id, "only ops may assign engineers")

        if engineer_id is not None:
            engineer = self.repo.get_profile(engineer_id)
            if engineer is None:
                raise NotFoundError(f"profile for user {engineer_id} not found")
            if engineer.role != "engineer":
                raise InvalidStateError(f"user {engineer_id} is not an engineer")

        previous_engineer = job.assigned_engineer_id
        previous_status = job.status
        new_status = "assigned" if engineer_id is not None else "new"

        values: dict[str, Any] = {"assigned_engineer_id": engineer_id, "status": new_status}
        if new_status != previous_status:
            values["details"] = workflow.reconcile_steps(job.type, job.details, new_status)

        if engineer_id is None:
            message = f"Engineer {previous_engineer} unassigned" if previous_engineer else "Engineer unassigned"
        elif previous_engineer and previous_engineer != engineer_id:
            message = f"Engineer {engineer_id} assigned, replacing {previous_engineer}"
        else:
            message = f"Engineer {engineer_id} assigned"

        with self._transaction(job_id):
            self.repo.update_job(job_id, values)
            self.repo.append_history(job_id=job_id, user_id=caller.user_id, action="assignment", details=message)
        self.session.refresh(job)
        logger.info(
            "Assignment job_id=%s engineer %s -> %s status %s -> %s by=%s",
            job_id,
            previous_engineer,
            engineer_id,
            previous_status,
            new_status,
            caller.user_id,
        )
        return job

    def get_job_view(self, job_id: int, caller: CallerContext) -> dict[str, Any]:
        job, access = self._load(job_id, caller)
        if not access.can_view():
            self._deny(caller, job_id, f"{caller.role} may not view job {job_id}")
        return self.serialize_job(job, access)

    def list_jobs(
        self,
        caller: CallerContext,
        *,
        project_id: int | None = None,
        status: str | None = None,
        job_type: str | None = None,
    ) -> list[dict[str, Any]]:
        if status is not None:
            workflow.validate_job_status(status)
        if job_type is not None:
            workflow.validate_job_type(job_type)

        rows = self.repo.list_jobs(
            project_id=project_id,
            status=status,
            job_type=job_type,
            **job_list_scope(caller),
        )
        company_ids: dict[int, int | None] = {}
        views: list[dict[str, Any]] = []
        for job in rows:
            if job.project_id not in company_ids:
                project = self.repo.get_project(job.project_id)
                company_ids[job.project_id] = project.company_id if project else None
            access = JobAccess.for_caller(
                caller,
                job_type=job.type,
                assigned_engineer_id=job.assigned_engineer_id,
                project_company_id=company_ids[job.project_id],
            )
            views.append(self.serialize_job(job, access))
        return views

    def list_history(self, job_id: int, caller: CallerContext) -> list[JobHistory]:
        _, access = self._load(job_id, caller)
        if not access.can_view():
            self._deny(caller, job_id, f"{caller.role} may not view job {job_id}")
        return self.repo.list_history(job_id)

    def serialize_job(self, job: Job, access: JobAccess) -> dict[str, Any]:
        stored = workflow.read_details(job.details).workflow_steps
        return {
            "id": job.id,
            "project_id": job.project_id,
            "type": job.type,
            "status": job.status,
            "assigned_engineer_id": job.assigned_engineer_id,
            "details": job.details,
            "version": job.version,
            "workflow_steps": [
                view.model_dump() for view in workflow.derive_step_statuses(job.type, job.status, stored)
            ],
            "allowed_statuses": sort_statuses(access.allowed_next_statuses(job.status)),
            "editable_steps": access.editable_steps(),
            "created_at": job.created_at.isoformat() if job.created_at else None,
            "updated_at": job.updated_at.isoformat() if job.updated_at else None,
        }

    def _load(self, job_id: int, caller: CallerContext) -> tuple[Job, JobAccess]:
        job = self.repo.get_job(job_id)
        if job is None:
            raise NotFoundError(f"job {job_id} not found")

        project = self.repo.get_project(job.project_id)
        if project is None:
            raise NotFoundError(f"project {job.project_id} not found")

        access = JobAccess.for_caller(
            caller,
            job_type=job.type,
            assigned_engineer_id=job.assigned_engineer_id,
            project_company_id=project.company_id,
        )
        return job, access

    def _check_version(self, job: Job, expected_version: int | None) -> None:
        if expected_version is not None and job.version != expected_version:
            logger.warning(
                "Stale request job_id=%s expected_version=%s current=%s", job.id, expected_version, job.version
            )
            raise ConflictError(
                f"job {job.id} is at version {job.version}, not {expected_version}; reload and retry"
            )

    def _deny(self, caller: CallerContext, job_id: int | None, message: str) -> NoReturn:
        logger.warning("Denied user=%s role=%s job_id=%s: %s", caller.user_id, caller.role, job_id, message)
        raise AuthorizationError(message)

    @contextmanager
    def _transaction(self, job_id: int | None) -> Iterator[None]:
        try:
            yield
            self.repo.commit()
        except StaleDataError as exc:
            self.repo.rollback()
            logger.warning("Concurrent update detected job_id=%s", job_id)
            raise ConflictError(f"job {job_id} was modified concurrently; reload and retry") from exc
        except Exception:
            self.repo.rollback()
            raise
