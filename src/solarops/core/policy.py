from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from solarops.core.errors import InvalidStateError
from solarops.types import JOB_STATUSES, WORKFLOW_STEPS, CallerContext

ALL_STATUSES: frozenset[str] = frozenset(JOB_STATUSES)
NO_STATUSES: frozenset[str] = frozenset()

COMPANY_ROLES = frozenset({"installer", "roofer"})

_ENGINEER_TRANSITIONS: dict[str, frozenset[str]] = {
    "assigned": frozenset({"in_progress"}),
    "in_progress": frozenset({"submitted", "needs_revision"}),
    "needs_revision": frozenset({"in_progress"}),
}

_COMPANY_TRANSITIONS: dict[str, frozenset[str]] = {
    "submitted": frozenset({"completed", "needs_revision"}),
    "in_progress": frozenset({"completed"}),
}

_ENGINEER_ENGINEERING_STEPS = frozenset({"Site Survey", "Engineering Design"})


def allowed_next_statuses(
    role: str,
    job_type: str,
    current_status: str,
    is_assigned_engineer: bool,
    is_caller_company_job: bool,
) -> frozenset[str]:
    """Statuses the caller may move a job to from ``current_status``.

    Ops get the full enum, current status included, so an ops "no-op" update is
    legal. Every other role gets only forward moves, which never include the
    current status. The rules are the same for both job types.
    """
    if role == "ops":
        return ALL_STATUSES

    if role == "engineer" and is_assigned_engineer:
        return _ENGINEER_TRANSITIONS.get(current_status, NO_STATUSES)

    if role in COMPANY_ROLES and is_caller_company_job:
        return _COMPANY_TRANSITIONS.get(current_status, NO_STATUSES)

    return NO_STATUSES


def can_edit_step(
    step_name: str,
    role: str,
    job_type: str,
    is_assigned_engineer: bool,
    is_caller_company_job: bool,
) -> bool:
    if step_name not in WORKFLOW_STEPS.get(job_type, ()):
        return False

    if role == "ops":
        return True

    engineer_on_job = role == "engineer" and is_assigned_engineer

    if job_type == "engineering":
        # Permit Package stays ops-only.
        return engineer_on_job and step_name in _ENGINEER_ENGINEERING_STEPS

    if job_type == "r_and_r":
        return engineer_on_job or (role in COMPANY_ROLES and is_caller_company_job)

    return False


@dataclass(slots=True, frozen=True)
class JobAccess:
    """Derived caller facts for one job, fed to the pure policy functions."""

    role: str
    job_type: str
    is_assigned_engineer: bool
    is_caller_company_job: bool

    @classmethod
    def for_caller(
        cls,
        caller: CallerContext,
        *,
        job_type: str,
        assigned_engineer_id: str | None,
        project_company_id: int | None,
    ) -> JobAccess:
        return cls(
            role=caller.role,
            job_type=job_type,
            is_assigned_engineer=(
                assigned_engineer_id is not None and assigned_engineer_id == caller.user_id
            ),
            is_caller_company_job=(
                caller.company_id is not None and caller.company_id == project_company_id
            ),
        )

    def allowed_next_statuses(self, current_status: str) -> frozenset[str]:
        return allowed_next_statuses(
            self.role,
            self.job_type,
            current_status,
            self.is_assigned_engineer,
            self.is_caller_company_job,
        )

    def can_change_status(self, current_status: str) -> bool:
        return bool(self.allowed_next_statuses(current_status))

    def can_edit_step(self, step_name: str) -> bool:
        return can_edit_step(
            step_name,
            self.role,
            self.job_type,
            self.is_assigned_engineer,
            self.is_caller_company_job,
        )

    def editable_steps(self) -> list[str]:
        return [step for step in WORKFLOW_STEPS.get(self.job_type, ()) if self.can_edit_step(step)]

    def can_view(self) -> bool:
        if self.role == "ops":
            return True
        if self.role == "engineer":
            return self.is_assigned_engineer
        return self.is_caller_company_job


def can_manage_company_records(caller: CallerContext, company_id: int) -> bool:
    """Ops act for every company; everyone else only for their own."""
    return caller.role == "ops" or (caller.company_id is not None and caller.company_id == company_id)


def job_list_scope(caller: CallerContext) -> dict[str, Any]:
    """Repository filters restricting a job listing to what the caller may see."""
    if caller.role == "ops":
        return {}
    if caller.role == "engineer":
        return {"assigned_engineer_id": caller.user_id}
    if caller.company_id is None:
        raise InvalidStateError(f"user {caller.user_id} has no company")
    return {"company_id": caller.company_id}


def sort_statuses(statuses: frozenset[str]) -> list[str]:
    return [status for status in JOB_STATUSES if status in statuses]
