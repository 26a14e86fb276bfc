from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["installer", "roofer", "ops", "engineer"]
CompanyType = Literal["installer", "roofer", "ops", "engineer"]
JobType = Literal["engineering", "r_and_r"]
JobStatus = Literal[
    "new",
    "assigned",
    "in_progress",
    "submitted",
    "needs_revision",
    "completed",
    "cancelled",
]
StepStatus = Literal["pending", "in_progress", "completed"]

EngineeringStep = Literal["Site Survey", "Engineering Design", "Permit Package"]
RandRStep = Literal["Before Removal Photos", "Panel Removal", "Roofing Work", "Panel Reinstallation"]

USER_ROLES: tuple[str, ...] = get_args(UserRole)
COMPANY_TYPES: tuple[str, ...] = get_args(CompanyType)
JOB_TYPES: tuple[str, ...] = get_args(JobType)
JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
STEP_STATUSES: tuple[str, ...] = get_args(StepStatus)

# Checklist order per job type; a step name is only valid for its own job type.
WORKFLOW_STEPS: dict[str, tuple[str, ...]] = {
    "engineering": get_args(EngineeringStep),
    "r_and_r": get_args(RandRStep),
}


class CallerContext(BaseModel):
    """The authenticated actor, as resolved from their onboarding profile."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    company_id: int | None = None


class JobDetails(BaseModel):
    """Free-form job details with the typed ``workflowSteps`` sub-mapping.

    Unknown keys (survey notes, roof type, ...) are preserved as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    workflow_steps: dict[str, StepStatus] = Field(default_factory=dict, alias="workflowSteps")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class StepView(BaseModel):
    name: str
    status: StepStatus
    explicit: bool = False
