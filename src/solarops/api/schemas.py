from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from solarops.types import CompanyType, UserRole


class CompanyCreateRequest(BaseModel):
    name: str
    type: CompanyType


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str


class ProfileCreateRequest(BaseModel):
    user_id: str
    role: UserRole
    company_id: int | None = None
    first_name: str = ""
    last_name: str = ""


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    role: str
    company_id: int | None
    first_name: str
    last_name: str


class ProjectCreateRequest(BaseModel):
    customer_name: str
    address: str
    city: str
    state: str
    zip_code: str
    utility: str = ""
    company_id: int


class ProjectResponse(ProjectCreateRequest):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime | None = None


class JobCreateRequest(BaseModel):
    project_id: int
    type: str
    details: dict[str, Any] = Field(default_factory=dict)


class StepViewResponse(BaseModel):
    name: str
    status: str
    explicit: bool


class JobResponse(BaseModel):
    id: int
    project_id: int
    type: str
    status: str
    assigned_engineer_id: str | None
    details: dict[str, Any]
    version: int
    workflow_steps: list[StepViewResponse]
    allowed_statuses: list[str]
    editable_steps: list[str]
    created_at: str | None
    updated_at: str | None


# Status and step values are validated by the workflow core (400), not here.

class StatusChangeRequest(BaseModel):
    status: str
    expected_version: int | None = None


class StepChangeRequest(BaseModel):
    step: str
    status: str
    expected_version: int | None = None


class AssignmentRequest(BaseModel):
    engineer_id: str | None = None
    expected_version: int | None = None


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    user_id: str
    action: str
    details: str
    created_at: datetime | None = None
