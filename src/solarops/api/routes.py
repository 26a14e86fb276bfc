from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from solarops.api.deps import get_caller, get_caller_id, get_db
from solarops.api.schemas import (
    AssignmentRequest,
    CompanyCreateRequest,
    CompanyResponse,
    HistoryEntryResponse,
    JobCreateRequest,
    JobResponse,
    ProfileCreateRequest,
    ProfileResponse,
    ProjectCreateRequest,
    ProjectResponse,
    StatusChangeRequest,
    StepChangeRequest,
)
from solarops.core.errors import AuthorizationError, InvalidStateError, NotFoundError
from solarops.core.onboarding import check_new_profile
from solarops.core.orchestrator import JobTransitionOrchestrator
from solarops.core.policy import can_manage_company_records
from solarops.db.repositories import Repository
from solarops.types import CallerContext

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/companies", response_model=list[CompanyResponse])
def list_companies(
    _: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> list[CompanyResponse]:
    repo = Repository(db)
    return [CompanyResponse.model_validate(row) for row in repo.list_companies()]


@router.post("/companies", response_model=CompanyResponse, status_code=201)
def create_company(
    payload: CompanyCreateRequest,
    _: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> CompanyResponse:
    repo = Repository(db)
    company = repo.create_company(name=payload.name, type=payload.type)
    return CompanyResponse.model_validate(company)


@router.get("/profiles/me", response_model=ProfileResponse | None)
def get_my_profile(
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> ProfileResponse | None:
    profile = Repository(db).get_profile(user_id)
    return ProfileResponse.model_validate(profile) if profile else None


@router.post("/profiles", response_model=ProfileResponse, status_code=201)
def create_profile(
    payload: ProfileCreateRequest,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    if payload.user_id != user_id:
        raise AuthorizationError("users may only create their own profile")

    repo = Repository(db)
    check_new_profile(repo, user_id=payload.user_id, role=payload.role, company_id=payload.company_id)
    profile = repo.create_profile(**payload.model_dump())
    return ProfileResponse.model_validate(profile)


@router.get("/users/engineers", response_model=list[ProfileResponse])
def list_engineers(
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[ProfileResponse]:
    if caller.role != "ops":
        raise AuthorizationError("only ops may list engineers")
    rows = Repository(db).list_profiles(role="engineer")
    return [ProfileResponse.model_validate(row) for row in rows]


@router.get("/users/company/{company_id}", response_model=list[ProfileResponse])
def list_company_members(
    company_id: int,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[ProfileResponse]:
    if not can_manage_company_records(caller, company_id):
        raise AuthorizationError(f"{caller.role} may not list members of company {company_id}")
    repo = Repository(db)
    if not repo.get_company(company_id):
        raise NotFoundError(f"company {company_id} not found")
    rows = repo.list_profiles(company_id=company_id)
    return [ProfileResponse.model_validate(row) for row in rows]


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[ProjectResponse]:
    repo = Repository(db)
    if caller.role == "ops":
        rows = repo.list_projects()
    elif caller.company_id is None:
        raise InvalidStateError(f"user {caller.user_id} has no company")
    else:
        rows = repo.list_projects(company_id=caller.company_id)
    return [ProjectResponse.model_validate(row) for row in rows]


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    payload: ProjectCreateRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    repo = Repository(db)
    if not can_manage_company_records(caller, payload.company_id):
        raise AuthorizationError("cannot create project for another company")
    if not repo.get_company(payload.company_id):
        raise NotFoundError(f"company {payload.company_id} not found")

    project = repo.create_project(payload.model_dump())
    return ProjectResponse.model_validate(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    repo = Repository(db)
    project = repo.get_project(project_id)
    if not project:
        raise NotFoundError(f"project {project_id} not found")

    if not can_manage_company_records(caller, project.company_id):
        assigned = caller.role == "engineer" and repo.list_jobs(
            project_id=project_id, assigned_engineer_id=caller.user_id, limit=1
        )
        if not assigned:
            raise AuthorizationError(f"{caller.role} may not view project {project_id}")
    return ProjectResponse.model_validate(project)


@router.get("/jobs", response_model=list[JobResponse])
def list_jobs(
    project_id: int | None = None,
    status: str | None = None,
    type: str | None = None,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[JobResponse]:
    orchestrator = JobTransitionOrchestrator(db)
    rows = orchestrator.list_jobs(caller, project_id=project_id, status=status, job_type=type)
    return [JobResponse.model_validate(row) for row in rows]


@router.post("/jobs", response_model=JobResponse, status_code=201)
def create_job(
    payload: JobCreateRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> JobResponse:
    orchestrator = JobTransitionOrchestrator(db)
    job = orchestrator.create_job(
        project_id=payload.project_id,
        job_type=payload.type,
        caller=caller,
        details=payload.details,
    )
    return JobResponse.model_validate(orchestrator.get_job_view(job.id, caller))


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(
    job_id: int,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> JobResponse:
    orchestrator = JobTransitionOrchestrator(db)
    return JobResponse.model_validate(orchestrator.get_job_view(job_id, caller))


@router.post("/jobs/{job_id}/status", response_model=JobResponse)
def change_job_status(
    job_id: int,
    payload: StatusChangeRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> JobResponse:
    orchestrator = JobTransitionOrchestrator(db)
    orchestrator.request_status_change(
        job_id,
        payload.status,
        caller,
        expected_version=payload.expected_version,
    )
    return JobResponse.model_validate(orchestrator.get_job_view(job_id, caller))


@router.post("/jobs/{job_id}/steps", response_model=JobResponse)
def change_job_step(
    job_id: int,
    payload: StepChangeRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> JobResponse:
    orchestrator = JobTransitionOrchestrator(db)
    orchestrator.request_step_change(
        job_id,
        payload.step,
        payload.status,
        caller,
        expected_version=payload.expected_version,
    )
    return JobResponse.model_validate(orchestrator.get_job_view(job_id, caller))


@router.post("/jobs/{job_id}/assignment", response_model=JobResponse)
def assign_job_engineer(
    job_id: int,
    payload: AssignmentRequest,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> JobResponse:
    orchestrator = JobTransitionOrchestrator(db)
    orchestrator.assign_engineer(
        job_id,
        payload.engineer_id,
        caller,
        expected_version=payload.expected_version,
    )
    return JobResponse.model_validate(orchestrator.get_job_view(job_id, caller))


@router.get("/jobs/{job_id}/history", response_model=list[HistoryEntryResponse])
def get_job_history(
    job_id: int,
    caller: CallerContext = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[HistoryEntryResponse]:
    orchestrator = JobTransitionOrchestrator(db)
    rows = orchestrator.list_history(job_id, caller)
    return [HistoryEntryResponse.model_validate(row) for row in rows]
