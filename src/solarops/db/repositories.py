from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from solarops.core.errors import NotFoundError
from solarops.db.models import Company, Job, JobHistory, Profile, Project

_JOB_FIELDS = frozenset({"status", "assigned_engineer_id", "details"})


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_company(self, name: str, type: str) -> Company:
        company = Company(name=name, type=type)
        self.session.add(company)
        self.session.commit()
        self.session.refresh(company)
        return company

    def list_companies(self) -> list[Company]:
        return list(self.session.scalars(select(Company).order_by(Company.id.asc())).all())

    def get_company(self, company_id: int) -> Company | None:
        return self.session.get(Company, company_id)

    def create_profile(
        self,
        *,
        user_id: str,
        role: str,
        company_id: int | None = None,
        first_name: str = "",
        last_name: str = "",
    ) -> Profile:
        profile = Profile(
            user_id=user_id,
            role=role,
            company_id=company_id,
            first_name=first_name,
            last_name=last_name,
        )
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def get_profile(self, user_id: str) -> Profile | None:
        return self.session.get(Profile, user_id)

    def list_profiles(self, role: str | None = None, company_id: int | None = None) -> list[Profile]:
        statement = select(Profile).order_by(Profile.user_id.asc())
        if role is not None:
            statement = statement.where(Profile.role == role)
        if company_id is not None:
            statement = statement.where(Profile.company_id == company_id)
        return list(self.session.scalars(statement).all())

    def create_project(self, values: dict[str, Any]) -> Project:
        project = Project(**values)
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def get_project(self, project_id: int) -> Project | None:
        return self.session.get(Project, project_id)

    def list_projects(self, company_id: int | None = None) -> list[Project]:
        statement = select(Project).order_by(Project.id.desc())
        if company_id is not None:
            statement = statement.where(Project.company_id == company_id)
        return list(self.session.scalars(statement).all())

    # Job and history writes only flush; the caller owns the transaction so a
    # job update and its history row commit together.

    def create_job(self, *, project_id: int, type: str, details: dict[str, Any]) -> Job:
        job = Job(project_id=project_id, type=type, status="new", details=details)
        self.session.add(job)
        self.session.flush()
        return job

    def get_job(self, job_id: int) -> Job | None:
        return self.session.get(Job, job_id)

    def list_jobs(
        self,
        *,
        project_id: int | None = None,
        company_id: int | None = None,
        assigned_engineer_id: str | None = None,
        status: str | None = None,
        job_type: str | None = None,
        limit: int = 200,
    ) -> list[Job]:
        statement = select(Job)
        if company_id is not None:
            statement = statement.join(Project, Project.id == Job.project_id).where(
                Project.company_id == company_id
            )
        if project_id is not None:
            statement = statement.where(Job.project_id == project_id)
        if assigned_engineer_id is not None:
            statement = statement.where(Job.assigned_engineer_id == assigned_engineer_id)
        if status is not None:
            statement = statement.where(Job.status == status)
        if job_type is not None:
            statement = statement.where(Job.type == job_type)
        statement = statement.order_by(Job.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def update_job(self, job_id: int, values: dict[str, Any]) -> Job:
        unknown = set(values) - _JOB_FIELDS
        if unknown:
            raise ValueError(f"job fields {sorted(unknown)} are not updatable")

        job = self.session.get(Job, job_id)
        if not job:
            raise NotFoundError(f"job {job_id} not found")

        for key, value in values.items():
            setattr(job, key, value)
        self.session.flush()
        return job

    def append_history(self, *, job_id: int, user_id: str, action: str, details: str = "") -> JobHistory:
        entry = JobHistory(job_id=job_id, user_id=user_id, action=action, details=details)
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_history(self, job_id: int) -> list[JobHistory]:
        statement = select(JobHistory).where(JobHistory.job_id == job_id).order_by(JobHistory.id.desc())
        return list(self.session.scalars(statement).all())

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
