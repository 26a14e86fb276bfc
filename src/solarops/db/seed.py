from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from solarops.db.models import Company, Job, Project

logger = logging.getLogger(__name__)

DEMO_COMPANIES: list[dict[str, str]] = [
    {"name": "Solar Ops HQ", "type": "ops"},
    {"name": "Sunny Installers Inc", "type": "installer"},
    {"name": "Top Roofing LLC", "type": "roofer"},
    {"name": "Precision Engineering", "type": "engineer"},
]

DEMO_PROJECTS: list[dict[str, Any]] = [
    {
        "company": "Sunny Installers Inc",
        "customer_name": "Alice Johnson",
        "address": "123 Maple Ave",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62704",
        "utility": "City Power",
        "job": {"type": "engineering", "status": "new", "details": {"notes": "Please survey roof."}},
    },
    {
        "company": "Top Roofing LLC",
        "customer_name": "Bob Smith",
        "address": "456 Oak St",
        "city": "Shelbyville",
        "state": "IL",
        "zip_code": "62565",
        "utility": "County Electric",
        "job": {"type": "r_and_r", "status": "in_progress", "details": {"roofType": "Shingle"}},
    },
]


def seed_demo_data(session: Session) -> int:
    """Insert demo companies, projects and jobs into an empty database."""
    if session.scalar(select(Company.id).limit(1)) is not None:
        return 0

    logger.info("Seeding demo data")
    companies: dict[str, Company] = {}
    for item in DEMO_COMPANIES:
        company = Company(name=item["name"], type=item["type"])
        session.add(company)
        companies[company.name] = company
    session.flush()

    inserted = len(companies)
    for item in DEMO_PROJECTS:
        values = {key: value for key, value in item.items() if key not in {"company", "job"}}
        project = Project(company_id=companies[item["company"]].id, **values)
        session.add(project)
        session.flush()

        job_spec = item["job"]
        details = {"workflowSteps": {}, **job_spec["details"]}
        job = Job(project_id=project.id, type=job_spec["type"], status=job_spec["status"], details=details)
        session.add(job)
        inserted += 2

    session.commit()
    return inserted
