from __future__ import annotations

import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="solarops-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR / 'solarops.db'}"
os.environ["DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["APP_ENV"] = "test"
os.environ["SEED_DEMO_DATA"] = "false"

import pytest  # noqa: E402

from solarops.db import models  # noqa: E402,F401
from solarops.db.base import Base  # noqa: E402
from solarops.db.repositories import Repository  # noqa: E402
from solarops.db.session import SessionLocal, engine  # noqa: E402
from solarops.types import CallerContext  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def world() -> SimpleNamespace:
    """Two customer companies, one project each, and one user per role."""
    with SessionLocal() as db:
        repo = Repository(db)
        ops_co = repo.create_company(name="Solar Ops HQ", type="ops")
        installer_co = repo.create_company(name="Sunny Installers Inc", type="installer")
        roofer_co = repo.create_company(name="Top Roofing LLC", type="roofer")
        eng_co = repo.create_company(name="Precision Engineering", type="engineer")

        repo.create_profile(user_id="ops-1", role="ops", company_id=ops_co.id)
        repo.create_profile(user_id="eng-1", role="engineer", company_id=eng_co.id)
        repo.create_profile(user_id="eng-2", role="engineer", company_id=eng_co.id)
        repo.create_profile(user_id="inst-1", role="installer", company_id=installer_co.id)
        repo.create_profile(user_id="roof-1", role="roofer", company_id=roofer_co.id)

        address = {"address": "123 Maple Ave", "city": "Springfield", "state": "IL", "zip_code": "62704"}
        installer_project = repo.create_project(
            {"customer_name": "Alice Johnson", "company_id": installer_co.id, **address}
        )
        roofer_project = repo.create_project(
            {"customer_name": "Bob Smith", "company_id": roofer_co.id, **address}
        )

        return SimpleNamespace(
            ops_company_id=ops_co.id,
            installer_company_id=installer_co.id,
            roofer_company_id=roofer_co.id,
            installer_project_id=installer_project.id,
            roofer_project_id=roofer_project.id,
            ops=CallerContext(user_id="ops-1", role="ops", company_id=ops_co.id),
            engineer=CallerContext(user_id="eng-1", role="engineer", company_id=eng_co.id),
            other_engineer=CallerContext(user_id="eng-2", role="engineer", company_id=eng_co.id),
            installer=CallerContext(user_id="inst-1", role="installer", company_id=installer_co.id),
            roofer=CallerContext(user_id="roof-1", role="roofer", company_id=roofer_co.id),
        )


@pytest.fixture
def make_job():
    """Insert a job directly in a given state, bypassing the workflow."""

    def _make(
        project_id: int,
        job_type: str = "engineering",
        *,
        status: str = "new",
        engineer_id: str | None = None,
        steps: dict[str, str] | None = None,
    ) -> int:
        with SessionLocal() as db:
            repo = Repository(db)
            job = repo.create_job(
                project_id=project_id,
                type=job_type,
                details={"workflowSteps": dict(steps or {})},
            )
            job.status = status
            job.assigned_engineer_id = engineer_id
            db.commit()
            return job.id

    return _make


@pytest.fixture
def history_actions():
    def _actions(job_id: int) -> list[str]:
        with SessionLocal() as db:
            return [row.action for row in Repository(db).list_history(job_id)]

    return _actions
