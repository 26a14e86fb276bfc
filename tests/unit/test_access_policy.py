from __future__ import annotations

from itertools import product

import pytest

from solarops.core.errors import InvalidStateError
from solarops.core.policy import JobAccess, allowed_next_statuses, can_edit_step, job_list_scope
from solarops.types import CallerContext

STATUSES = ["new", "assigned", "in_progress", "submitted", "needs_revision", "completed", "cancelled"]
JOB_TYPES = ["engineering", "r_and_r"]

ENGINEER_TABLE = {
    "assigned": {"in_progress"},
    "in_progress": {"submitted", "needs_revision"},
    "needs_revision": {"in_progress"},
}
COMPANY_TABLE = {
    "submitted": {"completed", "needs_revision"},
    "in_progress": {"completed"},
}


def _cells():
    for role, job_type, status, assigned, company in product(
        ["ops", "engineer", "installer", "roofer"], JOB_TYPES, STATUSES, [False, True], [False, True]
    ):
        if role == "ops":
            expected = set(STATUSES)
        elif role == "engineer":
            expected = ENGINEER_TABLE.get(status, set()) if assigned else set()
        else:
            expected = COMPANY_TABLE.get(status, set()) if company else set()
        yield pytest.param(
            role,
            job_type,
            status,
            assigned,
            company,
            expected,
            id=f"{role}-{job_type}-{status}-assigned={assigned}-company={company}",
        )


@pytest.mark.parametrize("role,job_type,status,assigned,company,expected", list(_cells()))
def test_allowed_next_statuses_table(role, job_type, status, assigned, company, expected) -> None:
    assert allowed_next_statuses(role, job_type, status, assigned, company) == expected


@pytest.mark.parametrize("status", STATUSES)
def test_ops_allowed_set_contains_current_status(status: str) -> None:
    assert status in allowed_next_statuses("ops", "engineering", status, False, False)


@pytest.mark.parametrize("role", ["engineer", "installer", "roofer"])
@pytest.mark.parametrize("status", STATUSES)
def test_non_ops_never_offered_current_status(role: str, status: str) -> None:
    assert status not in allowed_next_statuses(role, "r_and_r", status, True, True)


@pytest.mark.parametrize(
    "step,role,job_type,assigned,company,expected",
    [
        ("Site Survey", "ops", "engineering", False, False, True),
        ("Permit Package", "ops", "engineering", False, False, True),
        ("Panel Removal", "ops", "r_and_r", False, False, True),
        ("Site Survey", "engineer", "engineering", True, False, True),
        ("Engineering Design", "engineer", "engineering", True, False, True),
        ("Permit Package", "engineer", "engineering", True, False, False),
        ("Site Survey", "engineer", "engineering", False, False, False),
        ("Site Survey", "installer", "engineering", False, True, False),
        ("Engineering Design", "roofer", "engineering", False, True, False),
        ("Before Removal Photos", "roofer", "r_and_r", False, True, True),
        ("Panel Reinstallation", "installer", "r_and_r", False, True, True),
        ("Roofing Work", "installer", "r_and_r", False, False, False),
        ("Roofing Work", "engineer", "r_and_r", True, False, True),
        ("Roofing Work", "engineer", "r_and_r", False, True, False),
        ("Panel Removal", "engineer", "engineering", True, False, False),
        ("Site Survey", "ops", "r_and_r", False, False, False),
    ],
)
def test_step_edit_rules(step, role, job_type, assigned, company, expected) -> None:
    assert can_edit_step(step, role, job_type, assigned, company) is expected


def test_job_access_derives_relationship_facts() -> None:
    caller = CallerContext(user_id="eng-1", role="engineer", company_id=4)
    access = JobAccess.for_caller(caller, job_type="engineering", assigned_engineer_id="eng-1", project_company_id=2)
    assert access.is_assigned_engineer
    assert not access.is_caller_company_job
    assert access.editable_steps() == ["Site Survey", "Engineering Design"]
    assert access.allowed_next_statuses("assigned") == {"in_progress"}


def test_unassigned_caller_has_no_status_capability() -> None:
    caller = CallerContext(user_id="inst-1", role="installer", company_id=1)
    access = JobAccess.for_caller(caller, job_type="r_and_r", assigned_engineer_id=None, project_company_id=2)
    assert not access.can_change_status("submitted")
    assert access.editable_steps() == []
    assert not access.can_view()


def test_caller_without_company_never_matches_project() -> None:
    caller = CallerContext(user_id="roof-9", role="roofer", company_id=None)
    access = JobAccess.for_caller(caller, job_type="r_and_r", assigned_engineer_id=None, project_company_id=None)
    assert not access.is_caller_company_job


def test_job_list_scope_by_role() -> None:
    assert job_list_scope(CallerContext(user_id="o", role="ops")) == {}
    assert job_list_scope(CallerContext(user_id="e", role="engineer")) == {"assigned_engineer_id": "e"}
    assert job_list_scope(CallerContext(user_id="i", role="installer", company_id=3)) == {"company_id": 3}
    with pytest.raises(InvalidStateError):
        job_list_scope(CallerContext(user_id="r", role="roofer"))
