from __future__ import annotations

import pytest

from solarops.core.errors import InvalidStateError
from solarops.core.workflow import (
    default_step_status,
    derive_step_statuses,
    reconcile_steps,
    status_after_step_change,
    validate_job_status,
    with_step_status,
)

STATUSES = ["new", "assigned", "in_progress", "submitted", "needs_revision", "completed", "cancelled"]


@pytest.mark.parametrize(
    "status,expected",
    [
        ("new", ["pending", "pending", "pending"]),
        ("assigned", ["completed", "in_progress", "pending"]),
        ("in_progress", ["completed", "in_progress", "pending"]),
        ("submitted", ["completed", "pending", "in_progress"]),
        ("needs_revision", ["completed", "pending", "pending"]),
        ("completed", ["completed", "completed", "completed"]),
        ("cancelled", ["completed", "pending", "pending"]),
    ],
)
def test_engineering_default_steps(status: str, expected: list[str]) -> None:
    views = derive_step_statuses("engineering", status)
    assert [view.name for view in views] == ["Site Survey", "Engineering Design", "Permit Package"]
    assert [view.status for view in views] == expected
    assert not any(view.explicit for view in views)


@pytest.mark.parametrize(
    "status,expected",
    [
        ("new", ["pending", "pending", "pending", "pending"]),
        ("assigned", ["completed", "pending", "pending", "pending"]),
        ("in_progress", ["completed", "in_progress", "in_progress", "pending"]),
        ("submitted", ["completed", "pending", "pending", "in_progress"]),
        ("completed", ["completed", "completed", "completed", "completed"]),
    ],
)
def test_r_and_r_default_steps(status: str, expected: list[str]) -> None:
    views = derive_step_statuses("r_and_r", status)
    assert [view.name for view in views] == [
        "Before Removal Photos",
        "Panel Removal",
        "Roofing Work",
        "Panel Reinstallation",
    ]
    assert [view.status for view in views] == expected


def test_stored_step_overrides_default() -> None:
    views = derive_step_statuses("engineering", "new", {"Site Survey": "in_progress"})
    assert views[0].status == "in_progress"
    assert views[0].explicit
    assert views[1].status == "pending"
    assert not views[1].explicit


@pytest.mark.parametrize(
    "step,step_status,expected",
    [
        ("Site Survey", "completed", "in_progress"),
        ("Site Survey", "in_progress", "assigned"),
        ("Engineering Design", "completed", "submitted"),
        ("Engineering Design", "in_progress", "in_progress"),
        ("Permit Package", "completed", "completed"),
        ("Permit Package", "in_progress", "submitted"),
    ],
)
def test_engineering_forward_mapping(step: str, step_status: str, expected: str) -> None:
    assert status_after_step_change("engineering", step, step_status, "new") == expected


@pytest.mark.parametrize("current", STATUSES)
def test_engineering_design_completion_always_submits(current: str) -> None:
    assert status_after_step_change("engineering", "Engineering Design", "completed", current) == "submitted"


@pytest.mark.parametrize("step", ["Before Removal Photos", "Panel Removal", "Roofing Work"])
@pytest.mark.parametrize("current", STATUSES)
def test_r_and_r_earlier_steps_complete_to_in_progress(step: str, current: str) -> None:
    assert status_after_step_change("r_and_r", step, "completed", current) == "in_progress"
    assert status_after_step_change("r_and_r", step, "in_progress", current) == "in_progress"


@pytest.mark.parametrize("current", STATUSES)
def test_r_and_r_reinstallation_completes_job(current: str) -> None:
    assert status_after_step_change("r_and_r", "Panel Reinstallation", "completed", current) == "completed"
    assert status_after_step_change("r_and_r", "Panel Reinstallation", "in_progress", current) == "in_progress"


@pytest.mark.parametrize("job_type,step", [("engineering", "Permit Package"), ("r_and_r", "Roofing Work")])
@pytest.mark.parametrize("current", ["submitted", "completed"])
def test_pending_step_does_not_regress_status(job_type: str, step: str, current: str) -> None:
    assert status_after_step_change(job_type, step, "pending", current) == current


def test_step_from_other_job_type_is_rejected() -> None:
    with pytest.raises(InvalidStateError):
        status_after_step_change("engineering", "Panel Removal", "completed", "new")
    with pytest.raises(InvalidStateError):
        status_after_step_change("r_and_r", "Site Survey", "completed", "new")


def test_unknown_values_are_rejected() -> None:
    with pytest.raises(InvalidStateError):
        status_after_step_change("engineering", "Site Survey", "done", "new")
    with pytest.raises(InvalidStateError):
        validate_job_status("archived")


def test_with_step_status_preserves_other_details() -> None:
    raw = {"notes": "Please survey roof.", "workflowSteps": {"Site Survey": "completed"}}
    updated = with_step_status(raw, "Engineering Design", "in_progress")
    assert updated["notes"] == "Please survey roof."
    assert updated["workflowSteps"] == {"Site Survey": "completed", "Engineering Design": "in_progress"}
    assert raw["workflowSteps"] == {"Site Survey": "completed"}


def test_with_step_status_on_empty_details() -> None:
    assert with_step_status(None, "Roofing Work", "completed") == {"workflowSteps": {"Roofing Work": "completed"}}


def test_reconcile_drops_contradicting_steps() -> None:
    raw = {
        "roofType": "Shingle",
        "workflowSteps": {"Site Survey": "completed", "Engineering Design": "in_progress"},
    }
    reconciled = reconcile_steps("engineering", raw, "completed")
    assert reconciled["roofType"] == "Shingle"
    assert reconciled["workflowSteps"] == {"Site Survey": "completed"}
    assert default_step_status("engineering", "Engineering Design", "completed") == "completed"
