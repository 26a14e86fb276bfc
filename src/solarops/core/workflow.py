"""
Reconciles the coarse job status with the per-step checklist in
``details.workflowSteps``.

Two directions are covered:

- forward: a step edit yields the job status the job must move to;
- display: a step with no stored entry gets a default derived from the job
  status. A stored entry always wins over the derived default.

Moving a step back to ``pending`` never regresses the job status.
"""

from __future__ import annotations

from typing import Any

from solarops.core.errors import InvalidStateError
from solarops.types import JOB_STATUSES, JOB_TYPES, STEP_STATUSES, WORKFLOW_STEPS, JobDetails, StepView

_NOT_NEW = frozenset(JOB_STATUSES) - {"new"}
_COMPLETED = frozenset({"completed"})

# step -> (job statuses where it shows in_progress, job statuses where it shows completed)
_DEFAULT_STEP_STATUS: dict[str, dict[str, tuple[frozenset[str], frozenset[str]]]] = {
    "engineering": {
        "Site Survey": (frozenset(), _NOT_NEW),
        "Engineering Design": (frozenset({"assigned", "in_progress"}), _COMPLETED),
        "Permit Package": (frozenset({"submitted"}), _COMPLETED),
    },
    "r_and_r": {
        "Before Removal Photos": (frozenset(), _NOT_NEW),
        "Panel Removal": (frozenset({"in_progress"}), _COMPLETED),
        "Roofing Work": (frozenset({"in_progress"}), _COMPLETED),
        "Panel Reinstallation": (frozenset({"submitted"}), _COMPLETED),
    },
}

_ENGINEERING_FORWARD: dict[tuple[str, str], str] = {
    ("Site Survey", "in_progress"): "assigned",
    ("Site Survey", "completed"): "in_progress",
    ("Engineering Design", "in_progress"): "in_progress",
    ("Engineering Design", "completed"): "submitted",
    ("Permit Package", "in_progress"): "submitted",
    ("Permit Package", "completed"): "completed",
}

_R_AND_R_FINAL_STEP = "Panel Reinstallation"


def validate_job_type(job_type: str) -> str:
    if job_type not in JOB_TYPES:
        raise InvalidStateError(f"unknown job type '{job_type}'")
    return job_type


def validate_job_status(status: str) -> str:
    if status not in JOB_STATUSES:
        raise InvalidStateError(f"unknown job status '{status}'")
    return status


def validate_step_status(status: str) -> str:
    if status not in STEP_STATUSES:
        raise InvalidStateError(f"unknown step status '{status}'")
    return status


def validate_step(job_type: str, step_name: str) -> str:
    if step_name not in WORKFLOW_STEPS.get(job_type, ()):
        raise InvalidStateError(f"step '{step_name}' is not defined for {job_type} jobs")
    return step_name


def default_step_status(job_type: str, step_name: str, job_status: str) -> str:
    in_progress_when, completed_when = _DEFAULT_STEP_STATUS[job_type][step_name]
    if job_status in completed_when:
        return "completed"
    if job_status in in_progress_when:
        return "in_progress"
    return "pending"


def derive_step_statuses(
    job_type: str,
    job_status: str,
    stored: dict[str, str] | None = None,
) -> list[StepView]:
    stored = stored or {}
    views: list[StepView] = []
    for step_name in WORKFLOW_STEPS[job_type]:
        if step_name in stored:
            views.append(StepView(name=step_name, status=stored[step_name], explicit=True))
        else:
            views.append(
                StepView(name=step_name, status=default_step_status(job_type, step_name, job_status))
            )
    return views


def status_after_step_change(
    job_type: str,
    step_name: str,
    step_status: str,
    current_status: str,
) -> str:
    """Job status that results from setting ``step_name`` to ``step_status``."""
    validate_step(job_type, step_name)
    validate_step_status(step_status)

    if step_status == "pending":
        return current_status

    if job_type == "engineering":
        return _ENGINEERING_FORWARD[(step_name, step_status)]

    if step_status == "completed" and step_name == _R_AND_R_FINAL_STEP:
        return "completed"
    return "in_progress"


def read_details(raw: dict[str, Any] | None) -> JobDetails:
    return JobDetails.model_validate(raw or {})


def with_step_status(raw: dict[str, Any] | None, step_name: str, step_status: str) -> dict[str, Any]:
    """Copy of the details blob with one step entry set."""
    details = read_details(raw)
    steps = dict(details.workflow_steps)
    steps[step_name] = step_status
    details.workflow_steps = steps
    return details.to_json()


def reconcile_steps(job_type: str, raw: dict[str, Any] | None, job_status: str) -> dict[str, Any]:
    """Copy of the details blob with stored steps that contradict ``job_status`` dropped.

    Used when the job status is set directly rather than through a step, so
    the checklist falls back to the defaults for the new status.
    """
    details = read_details(raw)
    details.workflow_steps = {
        step_name: step_status
        for step_name, step_status in details.workflow_steps.items()
        if step_name in WORKFLOW_STEPS[job_type]
        and step_status == default_step_status(job_type, step_name, job_status)
    }
    return details.to_json()
