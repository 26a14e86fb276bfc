from __future__ import annotations

from solarops.core.errors import ConflictError, InvalidStateError, NotFoundError
from solarops.db.repositories import Repository
from solarops.types import COMPANY_TYPES, USER_ROLES


def validate_company_type(company_type: str) -> str:
    if company_type not in COMPANY_TYPES:
        raise InvalidStateError(f"unknown company type '{company_type}'")
    return company_type


def check_new_profile(repo: Repository, *, user_id: str, role: str, company_id: int | None) -> None:
    """Onboarding rules shared by the API and the CLI.

    The role must be known, the user must not already have a profile, and a
    company, when given, must exist and be of the same type as the role.
    """
    if role not in USER_ROLES:
        raise InvalidStateError(f"unknown role '{role}'")

    if repo.get_profile(user_id):
        raise ConflictError(f"profile for user {user_id} already exists")

    if company_id is None:
        return
    company = repo.get_company(company_id)
    if company is None:
        raise NotFoundError(f"company {company_id} not found")
    if company.type != role:
        raise InvalidStateError(f"a {company.type} company cannot have {role} members")
