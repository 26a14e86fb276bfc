from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from solarops.config import get_settings
from solarops.core.orchestrator import JobTransitionOrchestrator
from solarops.db.session import get_db_session
from solarops.types import CallerContext


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_caller_id(request: Request) -> str:
    """Opaque user id set by the authenticating proxy in front of the API."""
    header = get_settings().caller_header
    user_id = request.headers.get(header, "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail=f"Missing {header} header")
    return user_id


def get_caller(user_id: str = Depends(get_caller_id), db: Session = Depends(get_db)) -> CallerContext:
    return JobTransitionOrchestrator(db).resolve_caller(user_id)
