from __future__ import annotations

from solarops.config import get_settings
from solarops.db.base import Base
from solarops.db.session import SessionLocal, engine
from solarops.db import models  # noqa: F401
from solarops.db.seed import seed_demo_data


def ensure_data_directories() -> None:
    get_settings().data_dir.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    inserted = 0
    if get_settings().seed_demo_data:
        with SessionLocal() as session:
            inserted = seed_demo_data(session)
    return {"seeded_records": inserted}
