from __future__ import annotations

import os

# Keep the module-level engine off the developer's real database file.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session

from secret_santa.database import build_engine, get_db, init_db
from secret_santa.main import app


@pytest.fixture()
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    # File-backed so separate sessions use separate connections (needed for race tests)
    eng = build_engine(f"sqlite:///{tmp_path / 'santa.sqlite'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture()
def client(engine: Engine) -> Generator[TestClient, None, None]:
    def _get_db() -> Generator[Session, None, None]:
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
