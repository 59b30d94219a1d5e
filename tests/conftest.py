from __future__ import annotations

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="matchday-tests-")

# Il modulo database legge DATABASE_URL all'import: va impostato prima di importare matchday
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'matchday.db')}"
os.environ["API_SPORTS_KEY"] = "test-key"
os.environ["FOOTBALL_API_DELAY_MS"] = "0"
os.environ["REQUIRED_LEAGUE_IDS"] = "39"
os.environ["REFERENCE_TIMEZONE"] = "Europe/London"

import pytest  # noqa: E402

from matchday.core.database import Base, SessionLocal, engine, init_db  # noqa: E402
from tests.factories import FakeApiClient  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_client() -> FakeApiClient:
    return FakeApiClient()
