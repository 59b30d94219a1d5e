"""SQLAlchemy engine, session e dependency."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from matchday.core.config import get_database_url

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite (test/sviluppo locale): la stessa connessione puo' passare tra thread del pool
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


_database_url = get_database_url()

engine = create_engine(
    _database_url,
    echo=False,
    **_engine_kwargs(_database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependency that yields a DB session. Caller must close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Crea tutte le tabelle.
    I modelli devono essere importati prima per registrare i metadata.
    """
    from matchday.models import (  # noqa: F401
        api_fetch_log,
        fixture,
        fixture_lineup,
        live_score_cache,
        player,
        player_season_stats,
        team,
        team_fixture_cache,
        team_season_stats,
    )

    Base.metadata.create_all(bind=engine)
    logger.info("create_all completato")
