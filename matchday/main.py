"""Matchday Stats: partite del giorno e statistiche pre-partita con cache su API-Football."""

import logging

from fastapi import FastAPI

from matchday.core.config import get_log_level
from matchday.core.database import init_db
from matchday.routers import (
    api_test_router,
    db_status_router,
    debug_router,
    fixtures_router,
    health_router,
    insights_router,
    teams_router,
    warm_router,
)
from matchday.services.fixtures_service import FixtureSynchronizer

app = FastAPI(
    title="Matchday Stats",
    description="Daily football fixtures and pre-match statistics, mirrored from API-Football.",
    version="0.1.0",
)

app.include_router(health_router)
app.include_router(db_status_router)
app.include_router(api_test_router)
app.include_router(fixtures_router)
app.include_router(warm_router)
app.include_router(teams_router)
app.include_router(insights_router)
app.include_router(debug_router)

app.state.fixture_synchronizer = FixtureSynchronizer()


@app.on_event("startup")
def on_startup():
    """Configura il logging e crea le tabelle mancanti."""
    logging.basicConfig(level=get_log_level(), format="%(levelname)s [%(name)s] %(message)s")
    init_db()
