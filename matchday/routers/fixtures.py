"""
API Fixtures: partite di oggi, refresh manuale, statistiche partita e punteggio live.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.routers.common import error_response, get_fixture_synchronizer
from matchday.schemas.fixtures import FixtureStatsResponse, FixtureSummary, LiveScoreResponse
from matchday.services.fixtures_service import FixtureSynchronizer
from matchday.services.live_score_service import get_live
from matchday.services.stats_service import get_fixture, get_fixture_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fixtures", tags=["fixtures"])

STATS_MAX_AGE = 300


@router.get("/today", response_model=list[FixtureSummary])
async def fixtures_today(synchronizer: FixtureSynchronizer = Depends(get_fixture_synchronizer)):
    """Partite di oggi (fuso di riferimento). Dal DB se gia' sincronizzate oggi, altrimenti dal provider."""
    try:
        return await synchronizer.ensure_today()
    except Exception as e:
        return error_response(e, "Errore fixture di oggi")


@router.post("/refresh")
def refresh_fixtures(synchronizer: FixtureSynchronizer = Depends(get_fixture_synchronizer)):
    """Svuota la cache di oggi: la prossima GET /today richiama il provider."""
    deleted = synchronizer.clear_today()
    return {"ok": True, "deleted": deleted}


@router.get("/{fixture_id}/stats", response_model=FixtureStatsResponse)
async def fixture_stats(fixture_id: int, response: Response, db: Session = Depends(get_db)):
    """
    Statistiche giocatori e squadre per la partita.
    Le cache scadute vengono aggiornate prima della lettura. 404 se la fixture non esiste.
    """
    try:
        stats = await get_fixture_stats(db, fixture_id)
    except Exception as e:
        return error_response(e, f"Errore statistiche fixture {fixture_id}", fixture_id=fixture_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Fixture {fixture_id} non trovata")
    response.headers["Cache-Control"] = f"public, max-age={STATS_MAX_AGE}"
    return stats


@router.get("/{fixture_id}/live", response_model=LiveScoreResponse)
async def fixture_live(fixture_id: int, response: Response, db: Session = Depends(get_db)):
    """Punteggio live con TTL breve; risultato finale in cache per sempre."""
    fixture = get_fixture(db, fixture_id)
    if fixture is None:
        raise HTTPException(status_code=404, detail=f"Fixture {fixture_id} non trovata")
    try:
        result = await get_live(db, fixture)
    except Exception as e:
        return error_response(e, f"Errore live fixture {fixture_id}", fixture_id=fixture_id)
    response.headers["Cache-Control"] = f"public, max-age={result.max_age}"
    return LiveScoreResponse(
        live=result.live,
        home_goals=result.home_goals,
        away_goals=result.away_goals,
        elapsed_minutes=result.elapsed_minutes,
        status_short=result.status_short,
        reason=result.reason,
    )
