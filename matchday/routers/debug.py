"""
Endpoint di debug per svuotare le cache in modo mirato.
team-stats-markers: solo i marker degli aggregati (ripartenza incrementale);
player-stats: statistiche giocatori; fixtures: fixture, formazioni, live e tutti i marker;
all: tutte le tabelle, squadre comprese.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.services.maintenance_service import (
    clear_all,
    clear_fixtures,
    clear_player_stats,
    clear_team_stats_markers,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["Debug"])

CLEAR_TARGETS = {
    "team-stats-markers": clear_team_stats_markers,
    "player-stats": clear_player_stats,
    "fixtures": clear_fixtures,
    "all": clear_all,
}


@router.post("/clear/{target}")
def clear_cache(target: str, request: Request, db: Session = Depends(get_db)):
    action = CLEAR_TARGETS.get(target)
    if action is None:
        raise HTTPException(
            status_code=404,
            detail=f"Target sconosciuto: {target}. Valori: {', '.join(CLEAR_TARGETS)}",
        )
    deleted = action(db)
    if target in ("fixtures", "all"):
        synchronizer = getattr(request.app.state, "fixture_synchronizer", None)
        if synchronizer is not None:
            synchronizer.in_flight.clear()
    logger.info("Cache %s svuotata (%s righe)", target, deleted)
    return {"ok": True, "target": target, "deleted": deleted}
