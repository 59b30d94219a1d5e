"""API Teams: elenco squadre e refresh degli stemmi."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.models import Team
from matchday.routers.common import error_response
from matchday.schemas.fixtures import TeamSummary
from matchday.services.crests_service import refresh_team_crests

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/teams", tags=["teams"])


@router.get("", response_model=list[TeamSummary])
def list_teams(db: Session = Depends(get_db)):
    """Tutte le squadre viste finora, in ordine alfabetico."""
    return db.query(Team).order_by(Team.name).all()


@router.post("/crests/refresh")
async def crests_refresh(db: Session = Depends(get_db)):
    """Scarica gli stemmi delle squadre delle competizioni seguite."""
    try:
        return await refresh_team_crests(db)
    except Exception as e:
        return error_response(e, "Errore refresh stemmi")
