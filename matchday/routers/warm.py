"""
Riscaldamento cache: un passo per tutte le partite di oggi, oppure un pezzo di una singola partita.
Ogni richiesta resta breve grazie al budget di chiamate; il chiamante ripete finche' done=true.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.routers.common import error_response, get_fixture_synchronizer
from matchday.services.fixtures_service import FixtureSynchronizer
from matchday.services.warm_service import WARM_PARTS, warm_fixture_part, warm_step

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["warm"])

DEFAULT_WARM_BUDGET = 10


@router.get("/warm-today")
async def warm_today(
    budget: int = Query(DEFAULT_WARM_BUDGET, ge=1, le=200),
    db: Session = Depends(get_db),
    synchronizer: FixtureSynchronizer = Depends(get_fixture_synchronizer),
):
    """Un passo di riscaldamento per le partite di oggi. done=false: richiamare."""
    try:
        progress = await warm_step(db, synchronizer, budget)
    except Exception as e:
        return error_response(e, "Errore warm-today")
    return {"ok": True, **asdict(progress)}


@router.get("/fixtures/{fixture_id}/warm")
async def warm_fixture(
    fixture_id: int,
    part: str = Query(..., description="|".join(WARM_PARTS)),
    budget: int | None = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Riscalda un pezzo della partita: home, away, teamstats-home, teamstats-away, lineup."""
    if part not in WARM_PARTS:
        raise HTTPException(
            status_code=400,
            detail=f"Missing or invalid query: part={'|'.join(WARM_PARTS)}",
        )
    try:
        result = await warm_fixture_part(db, fixture_id, part, call_budget=budget)
    except Exception as e:
        return error_response(e, f"Errore warm fixture {fixture_id} part={part}", fixture_id=fixture_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Fixture {fixture_id} non trovata")
    return result
