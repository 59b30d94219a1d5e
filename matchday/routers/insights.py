"""
API Insights: frasi statistiche sulle partite di oggi, solo dal DB.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.routers.common import error_response
from matchday.schemas.fixtures import InsightItem
from matchday.services.insights_service import generate_insights

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.get("", response_model=list[InsightItem])
def insights_today(db: Session = Depends(get_db)):
    """Al massimo 8 insights, in ordine casuale, sulle partite di oggi."""
    try:
        return generate_insights(db)
    except Exception as e:
        return error_response(e, "Errore insights di oggi")
