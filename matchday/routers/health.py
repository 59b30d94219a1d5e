"""Health check router."""

from fastapi import APIRouter

from matchday.services.freshness import day_key, utcnow

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Health check; `day` e' il giorno corrente nel fuso di riferimento (chiave della cache fixture)."""
    return {"status": "healthy", "day": day_key(utcnow())}
