"""Dipendenze e mappatura errori condivise dai router."""

import logging

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from matchday.services.api_sports_client import ApiSportsError
from matchday.services.fixtures_service import FixtureSynchronizer

logger = logging.getLogger(__name__)


def get_fixture_synchronizer(request: Request) -> FixtureSynchronizer:
    """Istanza unica creata all'avvio (app.state), cosi' il single-flight vale per tutto il processo."""
    synchronizer = getattr(request.app.state, "fixture_synchronizer", None)
    if synchronizer is None:
        synchronizer = FixtureSynchronizer()
        request.app.state.fixture_synchronizer = synchronizer
    return synchronizer


def error_response(e: Exception, context: str, **extra) -> JSONResponse:
    """
    Errori differenziati: 503 configurazione, 502 API esterna, 500 database o imprevisto.
    """
    if isinstance(e, httpx.HTTPStatusError):
        status, error = 502, "Errore comunicazione API-Sports"
        detail = f"HTTP {e.response.status_code}: {e.response.text[:200]}"
    elif isinstance(e, httpx.RequestError):
        status, error, detail = 502, "Errore di rete verso API-Sports", str(e)
    elif isinstance(e, ApiSportsError):
        status, error, detail = 502, "Errore restituito da API-Sports", str(e)[:300]
    elif isinstance(e, RuntimeError):
        status, error, detail = 503, "Configurazione mancante", str(e)
    elif isinstance(e, SQLAlchemyError):
        status, error, detail = 500, "Errore database", str(e)[:300]
    else:
        status, error, detail = 500, "Errore imprevisto", f"{type(e).__name__}: {e}"

    if status == 503:
        logger.warning("%s: %s", context, e)
    else:
        logger.exception("%s: %s", context, e)
    return JSONResponse(status_code=status, content={"ok": False, "error": error, "detail": detail, **extra})
