"""
Punteggio live per fixture.

Macchina a stati sul tempo rispetto al kickoff:
- prima di kickoff - 10 min: non live, nessuna chiamata
- negli ultimi 10 min prima del kickoff: 0-0 sintetico "Pre", nessuna chiamata
- riga in cache con stato terminale: servita sempre (il risultato finale non cambia)
- in partita: cache fresca (<= 90 s) servita, altrimenti chiamata al provider
- oltre la durata plausibile (kickoff + 120 min): un'ultima chiamata (marker liveFinal:),
  poi stato forzato a FT senza minuti
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from matchday.models import Fixture, LiveScoreCache
from matchday.schemas.provider import LiveFixture
from matchday.services.api_sports_client import ApiSportsClient
from matchday.services.freshness import LiveScorePolicy, as_utc, latest_fetch, record_fetch, utcnow

logger = logging.getLogger(__name__)

LIVE_TTL = timedelta(seconds=90)
PRE_MATCH_BUFFER = timedelta(minutes=10)
MATCH_WINDOW = timedelta(minutes=120)
TERMINAL_STATUSES = frozenset({"FT", "AET", "PEN", "ABD", "AWD", "WO", "CAN"})

LIVE_FINAL_RESOURCE = "liveFinal:{fixture_id}"

# Cache-Control max-age suggerito al router per ciascun caso
MAX_AGE_PRE = 60
MAX_AGE_LIVE = 90
MAX_AGE_FINAL = 3600
MAX_AGE_ERROR = 30

live_policy = LiveScorePolicy(LIVE_TTL, TERMINAL_STATUSES)


@dataclass
class LiveResult:
    live: bool
    home_goals: int | None = None
    away_goals: int | None = None
    elapsed_minutes: int | None = None
    status_short: str | None = None
    reason: str | None = None
    max_age: int = MAX_AGE_LIVE


def _from_row(row: LiveScoreCache, past_window: bool, reason: str, max_age: int) -> LiveResult:
    return LiveResult(
        live=True,
        home_goals=row.home_goals,
        away_goals=row.away_goals,
        elapsed_minutes=None if past_window else row.elapsed_minutes,
        status_short=row.status_short,
        reason=reason,
        max_age=max_age,
    )


def _placeholder(reason: str) -> LiveResult:
    return LiveResult(
        live=True,
        home_goals=0,
        away_goals=0,
        elapsed_minutes=None,
        status_short="?",
        reason=reason,
        max_age=MAX_AGE_ERROR,
    )


def _forced_final(row: LiveScoreCache | None, reason: str) -> LiveResult:
    return LiveResult(
        live=True,
        home_goals=row.home_goals if row else 0,
        away_goals=row.away_goals if row else 0,
        elapsed_minutes=None,
        status_short="FT",
        reason=reason,
        max_age=MAX_AGE_FINAL,
    )


def _store(db: Session, fixture: Fixture, data: LiveFixture, now: datetime) -> LiveScoreCache:
    """Upsert live_score_cache e aggiorna lo stato della fixture."""
    row = db.get(LiveScoreCache, fixture.id)
    if row is None:
        row = LiveScoreCache(fixture_id=fixture.id)
        db.add(row)
    row.home_goals = data.home_goals
    row.away_goals = data.away_goals
    row.elapsed_minutes = data.elapsed
    row.status_short = data.status_short
    row.cached_at = now
    fixture.status = data.status_short
    db.commit()
    return row


async def get_live(
    db: Session,
    fixture: Fixture,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> LiveResult:
    now = as_utc(now) if now else utcnow()
    kickoff = as_utc(fixture.kickoff)

    if now < kickoff - PRE_MATCH_BUFFER:
        return LiveResult(live=False, reason="not_started", max_age=MAX_AGE_PRE)
    if now < kickoff:
        return LiveResult(
            live=True,
            home_goals=0,
            away_goals=0,
            elapsed_minutes=None,
            status_short="Pre",
            reason="pre_match",
            max_age=MAX_AGE_PRE,
        )

    past_window = now > kickoff + MATCH_WINDOW
    row = db.get(LiveScoreCache, fixture.id)

    if live_policy.is_terminal(row):
        return _from_row(row, past_window, "final", MAX_AGE_FINAL)
    if fixture.api_id is None:
        return _placeholder("no_api_id")

    if not past_window:
        if live_policy.is_fresh(row, now):
            return _from_row(row, False, "cache", MAX_AGE_LIVE)

        if client is None:
            client = ApiSportsClient()
        try:
            data = await client.get_fixture_by_id(fixture.api_id)
            if data is None:
                return _placeholder("no_data")
            row = _store(db, fixture, data, now)
        except Exception:
            db.rollback()
            logger.exception("Errore punteggio live fixture id=%s api_id=%s", fixture.id, fixture.api_id)
            if row is not None:
                return _from_row(row, False, "stale", MAX_AGE_ERROR)
            return _placeholder("error")
        max_age = MAX_AGE_FINAL if live_policy.is_terminal(row) else MAX_AGE_LIVE
        return _from_row(row, False, "provider", max_age)

    # Oltre la durata plausibile: una sola chiamata per ottenere il risultato finale
    resource = LIVE_FINAL_RESOURCE.format(fixture_id=fixture.id)
    if latest_fetch(db, resource, success=None) is not None:
        return _forced_final(row, "forced_final")

    if client is None:
        client = ApiSportsClient()
    try:
        data = await client.get_fixture_by_id(fixture.api_id)
        if data is not None and data.status_short in TERMINAL_STATUSES:
            row = _store(db, fixture, data, now)
            record_fetch(db, resource, True, data.status_short, now)
            return _from_row(row, True, "final", MAX_AGE_FINAL)
        record_fetch(db, resource, False, data.status_short if data else "no data", now)
    except Exception as e:
        db.rollback()
        logger.exception("Errore chiamata finale fixture id=%s api_id=%s", fixture.id, fixture.api_id)
        record_fetch(db, resource, False, f"{type(e).__name__}: {e}", now)
    return _forced_final(row, "forced_final")
