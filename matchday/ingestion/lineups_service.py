"""
Formazioni da API-Football per singola fixture.
Scaricate una sola volta, solo nei 30 minuti prima del calcio d'inizio.
Idempotente: INSERT ... ON CONFLICT (fixture_id, team_id, player_id) DO NOTHING.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.orm import Session

from matchday.models import Fixture, FixtureLineup, Player
from matchday.models.fixture_lineup import LINEUP_STARTING, LINEUP_SUBSTITUTE
from matchday.services.api_sports_client import ApiSportsClient
from matchday.services.freshness import WindowPolicy, as_utc, utcnow

logger = logging.getLogger(__name__)

LINEUP_WINDOW_BEFORE_KICKOFF = timedelta(minutes=30)

lineup_window = WindowPolicy(before=LINEUP_WINDOW_BEFORE_KICKOFF)


def has_lineup(db: Session, fixture_id: int) -> bool:
    return db.query(FixtureLineup.id).filter(FixtureLineup.fixture_id == fixture_id).first() is not None


def _players_by_api_id(db: Session, team_id: int, api_ids: list[int]) -> dict[int, int]:
    """api_id -> players.id, solo giocatori della squadra indicata."""
    if not api_ids:
        return {}
    rows = (
        db.query(Player.id, Player.api_id)
        .filter(Player.team_id == team_id, Player.api_id.in_(api_ids))
        .all()
    )
    return {r.api_id: r.id for r in rows}


def _insert_lineup_rows(db: Session, rows: list[dict]) -> None:
    """Bulk insert, le righe gia' presenti vengono ignorate."""
    if not rows:
        return
    db.execute(
        text("""
            INSERT INTO fixture_lineups (fixture_id, team_id, player_id, lineup_status)
            VALUES (:fixture_id, :team_id, :player_id, :lineup_status)
            ON CONFLICT (fixture_id, team_id, player_id) DO NOTHING
        """),
        rows,
    )


async def ensure_lineup(
    db: Session,
    fixture: Fixture,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> int:
    """
    Scarica e salva la formazione della fixture se:
    - non ci sono ancora righe per la fixture (mai riscaricata)
    - `now` e' in [kickoff - 30 min, kickoff]
    - la fixture ha un api_id

    Un errore del provider viene solo loggato: si riprova alla prossima richiesta nella finestra.
    Ritorna il numero di righe inviate all'insert.
    """
    now = as_utc(now) if now else utcnow()
    if has_lineup(db, fixture.id):
        return 0
    if lineup_window.is_fresh(fixture, now):
        return 0
    if fixture.api_id is None:
        return 0

    if client is None:
        client = ApiSportsClient()

    try:
        lineups = await client.get_fixture_lineups(fixture.api_id)
    except Exception:
        logger.exception("Errore formazioni fixture id=%s api_id=%s", fixture.id, fixture.api_id)
        return 0

    teams_by_api_id = {
        t.api_id: t.id
        for t in (fixture.home_team, fixture.away_team)
        if t is not None and t.api_id is not None
    }

    rows: list[dict] = []
    for lineup in lineups:
        team_id = teams_by_api_id.get(lineup.team_api_id)
        if team_id is None:
            logger.warning("Formazione fixture id=%s: squadra api_id=%s non in fixture", fixture.id, lineup.team_api_id)
            continue
        entries = [(p.api_id, LINEUP_STARTING) for p in lineup.start_xi]
        entries += [(p.api_id, LINEUP_SUBSTITUTE) for p in lineup.substitutes]
        known = _players_by_api_id(db, team_id, [api_id for api_id, _ in entries])
        for api_id, status in entries:
            player_id = known.get(api_id)
            if player_id is None:
                continue
            rows.append({
                "fixture_id": fixture.id,
                "team_id": team_id,
                "player_id": player_id,
                "lineup_status": status,
            })

    try:
        _insert_lineup_rows(db, rows)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Errore salvataggio formazioni fixture id=%s", fixture.id)
        return 0

    logger.info("Formazioni fixture id=%s: %s righe", fixture.id, len(rows))
    return len(rows)


def get_lineup_for_fixture(db: Session, fixture_id: int) -> dict[int, dict[int, str]]:
    """{team_id: {player_id: "starting" | "substitute"}}; vuoto = formazione non ancora scaricata."""
    lineup: dict[int, dict[int, str]] = {}
    rows = db.query(FixtureLineup).filter(FixtureLineup.fixture_id == fixture_id).all()
    for row in rows:
        lineup.setdefault(row.team_id, {})[row.player_id] = row.lineup_status
    return lineup
