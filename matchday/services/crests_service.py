"""Stemmi squadra: per le squadre delle competizioni seguite, logo da /teams?id=..."""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from matchday.core.config import get_required_league_ids
from matchday.models import Fixture, Team
from matchday.services.api_sports_client import ApiSportsClient

logger = logging.getLogger(__name__)


def teams_in_required_leagues(db: Session, league_ids: list[int]) -> list[Team]:
    fixture_filter = Fixture.league_id.in_(league_ids)
    home_ids = db.query(Fixture.home_team_id).filter(fixture_filter)
    away_ids = db.query(Fixture.away_team_id).filter(fixture_filter)
    return (
        db.query(Team)
        .filter(Team.api_id.isnot(None))
        .filter(or_(Team.id.in_(home_ids), Team.id.in_(away_ids)))
        .order_by(Team.id)
        .all()
    )


async def refresh_team_crests(
    db: Session,
    client: ApiSportsClient | None = None,
    league_ids: list[int] | None = None,
) -> dict[str, int]:
    """Aggiorna crest_url di ogni squadra; gli errori per singola squadra vengono contati e loggati."""
    if league_ids is None:
        league_ids = get_required_league_ids()
    teams = teams_in_required_leagues(db, league_ids)
    if teams and client is None:
        client = ApiSportsClient()

    updated = 0
    failed = 0
    for team in teams:
        try:
            logo_url = await client.get_team_logo(team.api_id)
            team.crest_url = logo_url
            db.commit()
            if logo_url:
                updated += 1
        except Exception:
            db.rollback()
            failed += 1
            logger.exception("Stemma non disponibile per team id=%s api_id=%s", team.id, team.api_id)

    logger.info("Refresh stemmi: %s aggiornati, %s falliti (%s squadre)", updated, failed, len(teams))
    return {"updated": updated, "failed": failed}
