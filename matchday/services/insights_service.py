"""
Frasi statistiche sulle partite di oggi, lette solo dal DB (nessuna chiamata al provider).

Tre fonti:
- ultime 5 partite in team_fixture_cache (almeno 3 righe)
- aggregato stagionale team_season_stats
- statistiche stagionali dei giocatori

Ogni frase supera una soglia fissa; l'elenco viene mescolato e tagliato a MAX_INSIGHTS.
"""

import logging
import math
import random
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from matchday.core.config import get_required_league_ids
from matchday.models import Fixture, PlayerSeasonStats, Team, TeamFixtureCache
from matchday.schemas.fixtures import InsightItem
from matchday.services.freshness import as_utc, day_bounds, utcnow
from matchday.services.stats_service import fixture_league_id
from matchday.services.team_season_service import get_team_season_row

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 8
LAST_MATCHES = 5
MIN_LAST_MATCHES = 3


def _plural(value: float, word: str) -> str:
    return word if value == 1 else f"{word}s"


def _number(value: float) -> str:
    return f"{value:g}"


def _fraction_floor(rate: float, threshold: float) -> float:
    """Valore da citare dopo "over": parte intera da 1 in su, sotto 1 la soglia (o 0.5 se raggiunto e piu' alto)."""
    if rate >= 1:
        return math.floor(rate)
    return max(threshold, 0.5) if rate >= 0.5 else threshold


def _team_name(team: Team) -> str:
    return team.short_name or team.name


def _last_matches_insights(rows: list[TeamFixtureCache], name: str) -> list[tuple[str, str]]:
    if len(rows) < MIN_LAST_MATCHES:
        return []
    n = len(rows)
    goals_for = sum(r.goals_for or 0 for r in rows) / n
    goals_against = sum(r.goals_against or 0 for r in rows) / n
    corners = sum(r.corners or 0 for r in rows) / n
    cards = sum((r.yellow_cards or 0) + (r.red_cards or 0) for r in rows) / n

    texts = []
    if goals_for >= 1.5:
        floor = math.floor(goals_for)
        texts.append(f"{name} have averaged over {floor} {_plural(floor, 'goal')} a game in their last {n} matches.")
    if 0 < goals_against <= 1.2:
        ceiling = round((math.floor(goals_against * 10) + 1) / 10, 1)
        texts.append(f"{name} have conceded under {_number(ceiling)} goals per game in their last {n} matches.")
    if corners >= 4:
        texts.append(f"{name} have averaged over {math.floor(corners)} corners per game in their last {n} matches.")
    if cards >= 2:
        texts.append(f"{name} have averaged over {math.floor(cards)} cards per game in their last {n} matches.")
    return [("team_last5", text) for text in texts]


def _season_insights(db: Session, team: Team, season: int, league_id: int, name: str) -> list[tuple[str, str]]:
    row = get_team_season_row(db, team.id, season, league_id)
    if row is None:
        return []
    matches = (row.minutes_played or 0) / 90
    if matches < 1:
        return []
    goals = (row.goals_for or 0) / matches
    corners = (row.corners or 0) / matches
    cards = ((row.yellow_cards or 0) + (row.red_cards or 0)) / matches

    texts = []
    if goals >= 1.5:
        floor = math.floor(goals)
        texts.append(f"{name} average over {floor} {_plural(floor, 'goal')} per game this season.")
    if corners >= 5:
        texts.append(f"{name} average over {math.floor(corners)} corners per game this season.")
    if cards >= 2:
        texts.append(f"{name} average over {math.floor(cards)} cards per game this season.")
    return [("team_season", text) for text in texts]


def _player_insights(row: PlayerSeasonStats, team_name: str) -> list[tuple[str, str]]:
    appearances = row.appearances or (1 if (row.minutes or 0) > 0 else 0)
    appearances = max(1, appearances)
    label = f"{row.player.name} ({team_name})"
    goals = (row.goals or 0) / appearances
    assists = (row.assists or 0) / appearances
    fouls = (row.fouls or 0) / appearances
    shots = (row.shots or 0) / appearances
    tackles = (row.tackles or 0) / appearances

    texts = []
    if goals >= 0.3:
        value = _fraction_floor(goals, 0.3)
        texts.append(f"{label} has averaged over {_number(value)} {_plural(value, 'goal')} per game this season.")
    if fouls >= 0.8:
        value = _fraction_floor(fouls, 0.8)
        texts.append(f"{label} has averaged over {_number(value)} {_plural(value, 'foul')} per game this season.")
    if 0 < shots <= 2.5:
        ceiling = (math.floor(shots * 2) + 1) / 2
        texts.append(f"{label} has averaged under {_number(ceiling)} shots per game this season.")
    if shots >= 2:
        floor = math.floor(shots)
        texts.append(f"{label} has averaged over {floor} {_plural(floor, 'shot')} per game this season.")
    if assists >= 0.2:
        value = _fraction_floor(assists, 0.2)
        texts.append(f"{label} has averaged over {_number(value)} {_plural(value, 'assist')} per game this season.")
    if tackles >= 1.5:
        floor = math.floor(tackles)
        texts.append(f"{label} has averaged over {floor} {_plural(floor, 'tackle')} per game this season.")
    return [("player_season", text) for text in texts]


def _team_insights(db: Session, fixture: Fixture, team: Team, league_id: int) -> list[tuple[str, str]]:
    name = _team_name(team)
    last_rows = (
        db.query(TeamFixtureCache)
        .filter(
            TeamFixtureCache.team_id == team.id,
            TeamFixtureCache.season == fixture.season,
            TeamFixtureCache.league_id == league_id,
        )
        .order_by(TeamFixtureCache.fixture_date.desc(), TeamFixtureCache.api_fixture_id.desc())
        .limit(LAST_MATCHES)
        .all()
    )
    found = _last_matches_insights(last_rows, name)
    found += _season_insights(db, team, fixture.season, league_id, name)

    players = (
        db.query(PlayerSeasonStats)
        .options(joinedload(PlayerSeasonStats.player))
        .filter(
            PlayerSeasonStats.team_id == team.id,
            PlayerSeasonStats.season == fixture.season,
            PlayerSeasonStats.league_id == league_id,
        )
        .all()
    )
    for row in players:
        found += _player_insights(row, name)
    return found


def generate_insights(
    db: Session,
    now: datetime | None = None,
    league_ids: list[int] | None = None,
    rng: random.Random | None = None,
) -> list[InsightItem]:
    """
    Insights per le partite di oggi nelle competizioni richieste (REQUIRED_LEAGUE_IDS).
    Una squadra che gioca piu' partite nel giorno viene considerata una volta sola.
    """
    now = as_utc(now) if now else utcnow()
    if league_ids is None:
        league_ids = get_required_league_ids()
    start, end = day_bounds(now)

    q = (
        db.query(Fixture)
        .options(joinedload(Fixture.home_team), joinedload(Fixture.away_team))
        .filter(Fixture.kickoff >= start, Fixture.kickoff < end)
    )
    if league_ids:
        q = q.filter(Fixture.league_id.in_(league_ids))
    fixtures = q.order_by(Fixture.kickoff, Fixture.id).all()

    insights: list[InsightItem] = []
    seen_teams: set[int] = set()
    for fixture in fixtures:
        league_id = fixture_league_id(fixture)
        if league_id is None:
            continue
        href = f"/api/fixtures/{fixture.id}/stats"
        for team in (fixture.home_team, fixture.away_team):
            if team.id in seen_teams:
                continue
            seen_teams.add(team.id)
            for kind, text in _team_insights(db, fixture, team, league_id):
                insights.append(InsightItem(type=kind, text=text, fixture_id=fixture.id, href=href))

    (rng or random).shuffle(insights)
    logger.info("Insights di oggi: %s candidati su %s fixture", len(insights), len(fixtures))
    return insights[:MAX_INSIGHTS]
