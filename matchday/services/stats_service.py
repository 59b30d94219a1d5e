"""
Statistiche di una fixture per la pagina partita.

Prima porta avanti le cache (giocatori, aggregati di squadra, formazione), poi legge
sempre dal DB: un errore di un componente viene loggato e si serve quello che c'e'.
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from matchday.core.config import get_fixture_stats_delay_seconds
from matchday.ingestion.lineups_service import ensure_lineup, get_lineup_for_fixture
from matchday.models import Fixture, PlayerSeasonStats, Team, TeamSeasonStats
from matchday.schemas.fixtures import (
    FixtureStatsResponse,
    PlayerStatsRow,
    TeamPlayersBlock,
    TeamStatsBlock,
    TeamStatsPerMatch,
)
from matchday.services.api_sports_client import LEAGUE_NAME_TO_ID, ApiSportsClient
from matchday.services.fixtures_service import fixture_summary
from matchday.services.freshness import as_utc, utcnow
from matchday.services.player_ingestion_service import ensure_player_stats
from matchday.services.team_season_service import ensure_team_season, get_team_form

logger = logging.getLogger(__name__)


def get_fixture(db: Session, fixture_id: int) -> Fixture | None:
    return (
        db.query(Fixture)
        .options(joinedload(Fixture.home_team), joinedload(Fixture.away_team))
        .filter(Fixture.id == fixture_id)
        .first()
    )


def fixture_league_id(fixture: Fixture) -> int | None:
    """league_id della fixture, ricavato dal nome competizione se il provider non l'ha dato."""
    if fixture.league_id is not None:
        return fixture.league_id
    if fixture.league:
        return LEAGUE_NAME_TO_ID.get(fixture.league)
    return None


def per_match(row: TeamSeasonStats | None) -> TeamStatsPerMatch:
    """Medie per partita; xG solo sulle partite che lo riportano."""
    if row is None:
        return TeamStatsPerMatch()
    matches = (row.minutes_played or 0) // 90
    if matches <= 0:
        return TeamStatsPerMatch()
    xg = None
    if row.xg_for is not None and row.xg_matches:
        xg = row.xg_for / row.xg_matches
    return TeamStatsPerMatch(
        matches=matches,
        xg=xg,
        goals=row.goals_for / matches,
        conceded=row.goals_against / matches,
        corners=row.corners / matches,
        cards=(row.yellow_cards + row.red_cards) / matches,
    )


async def _refresh_caches(
    db: Session,
    fixture: Fixture,
    league_id: int | None,
    client: ApiSportsClient | None,
    now: datetime,
) -> None:
    delay = get_fixture_stats_delay_seconds()
    teams = [fixture.home_team, fixture.away_team]

    if league_id is not None:
        for idx, team in enumerate(teams):
            try:
                await ensure_player_stats(db, team, fixture.season, league_id, fixture.league, client=client, now=now)
            except RuntimeError:
                raise
            except Exception:
                db.rollback()
                logger.exception("Statistiche giocatori non aggiornate per team_id=%s", team.id)
            if idx < len(teams) - 1 and delay > 0:
                await asyncio.sleep(delay)

        for team in teams:
            try:
                await ensure_team_season(
                    db, team, fixture.season, league_id, fixture.league, client=client, now=now,
                )
            except RuntimeError:
                raise
            except Exception:
                db.rollback()
                logger.exception("Aggregato stagionale non aggiornato per team_id=%s", team.id)
    else:
        logger.warning("Fixture id=%s senza league_id: salto statistiche giocatori e squadra", fixture.id)

    await ensure_lineup(db, fixture, client=client, now=now)


def _players_block(
    db: Session,
    team: Team,
    season: int,
    league_id: int | None,
    lineup: dict[int, str],
) -> TeamPlayersBlock:
    q = (
        db.query(PlayerSeasonStats)
        .options(joinedload(PlayerSeasonStats.player))
        .filter(PlayerSeasonStats.team_id == team.id, PlayerSeasonStats.season == season)
    )
    if league_id is not None:
        q = q.filter(PlayerSeasonStats.league_id == league_id)
    rows = q.order_by(PlayerSeasonStats.minutes.desc(), PlayerSeasonStats.id).all()

    players = []
    for row in rows:
        # 0 presenze ma minuti giocati: almeno una presenza
        appearances = row.appearances if row.appearances > 0 else (1 if row.minutes > 0 else 0)
        players.append(
            PlayerStatsRow(
                player_id=row.player_id,
                name=row.player.name,
                position=row.player.position,
                shirt_number=row.player.shirt_number,
                appearances=appearances,
                minutes=row.minutes,
                goals=row.goals,
                assists=row.assists,
                fouls=row.fouls,
                shots=row.shots,
                shots_on_target=row.shots_on_target,
                tackles=row.tackles,
                yellow_cards=row.yellow_cards,
                red_cards=row.red_cards,
                lineup_status=lineup.get(row.player_id),
            )
        )
    return TeamPlayersBlock(
        team_id=team.id,
        team_name=team.name,
        team_short_name=team.short_name,
        players=players,
    )


def _team_stats_block(db: Session, fixture: Fixture, league_id: int | None) -> TeamStatsBlock | None:
    if league_id is None:
        return None
    rows = (
        db.query(TeamSeasonStats)
        .filter(
            TeamSeasonStats.team_id.in_([fixture.home_team_id, fixture.away_team_id]),
            TeamSeasonStats.season == fixture.season,
            TeamSeasonStats.league_id == league_id,
        )
        .all()
    )
    by_team = {r.team_id: r for r in rows}
    if not by_team:
        return None
    return TeamStatsBlock(
        home=per_match(by_team.get(fixture.home_team_id)),
        away=per_match(by_team.get(fixture.away_team_id)),
        home_form=get_team_form(db, fixture.home_team, fixture.season, league_id),
        away_form=get_team_form(db, fixture.away_team, fixture.season, league_id),
    )


async def get_fixture_stats(
    db: Session,
    fixture_id: int,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> FixtureStatsResponse | None:
    """None se la fixture non esiste. Altrimenti aggiorna le cache scadute e legge dal DB."""
    now = as_utc(now) if now else utcnow()
    fixture = get_fixture(db, fixture_id)
    if fixture is None:
        return None

    league_id = fixture_league_id(fixture)
    await _refresh_caches(db, fixture, league_id, client, now)

    lineup = get_lineup_for_fixture(db, fixture.id)
    teams = [
        _players_block(db, team, fixture.season, league_id, lineup.get(team.id, {}))
        for team in (fixture.home_team, fixture.away_team)
    ]
    return FixtureStatsResponse(
        fixture=fixture_summary(fixture),
        has_lineup=bool(lineup),
        teams=teams,
        team_stats=_team_stats_block(db, fixture, league_id),
    )
