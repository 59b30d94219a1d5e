"""
Aggregati stagionali di squadra (corner, cartellini, xG, gol), costruiti in modo incrementale.

Una chiamata economica (/fixtures?team&season&league) da' l'elenco delle partite concluse
con i gol; per ciascuna serve poi una chiamata costosa (/fixtures/statistics).
Le righe di team_fixture_cache fanno da checkpoint: chiamate successive scaricano solo
le partite mancanti, entro il call_budget, finche' la stagione non e' completa.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core.config import get_fixture_stats_delay_seconds
from matchday.models import Team, TeamFixtureCache, TeamSeasonStats
from matchday.schemas.fixtures import FormMatchItem
from matchday.schemas.provider import FixtureTeamStatistics, TeamFixtureResult
from matchday.services.api_sports_client import ApiSportsClient, ApiSportsError
from matchday.services.freshness import (
    CallBudget,
    CompleteSeasonPolicy,
    SameDayPolicy,
    as_utc,
    latest_fetch,
    record_fetch,
    utcnow,
)

logger = logging.getLogger(__name__)

MAX_FIXTURES_PER_SEASON = 38

TEAM_SEASON_RESOURCE = "teamSeasonCorners:{team_id}:{season}:{league_id}"

complete_season_policy = CompleteSeasonPolicy(MAX_FIXTURES_PER_SEASON)
team_marker_policy = SameDayPolicy(lambda log: log.fetched_at)


@dataclass
class TeamSeasonProgress:
    done: bool
    fetched: int = 0
    cached: int = 0
    total: int = 0


def team_season_resource(team_id: int, season: int, league_id: int) -> str:
    return TEAM_SEASON_RESOURCE.format(team_id=team_id, season=season, league_id=league_id)


def get_team_season_row(db: Session, team_id: int, season: int, league_id: int) -> TeamSeasonStats | None:
    return (
        db.query(TeamSeasonStats)
        .filter(
            TeamSeasonStats.team_id == team_id,
            TeamSeasonStats.season == season,
            TeamSeasonStats.league_id == league_id,
        )
        .first()
    )


def team_season_is_fresh(db: Session, team_id: int, season: int, league_id: int, now: datetime) -> bool:
    """Riga completa oppure marker di successo di oggi: nessuna chiamata necessaria."""
    if complete_season_policy.is_fresh(get_team_season_row(db, team_id, season, league_id), now):
        return True
    marker = latest_fetch(db, team_season_resource(team_id, season, league_id), success=True)
    return team_marker_policy.is_fresh(marker, now)


def _cached_fixture_ids(db: Session, team_id: int, season: int, league_id: int) -> set[int]:
    rows = (
        db.query(TeamFixtureCache.api_fixture_id)
        .filter(
            TeamFixtureCache.team_id == team_id,
            TeamFixtureCache.season == season,
            TeamFixtureCache.league_id == league_id,
        )
        .all()
    )
    return {r.api_fixture_id for r in rows}


def upsert_fixture_cache(
    db: Session,
    team_id: int,
    season: int,
    league_id: int,
    result: TeamFixtureResult,
    stats: FixtureTeamStatistics | None,
) -> TeamFixtureCache:
    """Checkpoint di una partita. Statistiche assenti = riga a zero (il provider non ha altro)."""
    stats = stats or FixtureTeamStatistics()
    row = (
        db.query(TeamFixtureCache)
        .filter(
            TeamFixtureCache.team_id == team_id,
            TeamFixtureCache.season == season,
            TeamFixtureCache.league_id == league_id,
            TeamFixtureCache.api_fixture_id == result.api_fixture_id,
        )
        .first()
    )
    values = {
        "fixture_date": as_utc(result.kickoff),
        "goals_for": result.goals_for,
        "goals_against": result.goals_against,
        "corners": stats.corners,
        "yellow_cards": stats.yellow_cards,
        "red_cards": stats.red_cards,
        "xg": stats.xg,
    }
    if row:
        for field, value in values.items():
            setattr(row, field, value)
    else:
        row = TeamFixtureCache(
            team_id=team_id,
            season=season,
            league_id=league_id,
            api_fixture_id=result.api_fixture_id,
            **values,
        )
        db.add(row)
    db.commit()
    return row


def aggregate_team_season(
    db: Session,
    team_id: int,
    season: int,
    league_id: int,
    league_name: str | None = None,
    api_fixture_ids: set[int] | None = None,
) -> TeamSeasonStats:
    """
    Somma le righe di team_fixture_cache della chiave in un'unica riga team_season_stats.
    xG sommato (e contato in xg_matches) solo sulle partite che lo riportano.
    """
    q = db.query(TeamFixtureCache).filter(
        TeamFixtureCache.team_id == team_id,
        TeamFixtureCache.season == season,
        TeamFixtureCache.league_id == league_id,
    )
    rows = q.all()
    if api_fixture_ids is not None:
        rows = [r for r in rows if r.api_fixture_id in api_fixture_ids]

    xg_values = [r.xg for r in rows if r.xg is not None]
    values = {
        "league": league_name,
        "minutes_played": 90 * len(rows),
        "goals_for": sum(r.goals_for or 0 for r in rows),
        "goals_against": sum(r.goals_against or 0 for r in rows),
        "corners": sum(r.corners or 0 for r in rows),
        "yellow_cards": sum(r.yellow_cards or 0 for r in rows),
        "red_cards": sum(r.red_cards or 0 for r in rows),
        "xg_for": sum(xg_values) if xg_values else None,
        "xg_matches": len(xg_values),
    }

    stats = get_team_season_row(db, team_id, season, league_id)
    if stats:
        for field, value in values.items():
            if field == "league" and value is None:
                continue
            setattr(stats, field, value)
    else:
        stats = TeamSeasonStats(team_id=team_id, season=season, league_id=league_id, **values)
        db.add(stats)
    db.commit()
    return stats


async def ensure_team_season(
    db: Session,
    team: Team,
    season: int,
    league_id: int,
    league_name: str | None = None,
    call_budget: int | CallBudget | None = None,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> TeamSeasonProgress:
    """
    Porta avanti l'aggregato stagionale della squadra.

    - riga completa o marker di oggi -> done, nessuna chiamata
    - una chiamata per l'elenco partite concluse (max MAX_FIXTURES_PER_SEASON, le piu' vecchie)
    - per ogni partita senza checkpoint: chiamata statistiche, finche' c'e' budget
    - tutte le partite con checkpoint -> aggregato + marker, done=True

    Il budget conta solo le chiamate /fixtures/statistics. Budget esaurito -> done=False;
    il chiamante riprova e le partite gia' in cache non vengono richiamate.
    """
    now = as_utc(now) if now else utcnow()
    resource = team_season_resource(team.id, season, league_id)
    budget = CallBudget(call_budget) if isinstance(call_budget, int) else call_budget

    if team_season_is_fresh(db, team.id, season, league_id, now):
        logger.debug("Aggregato %s completo o gia' aggiornato oggi", resource)
        return TeamSeasonProgress(done=True)
    if team.api_id is None:
        logger.warning("Team id=%s senza api_id: aggregato stagionale non disponibile", team.id)
        return TeamSeasonProgress(done=True)

    if client is None:
        client = ApiSportsClient()

    try:
        results = await client.get_team_season_fixtures(team.api_id, season, league_id)
    except (httpx.HTTPError, ApiSportsError):
        logger.exception("Elenco partite non disponibile per %s", resource)
        record_fetch(db, resource, False, "season fixtures request failed", now)
        return TeamSeasonProgress(done=False)
    capped = results[:MAX_FIXTURES_PER_SEASON]
    capped_ids = {r.api_fixture_id for r in capped}
    cached_ids = _cached_fixture_ids(db, team.id, season, league_id)

    delay = get_fixture_stats_delay_seconds()
    fetched = 0
    failed = 0
    calls = 0
    for result in capped:
        if result.api_fixture_id in cached_ids:
            continue
        if budget is not None and budget.exhausted:
            logger.info(
                "%s: budget esaurito (%s/%s in cache, %s scaricate in questo passaggio)",
                resource, len(cached_ids & capped_ids), len(capped), fetched,
            )
            return TeamSeasonProgress(
                done=False,
                fetched=fetched,
                cached=len(cached_ids & capped_ids),
                total=len(capped),
            )

        if calls > 0 and delay > 0:
            await asyncio.sleep(delay)
        calls += 1
        if budget is not None:
            budget.consume()

        try:
            stats = await client.get_fixture_team_statistics(result.api_fixture_id, team.api_id)
        except Exception:
            failed += 1
            logger.exception(
                "Statistiche fixture %s team %s non disponibili, riprovo al prossimo passaggio",
                result.api_fixture_id, team.api_id,
            )
            continue

        try:
            upsert_fixture_cache(db, team.id, season, league_id, result, stats)
        except SQLAlchemyError:
            db.rollback()
            failed += 1
            logger.exception("Errore salvataggio checkpoint fixture %s team %s", result.api_fixture_id, team.id)
            continue
        cached_ids.add(result.api_fixture_id)
        fetched += 1

    aggregate_team_season(db, team.id, season, league_id, league_name, capped_ids)
    cached = len(cached_ids & capped_ids)
    if failed:
        logger.warning("%s: %s partite senza statistiche, aggregato parziale (%s/%s)", resource, failed, cached, len(capped))
        return TeamSeasonProgress(done=False, fetched=fetched, cached=cached, total=len(capped))

    record_fetch(db, resource, True, f"{len(capped)} fixtures aggregated", now)
    logger.info("%s completato: %s partite (%s nuove)", resource, len(capped), fetched)
    return TeamSeasonProgress(done=True, fetched=fetched, cached=cached, total=len(capped))


def get_team_form(
    db: Session,
    team: Team,
    season: int,
    league_id: int,
    limit: int = 5,
) -> list[FormMatchItem]:
    """Ultime `limit` partite in cache (dalla piu' recente), con esito W/D/L."""
    rows = (
        db.query(TeamFixtureCache)
        .filter(
            TeamFixtureCache.team_id == team.id,
            TeamFixtureCache.season == season,
            TeamFixtureCache.league_id == league_id,
        )
        .order_by(TeamFixtureCache.fixture_date.desc(), TeamFixtureCache.api_fixture_id.desc())
        .limit(limit)
        .all()
    )
    form = []
    for r in rows:
        if r.goals_for > r.goals_against:
            result = "W"
        elif r.goals_for < r.goals_against:
            result = "L"
        else:
            result = "D"
        form.append(
            FormMatchItem(
                api_fixture_id=r.api_fixture_id,
                result=result,
                goals_for=r.goals_for,
                goals_against=r.goals_against,
            )
        )
    return form
