"""
Riscaldamento delle cache per le partite di oggi, a passi limitati dal call_budget.

warm_step() e' un singolo passo: fixture di oggi, poi per ogni squadra statistiche
giocatori e aggregato stagionale finche' c'e' budget. Il ciclo (chiamate ripetute
fino a done=True) sta fuori: matchday.warm_today o l'endpoint /api/warm-today.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from matchday.ingestion.lineups_service import ensure_lineup
from matchday.models import Team
from matchday.services.api_sports_client import ApiSportsClient
from matchday.services.fixtures_service import FixtureSynchronizer
from matchday.services.freshness import CallBudget, as_utc, utcnow
from matchday.services.player_ingestion_service import ensure_player_stats, player_stats_are_fresh
from matchday.services.stats_service import fixture_league_id, get_fixture
from matchday.services.team_season_service import ensure_team_season, team_season_is_fresh

logger = logging.getLogger(__name__)

WARM_PARTS = ("home", "away", "teamstats-home", "teamstats-away", "lineup")


@dataclass
class WarmProgress:
    done: bool
    fixtures: int = 0
    teams_complete: int = 0
    teams_pending: int = 0
    calls_used: int = 0
    errors: list[str] = field(default_factory=list)


async def _warm_team(
    db: Session,
    team: Team,
    season: int,
    league_id: int,
    league_name: str | None,
    budget: CallBudget,
    client: ApiSportsClient | None,
    now: datetime,
) -> bool:
    """True quando statistiche giocatori e aggregato stagionale della squadra sono a posto."""
    if not player_stats_are_fresh(db, team.id, season, league_id, now):
        if budget.exhausted:
            return False
        budget.consume()
        await ensure_player_stats(db, team, season, league_id, league_name, client=client, now=now)

    if team_season_is_fresh(db, team.id, season, league_id, now):
        return True
    if budget.exhausted:
        return False
    progress = await ensure_team_season(
        db, team, season, league_id, league_name, call_budget=budget, client=client, now=now,
    )
    return progress.done


async def warm_step(
    db: Session,
    synchronizer: FixtureSynchronizer,
    call_budget: int | CallBudget,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> WarmProgress:
    """
    Un passo di riscaldamento. done=True quando tutte le squadre delle partite di oggi
    (competizioni seguite) hanno statistiche e aggregati completi.
    Le formazioni sono verificate per ogni fixture (solo nella finestra pre-partita).
    """
    now = as_utc(now) if now else utcnow()
    budget = CallBudget(call_budget) if isinstance(call_budget, int) else call_budget
    start_remaining = budget.remaining

    summaries = await synchronizer.ensure_today(now)
    league_ids = set(synchronizer.league_ids)
    if league_ids:
        summaries = [s for s in summaries if s.league_id in league_ids]

    progress = WarmProgress(done=False, fixtures=len(summaries))
    for summary in summaries:
        fixture = get_fixture(db, summary.id)
        if fixture is None:
            continue
        league_id = fixture_league_id(fixture)

        for team in (fixture.home_team, fixture.away_team):
            if league_id is None:
                progress.teams_complete += 1
                continue
            try:
                complete = await _warm_team(
                    db, team, fixture.season, league_id, fixture.league, budget, client, now,
                )
            except RuntimeError:
                raise
            except Exception as e:
                db.rollback()
                logger.exception("Warm team_id=%s fixture id=%s fallito", team.id, fixture.id)
                progress.errors.append(f"team {team.id}: {type(e).__name__}: {e}")
                complete = False
            if complete:
                progress.teams_complete += 1
            else:
                progress.teams_pending += 1

        await ensure_lineup(db, fixture, client=client, now=now)

    progress.calls_used = start_remaining - budget.remaining
    progress.done = progress.teams_pending == 0
    logger.info(
        "Warm step: %s fixture, squadre complete=%s in attesa=%s, chiamate=%s",
        progress.fixtures, progress.teams_complete, progress.teams_pending, progress.calls_used,
    )
    return progress


async def warm_fixture_part(
    db: Session,
    fixture_id: int,
    part: str,
    call_budget: int | CallBudget | None = None,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> dict | None:
    """
    Riscaldamento a pezzi di una singola fixture (una richiesta breve per pezzo):
    home | away | teamstats-home | teamstats-away | lineup.
    None se la fixture non esiste; ValueError per un pezzo sconosciuto.
    """
    if part not in WARM_PARTS:
        raise ValueError(f"Invalid part {part!r}, expected one of: {'|'.join(WARM_PARTS)}")
    now = as_utc(now) if now else utcnow()
    fixture = get_fixture(db, fixture_id)
    if fixture is None:
        return None

    if part == "lineup":
        rows = await ensure_lineup(db, fixture, client=client, now=now)
        return {"ok": True, "fixture_id": fixture.id, "lineup_rows": rows}

    team = fixture.away_team if part.endswith("away") else fixture.home_team
    league_id = fixture_league_id(fixture)
    if league_id is None:
        return {"ok": False, "team_id": team.id, "error": "fixture without league id"}

    if part.startswith("teamstats-"):
        progress = await ensure_team_season(
            db, team, fixture.season, league_id, fixture.league,
            call_budget=call_budget, client=client, now=now,
        )
        return {
            "ok": True,
            "team_id": team.id,
            "done": progress.done,
            "fetched": progress.fetched,
            "cached": progress.cached,
            "total": progress.total,
        }

    stored = await ensure_player_stats(db, team, fixture.season, league_id, fixture.league, client=client, now=now)
    return {"ok": True, "team_id": team.id, "players": stored}
