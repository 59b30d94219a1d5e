"""
Servizio di ingestion statistiche stagionali giocatori per squadra, stagione e competizione.
Chiama API-Sports /players (tutte le pagine), upsert in players e player_season_stats.
Al massimo un refresh ogni 24 ore per chiave (cooldown su updated_at o sul marker playerStats:).
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from matchday.models import Player, PlayerSeasonStats, Team
from matchday.schemas.provider import ProviderPlayerStats
from matchday.services.api_sports_client import ApiSportsClient
from matchday.services.freshness import CooldownPolicy, as_utc, latest_fetch, record_fetch, utcnow

logger = logging.getLogger(__name__)

PLAYER_STATS_COOLDOWN = timedelta(hours=24)
BATCH_SIZE = 10

PLAYER_STATS_RESOURCE = "playerStats:{team_id}:{season}:{league_id}"

STATS_DB_FIELDS = [
    "appearances",
    "minutes",
    "goals",
    "assists",
    "fouls",
    "shots",
    "shots_on_target",
    "tackles",
    "yellow_cards",
    "red_cards",
]

cooldown_policy = CooldownPolicy(PLAYER_STATS_COOLDOWN)


def player_stats_resource(team_id: int, season: int, league_id: int) -> str:
    return PLAYER_STATS_RESOURCE.format(team_id=team_id, season=season, league_id=league_id)


def latest_player_stats_update(db: Session, team_id: int, season: int, league_id: int) -> datetime | None:
    """updated_at piu' recente tra le righe player_season_stats della chiave."""
    value = (
        db.query(func.max(PlayerSeasonStats.updated_at))
        .filter(
            PlayerSeasonStats.team_id == team_id,
            PlayerSeasonStats.season == season,
            PlayerSeasonStats.league_id == league_id,
        )
        .scalar()
    )
    return as_utc(value)


def player_stats_are_fresh(db: Session, team_id: int, season: int, league_id: int, now: datetime) -> bool:
    if cooldown_policy.is_fresh(latest_player_stats_update(db, team_id, season, league_id), now):
        return True
    marker = latest_fetch(db, player_stats_resource(team_id, season, league_id), success=True)
    return marker is not None and cooldown_policy.is_fresh(marker.fetched_at, now)


def _store_player(
    db: Session,
    team: Team,
    season: int,
    league_id: int,
    league_name: str | None,
    data: ProviderPlayerStats,
    now: datetime,
) -> None:
    """Upsert Player (anagrafica) poi PlayerSeasonStats. Nessun commit."""
    player = db.query(Player).filter(Player.api_id == data.api_id).first()
    if player:
        player.name = data.name
        player.position = data.position or player.position
        player.shirt_number = data.shirt_number if data.shirt_number is not None else player.shirt_number
        player.team_id = team.id
    else:
        player = Player(
            api_id=data.api_id,
            name=data.name,
            position=data.position,
            shirt_number=data.shirt_number,
            team_id=team.id,
        )
        db.add(player)
        db.flush()

    stats_dict = {field: getattr(data, field) for field in STATS_DB_FIELDS}
    existing = (
        db.query(PlayerSeasonStats)
        .filter(
            PlayerSeasonStats.player_id == player.id,
            PlayerSeasonStats.team_id == team.id,
            PlayerSeasonStats.season == season,
            PlayerSeasonStats.league_id == league_id,
        )
        .first()
    )
    if existing:
        for field, value in stats_dict.items():
            setattr(existing, field, value)
        existing.league = league_name or existing.league
        existing.updated_at = now
    else:
        db.add(
            PlayerSeasonStats(
                player_id=player.id,
                team_id=team.id,
                season=season,
                league_id=league_id,
                league=league_name,
                updated_at=now,
                **stats_dict,
            )
        )


async def ensure_player_stats(
    db: Session,
    team: Team,
    season: int,
    league_id: int,
    league_name: str | None = None,
    client: ApiSportsClient | None = None,
    now: datetime | None = None,
) -> int:
    """
    Refresh statistiche giocatori della squadra se il cooldown di 24h e' scaduto.

    Flusso:
    1. Riga piu' recente (o marker playerStats:) entro 24h -> nessuna chiamata
    2. GET /players?team&season&league, tutte le pagine
    3. Scarta i giocatori con tutte le statistiche a zero
    4. Upsert a blocchi di BATCH_SIZE, un commit per giocatore: un record errato
       viene annullato da solo e il blocco prosegue

    Ritorna il numero di giocatori salvati.
    """
    now = as_utc(now) if now else utcnow()
    if player_stats_are_fresh(db, team.id, season, league_id, now):
        logger.debug("Statistiche giocatori team_id=%s season=%s league=%s in cooldown", team.id, season, league_id)
        return 0
    if team.api_id is None:
        logger.warning("Team id=%s senza api_id: statistiche giocatori non disponibili", team.id)
        return 0

    if client is None:
        client = ApiSportsClient()

    logger.info("=== INIZIO statistiche giocatori team_id=%s season=%s league=%s ===", team.id, season, league_id)
    raw_players = await client.get_team_players(team.api_id, season, league_id)
    players = [p for p in raw_players if p.has_activity()]
    skipped = len(raw_players) - len(players)

    if not players:
        logger.warning(
            "API-Sports ha restituito 0 giocatori utili per team_id=%s season=%s league=%s",
            team.id, season, league_id,
        )

    stored = 0
    errors = 0
    for start in range(0, len(players), BATCH_SIZE):
        for data in players[start:start + BATCH_SIZE]:
            try:
                _store_player(db, team, season, league_id, league_name, data, now)
                db.commit()
                stored += 1
            except Exception:
                db.rollback()
                errors += 1
                logger.exception(
                    "Errore su giocatore api_id=%s (%s), team_id=%s season=%s. Skip e continuo.",
                    data.api_id, data.name, team.id, season,
                )

    record_fetch(
        db,
        player_stats_resource(team.id, season, league_id),
        errors == 0,
        f"stored={stored} skipped={skipped} errors={errors}",
        now,
    )
    logger.info(
        "=== FINE statistiche giocatori team_id=%s season=%s: salvati=%s, scartati=%s, errori=%s ===",
        team.id, season, stored, skipped, errors,
    )
    return stored
