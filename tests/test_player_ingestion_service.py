from __future__ import annotations

from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from matchday.models import Player, PlayerSeasonStats
from matchday.services import player_ingestion_service
from matchday.services.freshness import latest_fetch
from matchday.services.player_ingestion_service import (
    ensure_player_stats,
    player_stats_are_fresh,
    player_stats_resource,
)
from tests.factories import LEAGUE_ID, NOW, SEASON, add_team, player_stats


async def test_players_without_activity_are_skipped(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.players[100] = [
        player_stats(7, "B. Saka", appearances=8, minutes=700, goals=3),
        player_stats(99, "Academy Keeper"),
    ]

    stored = await ensure_player_stats(db, team, SEASON, LEAGUE_ID, "Premier League", client=fake_client, now=NOW)

    assert stored == 1
    assert db.query(Player).count() == 1
    row = db.query(PlayerSeasonStats).one()
    assert (row.appearances, row.minutes, row.goals) == (8, 700, 3)
    assert row.league == "Premier League"


async def test_refresh_at_most_once_per_day(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.players[100] = [player_stats(7, "B. Saka", appearances=8, minutes=700)]

    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)
    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW + timedelta(hours=23))
    assert fake_client.calls["team_players"] == 1

    fake_client.players[100] = [player_stats(7, "B. Saka", appearances=9, minutes=790)]
    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW + timedelta(hours=25))

    assert fake_client.calls["team_players"] == 2
    db.expire_all()
    assert db.query(PlayerSeasonStats).one().appearances == 9


async def test_empty_squad_still_starts_the_cooldown(db, fake_client):
    team = add_team(db, 100, "Arsenal")

    assert await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW) == 0

    assert player_stats_are_fresh(db, team.id, SEASON, LEAGUE_ID, NOW + timedelta(hours=1))
    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW + timedelta(hours=1))
    assert fake_client.calls["team_players"] == 1


async def test_team_without_api_id_makes_no_call(db, fake_client):
    team = add_team(db, None, "Unknown FC")

    assert await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW) == 0
    assert fake_client.calls["team_players"] == 0


async def test_one_failing_player_does_not_stop_the_squad(db, fake_client, monkeypatch):
    team = add_team(db, 100, "Arsenal")
    fake_client.players[100] = [
        player_stats(7, "B. Saka", appearances=8, minutes=700),
        player_stats(8, "M. Odegaard", appearances=7, minutes=600),
        player_stats(41, "D. Rice", appearances=8, minutes=720),
    ]
    store = player_ingestion_service._store_player

    def failing_store(session, team, season, league_id, league_name, data, now):
        if data.api_id == 8:
            raise SQLAlchemyError("constraint failed")
        return store(session, team, season, league_id, league_name, data, now)

    monkeypatch.setattr(player_ingestion_service, "_store_player", failing_store)

    stored = await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert stored == 2
    assert db.query(PlayerSeasonStats).count() == 2
    assert {p.api_id for p in db.query(Player).all()} == {7, 41}
    marker = latest_fetch(db, player_stats_resource(team.id, SEASON, LEAGUE_ID), success=None)
    assert marker.success is False
    assert marker.message == "stored=2 skipped=0 errors=1"
