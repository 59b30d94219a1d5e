from __future__ import annotations

from datetime import timedelta

import httpx

from matchday.models import (
    ApiFetchLog,
    Fixture,
    LiveScoreCache,
    Player,
    PlayerSeasonStats,
    Team,
    TeamFixtureCache,
    TeamSeasonStats,
)
from matchday.services.crests_service import refresh_team_crests
from matchday.services.freshness import record_fetch
from matchday.services.maintenance_service import (
    clear_all,
    clear_fixtures,
    clear_player_stats,
    clear_team_stats_markers,
)
from matchday.services.player_ingestion_service import ensure_player_stats
from matchday.services.team_season_service import ensure_team_season
from tests.factories import LEAGUE_ID, NOW, SEASON, add_fixture, add_team, player_stats, season_results


async def test_crests_refresh_counts_failures(db, fake_client):
    home = add_team(db, 100, "Arsenal")
    away = add_team(db, 200, "Chelsea")
    other_home = add_team(db, 300, "Celtic")
    other_away = add_team(db, 400, "Rangers")
    add_fixture(db, home, away, NOW, api_id=1)
    add_fixture(db, other_home, other_away, NOW, api_id=2, league_id=179)
    fake_client.logos = {100: "https://media.test/100.png", 200: httpx.ConnectError("down")}

    result = await refresh_team_crests(db, client=fake_client, league_ids=[39])

    assert result == {"updated": 1, "failed": 1}
    assert fake_client.calls["team_logo"] == 2
    db.expire_all()
    assert db.get(Team, home.id).crest_url == "https://media.test/100.png"
    assert db.get(Team, other_home.id).crest_url is None


async def test_clearing_team_markers_keeps_fixture_checkpoints(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = season_results(2)
    await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert clear_team_stats_markers(db) == 1

    assert db.query(TeamFixtureCache).count() == 2
    # senza marker si richiama solo l'elenco, le statistiche sono gia' in cache
    await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)
    assert fake_client.calls["team_season_fixtures"] == 2
    assert fake_client.calls["fixture_statistics"] == 2


async def test_clear_player_stats_restarts_cooldown(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.players[100] = [player_stats(7, "B. Saka", minutes=90)]
    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert clear_player_stats(db) == 1

    assert db.query(PlayerSeasonStats).count() == 0
    await ensure_player_stats(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW + timedelta(minutes=1))
    assert fake_client.calls["team_players"] == 2


def test_clear_fixtures_removes_markers(db):
    home = add_team(db, 100, "Arsenal")
    away = add_team(db, 200, "Chelsea")
    add_fixture(db, home, away, NOW)
    record_fetch(db, "fixtures:2025-10-18", True, "ok", NOW)

    assert clear_fixtures(db) == 1
    assert db.query(ApiFetchLog).count() == 0
    assert db.query(Team).count() == 2


async def test_clear_all_empties_every_table(db, fake_client):
    home = add_team(db, 100, "Arsenal")
    away = add_team(db, 200, "Chelsea")
    fixture = add_fixture(db, home, away, NOW)
    db.add(LiveScoreCache(fixture_id=fixture.id, home_goals=1, away_goals=0, status_short="FT", cached_at=NOW))
    db.commit()
    fake_client.season_fixtures[100] = season_results(2)
    fake_client.players[100] = [player_stats(7, "B. Saka", minutes=90)]
    await ensure_team_season(db, home, SEASON, LEAGUE_ID, client=fake_client, now=NOW)
    await ensure_player_stats(db, home, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    deleted = clear_all(db)

    # 2 squadre, 1 fixture, 1 live, 2 checkpoint, 1 aggregato, 1 giocatore, 1 riga stats, 2 marker
    assert deleted == 11
    for model in (Team, Fixture, LiveScoreCache, TeamFixtureCache, TeamSeasonStats, Player, PlayerSeasonStats, ApiFetchLog):
        assert db.query(model).count() == 0
