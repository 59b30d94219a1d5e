from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from matchday.models import TeamFixtureCache
from matchday.schemas.provider import FixtureTeamStatistics, TeamFixtureResult
from matchday.services.freshness import CallBudget
from matchday.services.stats_service import per_match
from matchday.services.team_season_service import (
    MAX_FIXTURES_PER_SEASON,
    ensure_team_season,
    get_team_form,
    get_team_season_row,
    team_season_is_fresh,
)
from tests.factories import LEAGUE_ID, NOW, SEASON, add_team, season_results


async def test_budget_limited_passes_resume_without_refetching(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = season_results(10)
    for result in fake_client.season_fixtures[100]:
        fake_client.statistics[result.api_fixture_id] = FixtureTeamStatistics(corners=4, yellow_cards=1)

    passes = []
    for _ in range(4):
        passes.append(
            await ensure_team_season(db, team, SEASON, LEAGUE_ID, call_budget=3, client=fake_client, now=NOW)
        )

    assert [p.done for p in passes] == [False, False, False, True]
    assert [p.fetched for p in passes] == [3, 3, 3, 1]
    assert fake_client.calls["fixture_statistics"] == 10

    row = get_team_season_row(db, team.id, SEASON, LEAGUE_ID)
    assert row.minutes_played == 900
    assert row.corners == 40

    # marker di oggi: nessuna altra chiamata
    again = await ensure_team_season(db, team, SEASON, LEAGUE_ID, call_budget=3, client=fake_client, now=NOW)
    assert again.done is True
    assert fake_client.calls["team_season_fixtures"] == 4


async def test_single_fixture_round_trip(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = [
        TeamFixtureResult(
            api_fixture_id=777,
            kickoff=datetime(2025, 8, 16, 14, tzinfo=timezone.utc),
            goals_for=3,
            goals_against=1,
        )
    ]
    fake_client.statistics[777] = FixtureTeamStatistics(corners=5, yellow_cards=1, red_cards=1)

    progress = await ensure_team_season(db, team, SEASON, LEAGUE_ID, "Premier League", client=fake_client, now=NOW)

    assert progress.done is True
    row = get_team_season_row(db, team.id, SEASON, LEAGUE_ID)
    assert row.minutes_played == 90
    assert row.league == "Premier League"
    assert (row.goals_for, row.goals_against) == (3, 1)
    averages = per_match(row)
    assert averages.matches == 1
    assert averages.corners == 5.0
    assert averages.cards == 2.0
    assert averages.xg is None


async def test_failed_statistics_are_retried_on_next_pass(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    results = season_results(2)
    fake_client.season_fixtures[100] = results
    fake_client.statistics[results[0].api_fixture_id] = FixtureTeamStatistics(corners=3)
    fake_client.statistics[results[1].api_fixture_id] = httpx.ReadTimeout("slow")

    first = await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)
    assert first.done is False
    assert db.query(TeamFixtureCache).count() == 1
    assert not team_season_is_fresh(db, team.id, SEASON, LEAGUE_ID, NOW)

    fake_client.statistics[results[1].api_fixture_id] = FixtureTeamStatistics(corners=6)
    second = await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert second.done is True
    assert fake_client.calls["fixture_statistics"] == 3
    assert get_team_season_row(db, team.id, SEASON, LEAGUE_ID).corners == 9


async def test_missing_statistics_write_a_zero_row(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = season_results(1)

    progress = await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert progress.done is True
    cached = db.query(TeamFixtureCache).one()
    assert (cached.corners, cached.yellow_cards, cached.xg) == (0, 0, None)


async def test_xg_is_averaged_over_matches_that_report_it(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    results = season_results(3)
    fake_client.season_fixtures[100] = results
    fake_client.statistics[results[0].api_fixture_id] = FixtureTeamStatistics(xg=1.2)
    fake_client.statistics[results[1].api_fixture_id] = FixtureTeamStatistics()
    fake_client.statistics[results[2].api_fixture_id] = FixtureTeamStatistics(xg=0.8)

    await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    row = get_team_season_row(db, team.id, SEASON, LEAGUE_ID)
    assert row.xg_for == pytest.approx(2.0)
    assert row.xg_matches == 2
    assert per_match(row).xg == pytest.approx(1.0)


async def test_list_failure_returns_not_done(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = httpx.ConnectError("down")

    progress = await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert progress.done is False
    assert get_team_season_row(db, team.id, SEASON, LEAGUE_ID) is None


async def test_only_the_oldest_fixtures_count(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    results = [
        TeamFixtureResult(
            api_fixture_id=6000 + i,
            kickoff=datetime(2025, 8, 1, tzinfo=timezone.utc) + timedelta(days=i),
            goals_for=1,
            goals_against=1,
        )
        for i in range(MAX_FIXTURES_PER_SEASON + 2)
    ]
    fake_client.season_fixtures[100] = results

    progress = await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    assert progress.total == MAX_FIXTURES_PER_SEASON
    assert fake_client.calls["fixture_statistics"] == MAX_FIXTURES_PER_SEASON
    row = get_team_season_row(db, team.id, SEASON, LEAGUE_ID)
    assert row.minutes_played == MAX_FIXTURES_PER_SEASON * 90

    # stagione completa: fresca anche nei giorni successivi
    assert team_season_is_fresh(db, team.id, SEASON, LEAGUE_ID, NOW + timedelta(days=30))


async def test_shared_budget_spans_teams(db, fake_client):
    home = add_team(db, 100, "Arsenal")
    away = add_team(db, 200, "Chelsea")
    fake_client.season_fixtures[100] = season_results(2, first_api_id=5000)
    fake_client.season_fixtures[200] = season_results(2, first_api_id=5100)
    budget = CallBudget(3)

    first = await ensure_team_season(db, home, SEASON, LEAGUE_ID, call_budget=budget, client=fake_client, now=NOW)
    second = await ensure_team_season(db, away, SEASON, LEAGUE_ID, call_budget=budget, client=fake_client, now=NOW)

    assert first.done is True
    assert second.done is False
    assert budget.exhausted
    assert fake_client.calls["fixture_statistics"] == 3


async def test_form_lists_most_recent_first(db, fake_client):
    team = add_team(db, 100, "Arsenal")
    fake_client.season_fixtures[100] = [
        TeamFixtureResult(api_fixture_id=1, kickoff=datetime(2025, 8, 16, tzinfo=timezone.utc), goals_for=2, goals_against=0),
        TeamFixtureResult(api_fixture_id=2, kickoff=datetime(2025, 8, 23, tzinfo=timezone.utc), goals_for=1, goals_against=1),
        TeamFixtureResult(api_fixture_id=3, kickoff=datetime(2025, 8, 30, tzinfo=timezone.utc), goals_for=0, goals_against=2),
    ]
    await ensure_team_season(db, team, SEASON, LEAGUE_ID, client=fake_client, now=NOW)

    form = get_team_form(db, team, SEASON, LEAGUE_ID)

    assert [item.result for item in form] == ["L", "D", "W"]
    assert form[0].api_fixture_id == 3
