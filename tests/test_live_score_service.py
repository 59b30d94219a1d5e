from __future__ import annotations

from datetime import timedelta

import httpx

from matchday.models import Fixture
from matchday.schemas.provider import LiveFixture
from matchday.services.live_score_service import (
    LIVE_TTL,
    MAX_AGE_ERROR,
    MAX_AGE_FINAL,
    MAX_AGE_LIVE,
    MAX_AGE_PRE,
    get_live,
)
from tests.factories import NOW, add_fixture, add_team


def _fixture(db) -> Fixture:
    home = add_team(db, 100, "Arsenal")
    away = add_team(db, 200, "Chelsea")
    return add_fixture(db, home, away, NOW)


async def test_not_live_before_the_pre_match_buffer(db, fake_client):
    fixture = _fixture(db)

    result = await get_live(db, fixture, client=fake_client, now=NOW - timedelta(hours=1))

    assert result.live is False
    assert result.max_age == MAX_AGE_PRE
    assert fake_client.calls["fixture_by_id"] == 0


async def test_pre_match_placeholder_without_calls(db, fake_client):
    fixture = _fixture(db)

    result = await get_live(db, fixture, client=fake_client, now=NOW - timedelta(minutes=5))

    assert result.live is True
    assert (result.home_goals, result.away_goals, result.status_short) == (0, 0, "Pre")
    assert fake_client.calls["fixture_by_id"] == 0


async def test_in_play_score_is_cached_for_the_ttl(db, fake_client):
    fixture = _fixture(db)
    fake_client.live = LiveFixture(api_id=9001, status_short="1H", elapsed=30, home_goals=1, away_goals=0)
    now = NOW + timedelta(minutes=30)

    first = await get_live(db, fixture, client=fake_client, now=now)
    cached = await get_live(db, fixture, client=fake_client, now=now + timedelta(seconds=60))
    fake_client.live = LiveFixture(api_id=9001, status_short="1H", elapsed=32, home_goals=2, away_goals=0)
    refreshed = await get_live(db, fixture, client=fake_client, now=now + LIVE_TTL + timedelta(seconds=1))

    assert (first.home_goals, first.elapsed_minutes, first.reason) == (1, 30, "provider")
    assert cached.reason == "cache"
    assert cached.max_age == MAX_AGE_LIVE
    assert (refreshed.home_goals, refreshed.elapsed_minutes) == (2, 32)
    assert fake_client.calls["fixture_by_id"] == 2
    assert fixture.status == "1H"


async def test_final_result_is_never_refetched(db, fake_client):
    fixture = _fixture(db)
    fake_client.live = LiveFixture(api_id=9001, status_short="FT", elapsed=90, home_goals=2, away_goals=2)

    await get_live(db, fixture, client=fake_client, now=NOW + timedelta(minutes=110))
    later = await get_live(db, fixture, client=fake_client, now=NOW + timedelta(days=1))

    assert fake_client.calls["fixture_by_id"] == 1
    assert later.status_short == "FT"
    assert later.reason == "final"
    assert later.max_age == MAX_AGE_FINAL
    assert (later.home_goals, later.away_goals) == (2, 2)


async def test_one_final_call_after_the_match_window(db, fake_client):
    fixture = _fixture(db)
    fake_client.live = LiveFixture(api_id=9001, status_short="2H", elapsed=88, home_goals=1, away_goals=1)
    await get_live(db, fixture, client=fake_client, now=NOW + timedelta(minutes=100))

    late = NOW + timedelta(hours=3)
    first = await get_live(db, fixture, client=fake_client, now=late)
    second = await get_live(db, fixture, client=fake_client, now=late + timedelta(minutes=10))

    assert fake_client.calls["fixture_by_id"] == 2
    for result in (first, second):
        assert result.status_short == "FT"
        assert result.elapsed_minutes is None
        assert (result.home_goals, result.away_goals) == (1, 1)


async def test_provider_error_serves_placeholder(db, fake_client):
    fixture = _fixture(db)
    fake_client.live = httpx.ConnectError("down")

    result = await get_live(db, fixture, client=fake_client, now=NOW + timedelta(minutes=20))

    assert result.live is True
    assert result.reason == "error"
    assert (result.home_goals, result.away_goals) == (0, 0)


async def test_provider_error_serves_the_stale_cached_score(db, fake_client):
    fixture = _fixture(db)
    fake_client.live = LiveFixture(api_id=9001, status_short="1H", elapsed=25, home_goals=1, away_goals=0)
    now = NOW + timedelta(minutes=25)
    await get_live(db, fixture, client=fake_client, now=now)
    fake_client.live = httpx.ConnectError("down")

    result = await get_live(db, fixture, client=fake_client, now=now + LIVE_TTL + timedelta(seconds=1))

    assert fake_client.calls["fixture_by_id"] == 2
    assert result.live is True
    assert (result.home_goals, result.away_goals, result.status_short) == (1, 0, "1H")
    assert result.reason == "stale"
    assert result.max_age == MAX_AGE_ERROR
