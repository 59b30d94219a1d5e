"""Fake del provider e costruttori di righe per i test."""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timezone

from matchday.models import Fixture, Player, Team
from matchday.schemas.provider import (
    ProviderFixture,
    ProviderPlayerStats,
    ProviderTeam,
    TeamFixtureResult,
)

# Sabato 18 ottobre 2025, 12:00 UTC (13:00 a Londra, BST)
NOW = datetime(2025, 10, 18, 12, 0, tzinfo=timezone.utc)
SEASON = 2025
LEAGUE_ID = 39


class FakeApiClient:
    """
    Sostituto di ApiSportsClient con risposte preimpostate e contatori di chiamate.
    Un valore Exception in una delle mappe viene sollevato al posto della risposta.
    """

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.fixtures_by_league: dict[int | None, list[ProviderFixture] | Exception] = {}
        self.season_fixtures: dict[int, list[TeamFixtureResult] | Exception] = {}
        self.statistics: dict[int, object] = {}
        self.players: dict[int, list[ProviderPlayerStats]] = {}
        self.lineups: object = []
        self.live: object = None
        self.logos: dict[int, object] = {}
        self.fixture_delay = 0.0

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        return value

    async def get_fixtures_by_date(self, date, league_id=None, season=None):
        self.calls["fixtures_by_date"] += 1
        if self.fixture_delay:
            await asyncio.sleep(self.fixture_delay)
        return list(self._answer(self.fixtures_by_league.get(league_id, [])))

    async def get_team_season_fixtures(self, team_api_id, season, league_id):
        self.calls["team_season_fixtures"] += 1
        return list(self._answer(self.season_fixtures.get(team_api_id, [])))

    async def get_fixture_team_statistics(self, fixture_api_id, team_api_id):
        self.calls["fixture_statistics"] += 1
        return self._answer(self.statistics.get(fixture_api_id))

    async def get_team_players(self, team_api_id, season, league_id=None):
        self.calls["team_players"] += 1
        return list(self.players.get(team_api_id, []))

    async def get_fixture_lineups(self, fixture_api_id):
        self.calls["fixture_lineups"] += 1
        return self._answer(self.lineups)

    async def get_fixture_by_id(self, fixture_api_id):
        self.calls["fixture_by_id"] += 1
        return self._answer(self.live)

    async def get_team_logo(self, team_api_id):
        self.calls["team_logo"] += 1
        return self._answer(self.logos.get(team_api_id))


def provider_fixture(
    api_id: int,
    kickoff: datetime,
    home: tuple[int, str] = (100, "Arsenal"),
    away: tuple[int, str] = (200, "Chelsea"),
    league_id: int | None = LEAGUE_ID,
) -> ProviderFixture:
    return ProviderFixture(
        api_id=api_id,
        kickoff=kickoff,
        league="Premier League",
        league_id=league_id,
        league_country="England",
        season=SEASON,
        status="NS",
        home_team=ProviderTeam(api_id=home[0], name=home[1]),
        away_team=ProviderTeam(api_id=away[0], name=away[1]),
    )


def season_results(count: int, first_api_id: int = 5000) -> list[TeamFixtureResult]:
    return [
        TeamFixtureResult(
            api_fixture_id=first_api_id + i,
            kickoff=datetime(2025, 8, 16 + i, 15, 0, tzinfo=timezone.utc),
            goals_for=1,
            goals_against=0,
        )
        for i in range(count)
    ]


def player_stats(api_id: int, name: str, **stats) -> ProviderPlayerStats:
    return ProviderPlayerStats(api_id=api_id, name=name, **stats)


def add_team(db, api_id: int | None, name: str) -> Team:
    team = Team(api_id=api_id, name=name)
    db.add(team)
    db.commit()
    return team


def add_fixture(
    db,
    home: Team,
    away: Team,
    kickoff: datetime,
    api_id: int | None = 9001,
    league_id: int | None = LEAGUE_ID,
    status: str = "NS",
) -> Fixture:
    fixture = Fixture(
        api_id=api_id,
        kickoff=kickoff,
        league="Premier League",
        league_id=league_id,
        season=SEASON,
        status=status,
        home_team_id=home.id,
        away_team_id=away.id,
    )
    db.add(fixture)
    db.commit()
    return fixture


def add_player(db, team: Team, api_id: int, name: str) -> Player:
    player = Player(api_id=api_id, name=name, team_id=team.id)
    db.add(player)
    db.commit()
    return player
