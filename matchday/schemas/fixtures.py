"""Pydantic schemas per API Fixtures (lista del giorno, statistiche, live, warm)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TeamSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    api_id: int | None = None
    name: str
    short_name: str | None = None
    crest_url: str | None = None


class FixtureSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    api_id: int | None = None
    kickoff: datetime
    status: str
    league: str | None = None
    league_id: int | None = None
    season: int
    home_team: TeamSummary
    away_team: TeamSummary


# --- Statistiche fixture ---


class PlayerStatsRow(BaseModel):
    player_id: int
    name: str
    position: str | None = None
    shirt_number: int | None = None
    appearances: int
    minutes: int
    goals: int
    assists: int
    fouls: int
    shots: int
    shots_on_target: int
    tackles: int
    yellow_cards: int
    red_cards: int
    lineup_status: str | None = None  # "starting" | "substitute" | None


class TeamPlayersBlock(BaseModel):
    team_id: int
    team_name: str
    team_short_name: str | None = None
    players: list[PlayerStatsRow]


class TeamStatsPerMatch(BaseModel):
    """Medie per partita dalla riga team_season_stats (partite = minutes_played / 90)."""
    matches: int = 0
    xg: float | None = None
    goals: float = 0.0
    conceded: float = 0.0
    corners: float = 0.0
    cards: float = 0.0


class FormMatchItem(BaseModel):
    api_fixture_id: int
    result: str  # "W" | "D" | "L"
    goals_for: int
    goals_against: int


class TeamStatsBlock(BaseModel):
    home: TeamStatsPerMatch
    away: TeamStatsPerMatch
    home_form: list[FormMatchItem] = []
    away_form: list[FormMatchItem] = []


class FixtureStatsResponse(BaseModel):
    fixture: FixtureSummary
    has_lineup: bool
    teams: list[TeamPlayersBlock]
    team_stats: TeamStatsBlock | None = None


# --- Live ---


class LiveScoreResponse(BaseModel):
    live: bool
    home_goals: int | None = None
    away_goals: int | None = None
    elapsed_minutes: int | None = None
    status_short: str | None = None
    reason: str | None = None


# --- Insights ---


class InsightItem(BaseModel):
    type: str  # "team_last5" | "team_season" | "player_season"
    text: str
    fixture_id: int
    href: str
