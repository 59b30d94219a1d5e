"""
Record tipizzati restituiti da ApiSportsClient.
Il resto dell'applicazione non vede mai il JSON grezzo di API-Football.
"""

from datetime import datetime

from pydantic import BaseModel


class ProviderTeam(BaseModel):
    api_id: int
    name: str
    short_name: str | None = None
    country: str | None = None


class ProviderFixture(BaseModel):
    """Fixture del giorno (/fixtures?date=...)."""
    api_id: int
    kickoff: datetime
    league: str | None = None
    league_id: int | None = None
    league_country: str | None = None
    season: int
    status: str
    home_team: ProviderTeam
    away_team: ProviderTeam


class TeamFixtureResult(BaseModel):
    """Partita conclusa vista dal lato di una squadra (/fixtures?team&season&league)."""
    api_fixture_id: int
    kickoff: datetime | None = None
    goals_for: int = 0
    goals_against: int = 0


class FixtureTeamStatistics(BaseModel):
    """Statistiche di una squadra in una partita, gia' normalizzate sui campi canonici."""
    corners: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    xg: float | None = None


class LiveFixture(BaseModel):
    """Stato corrente di una singola fixture (/fixtures?id=...)."""
    api_id: int
    status_short: str
    elapsed: int | None = None
    home_goals: int = 0
    away_goals: int = 0


class ProviderPlayerStats(BaseModel):
    api_id: int
    name: str
    position: str | None = None
    shirt_number: int | None = None
    appearances: int = 0
    minutes: int = 0
    goals: int = 0
    assists: int = 0
    fouls: int = 0
    shots: int = 0
    shots_on_target: int = 0
    tackles: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    def has_activity(self) -> bool:
        """False per i giocatori con tutte le statistiche a zero (rumore del provider)."""
        return any((
            self.appearances, self.minutes, self.goals, self.assists, self.fouls,
            self.shots, self.shots_on_target, self.tackles, self.yellow_cards, self.red_cards,
        ))


class LineupPlayer(BaseModel):
    api_id: int
    name: str | None = None


class ProviderLineup(BaseModel):
    team_api_id: int
    start_xi: list[LineupPlayer] = []
    substitutes: list[LineupPlayer] = []
