from matchday.models.api_fetch_log import ApiFetchLog
from matchday.models.fixture import Fixture
from matchday.models.fixture_lineup import FixtureLineup
from matchday.models.live_score_cache import LiveScoreCache
from matchday.models.player import Player
from matchday.models.player_season_stats import PlayerSeasonStats
from matchday.models.team import Team
from matchday.models.team_fixture_cache import TeamFixtureCache
from matchday.models.team_season_stats import TeamSeasonStats

__all__ = [
    "Team",
    "Fixture",
    "Player",
    "PlayerSeasonStats",
    "FixtureLineup",
    "TeamSeasonStats",
    "TeamFixtureCache",
    "LiveScoreCache",
    "ApiFetchLog",
]
