from matchday.core.config import (
    get_api_sports_key,
    get_database_url,
    get_fixture_stats_delay_seconds,
    get_reference_timezone,
    get_required_league_ids,
)
from matchday.core.database import Base, SessionLocal, engine, get_db, init_db

__all__ = [
    "get_api_sports_key",
    "get_database_url",
    "get_fixture_stats_delay_seconds",
    "get_reference_timezone",
    "get_required_league_ids",
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
]
