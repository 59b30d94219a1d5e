"""Application configuration. Load from environment."""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_BASE_URL = "https://v3.football.api-sports.io"

# Premier League, Championship, Champions League, Europa League, FA Cup, Scottish Premiership
DEFAULT_REQUIRED_LEAGUE_IDS = "39,40,2,3,45,179"


def get_database_url() -> str:
    """Return DATABASE_URL from environment. Raises if missing."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return url


def get_api_sports_key() -> str:
    """Return API_SPORTS_KEY for provider calls. Raises if missing."""
    key = os.environ.get("API_SPORTS_KEY")
    if not key:
        raise RuntimeError("API_SPORTS_KEY environment variable is required for provider calls")
    return key


def get_api_base_url() -> str:
    return os.environ.get("FOOTBALL_API_BASE_URL") or DEFAULT_API_BASE_URL


def get_request_timeout_seconds() -> float:
    raw = os.environ.get("REQUEST_TIMEOUT_SECONDS", "30")
    try:
        return float(raw)
    except ValueError:
        return 30.0


def get_fixture_stats_delay_seconds() -> float:
    """Pausa tra chiamate /fixtures/statistics consecutive (FOOTBALL_API_DELAY_MS, default 2000)."""
    raw = os.environ.get("FOOTBALL_API_DELAY_MS", "2000")
    try:
        return max(0.0, float(raw) / 1000.0)
    except ValueError:
        return 2.0


def get_required_league_ids() -> list[int]:
    """
    Competizioni da sincronizzare ogni giorno (REQUIRED_LEAGUE_IDS, separati da virgola).
    Lista vuota = una sola chiamata senza filtro lega.
    """
    raw = os.environ.get("REQUIRED_LEAGUE_IDS", DEFAULT_REQUIRED_LEAGUE_IDS)
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            continue
    return ids


def get_reference_timezone() -> str:
    return os.environ.get("REFERENCE_TIMEZONE") or "Europe/London"


def get_log_level() -> str:
    return (os.environ.get("LOG_LEVEL") or "INFO").upper()
