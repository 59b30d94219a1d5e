"""
Client per API-Sports (api-football v3).
Unico punto di contatto con il provider: tutte le risposte vengono convertite in record
tipizzati (matchday.schemas.provider) e le etichette statistiche normalizzate qui.
"""

import logging
import re
from typing import Any

import httpx

from matchday.core.config import (
    get_api_base_url,
    get_api_sports_key,
    get_request_timeout_seconds,
)
from matchday.schemas.provider import (
    FixtureTeamStatistics,
    LineupPlayer,
    LiveFixture,
    ProviderFixture,
    ProviderLineup,
    ProviderPlayerStats,
    ProviderTeam,
    TeamFixtureResult,
)
from matchday.services.stat_labels import normalize_statistics

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FINISHED_STATUSES = {"FT", "AET", "PEN"}

PLAN_LIMITATION_MARKERS = ("free plan", "plan", "do not have access")

# Il provider a volte omette league.id: recupero dal nome per le competizioni seguite
LEAGUE_NAME_TO_ID: dict[str, int] = {
    "Premier League": 39,
    "Championship": 40,
    "English League Championship": 40,
    "EFL Championship": 40,
    "The Championship": 40,
    "English Championship": 40,
    "UEFA Champions League": 2,
    "Champions League": 2,
    "UEFA Europa League": 3,
    "Europa League": 3,
    "FA Cup": 45,
    "Scottish Premiership": 179,
    "Scottish Championship": 179,
}


class ApiSportsError(Exception):
    """Errore applicativo restituito dal provider nel campo `errors`."""

    def __init__(self, path: str, errors: Any):
        self.path = path
        self.errors = errors
        super().__init__(f"API-Sports errors on {path}: {errors}")


def _get_header(headers: httpx.Headers, *keys: str) -> str | int | None:
    """Restituisce il valore del primo header trovato (case-insensitive)."""
    for key in keys:
        value = headers.get(key)
        if value is None:
            continue
        return int(value) if value.isdigit() else value
    return None


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def _error_messages(errors: Any) -> list[str]:
    """Errori API-Football: [], {}, lista di stringhe/dict o dict campo -> messaggio."""
    if not errors:
        return []
    if isinstance(errors, dict):
        return [str(v) for v in errors.values() if v not in (None, "", [], {})]
    if isinstance(errors, list):
        messages = []
        for e in errors:
            if isinstance(e, str) and e:
                messages.append(e)
            elif isinstance(e, dict) and e:
                messages.extend(str(v) for v in e.values() if v)
        return messages
    return [str(errors)]


def is_plan_limitation(messages: list[str]) -> bool:
    joined = "; ".join(messages).lower()
    return any(marker in joined for marker in PLAN_LIMITATION_MARKERS)


def _team_from(raw: dict[str, Any]) -> ProviderTeam:
    return ProviderTeam(
        api_id=int(raw["id"]),
        name=raw.get("name") or "",
        short_name=raw.get("code"),
        country=raw.get("country"),
    )


def _pick_player_block(statistics: list[dict], team_api_id: int, league_id: int | None) -> dict | None:
    """
    Un giocatore puo' avere piu' blocchi statistics[] (una per competizione/squadra).
    Priorita': stessa squadra, stessa competizione, piu' presenze.
    """
    candidates = [
        s for s in statistics
        if isinstance(s, dict) and _as_int((s.get("team") or {}).get("id"), -1) == team_api_id
    ]
    if not candidates:
        return None

    def score(block: dict) -> tuple[bool, int, int]:
        games = block.get("games") or {}
        same_league = league_id is not None and _as_int((block.get("league") or {}).get("id"), -1) == league_id
        return (
            same_league,
            _as_int(games.get("appearances", games.get("appearences"))),
            _as_int(games.get("minutes")),
        )

    return max(candidates, key=score)


def _tackles_from(block: dict[str, Any]) -> int:
    tackles = block.get("tackles")
    if isinstance(tackles, (int, float)) and not isinstance(tackles, bool):
        return int(tackles)
    if isinstance(tackles, dict) and tackles.get("total") is not None:
        return _as_int(tackles.get("total"))
    for key, value in block.items():
        if "tackle" not in key.lower() or value is None:
            continue
        if isinstance(value, dict):
            return _as_int(value.get("total"))
        return _as_int(value)
    games = block.get("games") or {}
    nested = games.get("tackles", games.get("tackles_total"))
    if isinstance(nested, dict):
        return _as_int(nested.get("total"))
    return _as_int(nested)


def _player_from(item: dict[str, Any], team_api_id: int, league_id: int | None) -> ProviderPlayerStats | None:
    info = item.get("player") or {}
    api_id = info.get("id")
    if not api_id:
        return None
    name = info.get("name") or f"{info.get('firstname') or ''} {info.get('lastname') or ''}".strip()
    if not name:
        return None
    block = _pick_player_block(item.get("statistics") or [], team_api_id, league_id)
    if block is None:
        return None

    games = block.get("games") or {}
    goals = block.get("goals") or {}
    cards = block.get("cards") or {}
    shots = block.get("shots") or {}
    fouls = block.get("fouls") or {}
    minutes = _as_int(games.get("minutes"))
    # "appearences" e' il nome (sbagliato) usato storicamente da API-Football
    raw_appearances = games.get("appearances", games.get("appearences"))
    appearances = _as_int(raw_appearances) if raw_appearances is not None else (1 if minutes > 0 else 0)

    return ProviderPlayerStats(
        api_id=int(api_id),
        name=name,
        position=info.get("position") or games.get("position"),
        shirt_number=info.get("number") if info.get("number") is not None else games.get("number"),
        appearances=appearances,
        minutes=minutes,
        goals=_as_int(goals.get("total")),
        assists=_as_int(goals.get("assists")),
        fouls=_as_int(fouls.get("committed")),
        shots=_as_int(shots.get("total")),
        shots_on_target=_as_int(shots.get("on")),
        tackles=_tackles_from(block),
        yellow_cards=_as_int(cards.get("yellow")),
        red_cards=_as_int(cards.get("red")),
    )


def _lineup_players(entries: list[dict[str, Any]] | None) -> list[LineupPlayer]:
    players = []
    for entry in entries or []:
        p = (entry or {}).get("player") or {}
        if p.get("id"):
            players.append(LineupPlayer(api_id=int(p["id"]), name=p.get("name")))
    return players


class ApiSportsClient:
    """Client async per API-Sports. Un httpx.AsyncClient per chiamata, transport iniettabile nei test."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key or get_api_sports_key()
        self._base_url = (base_url or get_api_base_url()).rstrip("/")
        self._timeout = timeout if timeout is not None else get_request_timeout_seconds()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"x-apisports-key": self._api_key}

    def _http(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers(),
            timeout=timeout if timeout is not None else self._timeout,
            transport=self._transport,
        )

    async def _get_page(self, path: str, params: dict[str, Any]) -> tuple[list[dict[str, Any]], int]:
        """
        Una pagina di `response` e il numero totale di pagine.
        Errori di piano -> lista vuota; altri errori -> ApiSportsError.
        """
        query = {k: v for k, v in params.items() if v is not None}
        async with self._http() as client:
            r = await client.get(path, params=query)
            r.raise_for_status()
            data = r.json()

        messages = _error_messages(data.get("errors"))
        if messages:
            if is_plan_limitation(messages):
                logger.warning("API-Sports plan limitation on %s %s: %s", path, query, "; ".join(messages))
                return [], 0
            raise ApiSportsError(path, data.get("errors"))

        paging = data.get("paging") or {}
        return data.get("response") or [], _as_int(paging.get("total"), 1)

    async def _get(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        response, _ = await self._get_page(path, params)
        return response

    async def _get_all_pages(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        total = 1
        while page <= total:
            response, total = await self._get_page(path, {**params, "page": page})
            items.extend(response)
            page += 1
        return items

    async def get_fixtures_by_date(
        self,
        date: str,
        league_id: int | None = None,
        season: int | None = None,
    ) -> list[ProviderFixture]:
        """Fixture di un giorno (YYYY-MM-DD), opzionalmente filtrate per competizione/stagione."""
        if not DATE_RE.match(date):
            raise ValueError(f"Invalid date format: {date}. Expected YYYY-MM-DD")

        response = await self._get("/fixtures", {"date": date, "league": league_id, "season": season})
        fixtures: list[ProviderFixture] = []
        for item in response:
            fx = item.get("fixture") or {}
            league = item.get("league") or {}
            teams = item.get("teams") or {}
            if not fx.get("id") or not fx.get("date") or not teams.get("home") or not teams.get("away"):
                continue
            raw_league_id = league.get("id")
            if raw_league_id is None and league.get("name"):
                raw_league_id = LEAGUE_NAME_TO_ID.get(league["name"])
            fixtures.append(
                ProviderFixture(
                    api_id=int(fx["id"]),
                    kickoff=fx["date"],
                    league=league.get("name"),
                    league_id=_as_int(raw_league_id) if raw_league_id is not None else None,
                    league_country=league.get("country"),
                    season=_as_int(league.get("season"), season or 0),
                    status=(fx.get("status") or {}).get("short") or "NS",
                    home_team=_team_from(teams["home"]),
                    away_team=_team_from(teams["away"]),
                )
            )
        logger.info(
            "get_fixtures_by_date date=%s league=%s season=%s -> %s fixture",
            date, league_id, season, len(fixtures),
        )
        return fixtures

    async def get_team_season_fixtures(
        self,
        team_api_id: int,
        season: int,
        league_id: int,
    ) -> list[TeamFixtureResult]:
        """Partite concluse della squadra con gol fatti/subiti dal suo punto di vista, dalla piu' vecchia."""
        response = await self._get("/fixtures", {"team": team_api_id, "season": season, "league": league_id})
        results: list[TeamFixtureResult] = []
        for item in response:
            fx = item.get("fixture") or {}
            status = (fx.get("status") or {}).get("short")
            goals = item.get("goals") or {}
            home = (item.get("teams") or {}).get("home") or {}
            if status not in FINISHED_STATUSES or goals.get("home") is None or goals.get("away") is None:
                continue
            is_home = _as_int(home.get("id"), -1) == team_api_id
            home_goals = _as_int(goals.get("home"))
            away_goals = _as_int(goals.get("away"))
            results.append(
                TeamFixtureResult(
                    api_fixture_id=int(fx["id"]),
                    kickoff=fx.get("date"),
                    goals_for=home_goals if is_home else away_goals,
                    goals_against=away_goals if is_home else home_goals,
                )
            )
        results.sort(key=lambda r: (r.kickoff is None, r.kickoff or 0, r.api_fixture_id))
        logger.info(
            "get_team_season_fixtures team=%s season=%s league=%s -> %s concluse",
            team_api_id, season, league_id, len(results),
        )
        return results

    async def get_fixture_team_statistics(
        self,
        fixture_api_id: int,
        team_api_id: int,
    ) -> FixtureTeamStatistics | None:
        """Corner, cartellini e xG di una squadra in una partita. None se il provider non ha dati."""
        response = await self._get("/fixtures/statistics", {"fixture": fixture_api_id, "team": team_api_id})
        if not response:
            return None
        entry = next(
            (e for e in response if _as_int((e.get("team") or {}).get("id"), -1) == team_api_id),
            response[0],
        )
        values = normalize_statistics(entry.get("statistics") or [])
        return FixtureTeamStatistics(
            corners=int(values.get("corners") or 0),
            yellow_cards=int(values.get("yellow_cards") or 0),
            red_cards=int(values.get("red_cards") or 0),
            xg=values.get("xg"),
        )

    async def get_fixture_by_id(self, fixture_api_id: int) -> LiveFixture | None:
        response = await self._get("/fixtures", {"id": fixture_api_id})
        if not response:
            return None
        item = response[0]
        fx = item.get("fixture") or {}
        status = fx.get("status") or {}
        goals = item.get("goals") or {}
        elapsed = status.get("elapsed")
        return LiveFixture(
            api_id=_as_int(fx.get("id"), fixture_api_id),
            status_short=status.get("short") or "?",
            elapsed=_as_int(elapsed) if elapsed is not None else None,
            home_goals=_as_int(goals.get("home")),
            away_goals=_as_int(goals.get("away")),
        )

    async def get_team_players(
        self,
        team_api_id: int,
        season: int,
        league_id: int | None = None,
    ) -> list[ProviderPlayerStats]:
        """Statistiche stagionali di tutti i giocatori della squadra (tutte le pagine, 20 per pagina)."""
        items = await self._get_all_pages(
            "/players", {"team": team_api_id, "season": season, "league": league_id},
        )
        players: dict[int, ProviderPlayerStats] = {}
        for item in items:
            player = _player_from(item, team_api_id, league_id)
            if player is not None:
                players[player.api_id] = player
        logger.info(
            "get_team_players team=%s season=%s league=%s -> %s giocatori",
            team_api_id, season, league_id, len(players),
        )
        return list(players.values())

    async def get_team_logo(self, team_api_id: int) -> str | None:
        response = await self._get("/teams", {"id": team_api_id})
        if not response:
            return None
        logo = (response[0].get("team") or {}).get("logo")
        return logo if isinstance(logo, str) and logo else None

    async def get_fixture_lineups(self, fixture_api_id: int) -> list[ProviderLineup]:
        response = await self._get("/fixtures/lineups", {"fixture": fixture_api_id})
        lineups = []
        for entry in response:
            team = entry.get("team") or {}
            if not team.get("id"):
                continue
            lineups.append(
                ProviderLineup(
                    team_api_id=int(team["id"]),
                    start_xi=_lineup_players(entry.get("startXI")),
                    substitutes=_lineup_players(entry.get("substitutes")),
                )
            )
        return lineups

    async def test_connection(self) -> dict[str, Any]:
        """
        Test connessione leggero: chiama /status (non consuma quota giornaliera).
        Restituisce status HTTP e header di rate limit.
        """
        async with self._http(timeout=10.0) as client:
            r = await client.get("/status")

        limit = _get_header(r.headers, "x-ratelimit-limit", "x-ratelimit-requests-limit")
        remaining = _get_header(r.headers, "x-ratelimit-remaining", "x-ratelimit-requests-remaining")
        result = {
            "status_code": r.status_code,
            "rate_limit_per_minute": limit,
            "remaining_requests": remaining,
            "ok": 200 <= r.status_code < 300,
            "headers": {name.lower(): value for name, value in r.headers.items()},
        }
        if not result["ok"]:
            logger.warning("test_connection HTTP %s", r.status_code)
        return result
