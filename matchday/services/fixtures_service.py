"""
Sincronizzazione delle fixture del giorno.

ensure_today() serve le fixture dal DB quando il marker fixtures:<giorno> e' di oggi;
altrimenti un solo refresh per giorno e' in corso alla volta (single-flight) e i
chiamanti concorrenti attendono quello.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from matchday.core.config import get_required_league_ids
from matchday.core.database import SessionLocal
from matchday.models import ApiFetchLog, Fixture, FixtureLineup, LiveScoreCache, Team
from matchday.schemas.fixtures import FixtureSummary
from matchday.schemas.provider import ProviderFixture, ProviderTeam
from matchday.services.api_sports_client import ApiSportsClient
from matchday.services.freshness import (
    SameDayPolicy,
    as_utc,
    day_bounds,
    day_key,
    delete_markers,
    latest_fetch,
    local_day,
    record_fetch,
    utcnow,
)

logger = logging.getLogger(__name__)

FIXTURES_RESOURCE = "fixtures:{day}"

fixtures_marker_policy = SameDayPolicy(lambda log: log.fetched_at)


def season_for_day(now: datetime) -> int:
    """Stagione europea: da luglio a giugno, etichettata con l'anno di inizio."""
    day = local_day(now)
    return day.year if day.month >= 7 else day.year - 1


def fixture_summary(fixture: Fixture) -> FixtureSummary:
    summary = FixtureSummary.model_validate(fixture)
    summary.kickoff = as_utc(fixture.kickoff)
    return summary


def upsert_team(db: Session, data: ProviderTeam, fallback_country: str | None = None) -> Team:
    """Inserisce o aggiorna un Team per api_id. Nessun commit."""
    team = db.query(Team).filter(Team.api_id == data.api_id).first()
    country = data.country or fallback_country
    if team:
        team.name = data.name or team.name
        team.short_name = data.short_name or team.short_name
        team.country = country or team.country
    else:
        team = Team(
            api_id=data.api_id,
            name=data.name,
            short_name=data.short_name,
            country=country,
        )
        db.add(team)
    db.flush()
    return team


def upsert_fixture(db: Session, data: ProviderFixture) -> Fixture:
    """Squadre prima, poi la fixture che le referenzia. Commit a carico del chiamante."""
    home = upsert_team(db, data.home_team, data.league_country)
    away = upsert_team(db, data.away_team, data.league_country)

    fixture = db.query(Fixture).filter(Fixture.api_id == data.api_id).first()
    values = {
        "kickoff": as_utc(data.kickoff),
        "league": data.league,
        "league_id": data.league_id,
        "season": data.season,
        "status": data.status or "UNKNOWN",
        "home_team_id": home.id,
        "away_team_id": away.id,
    }
    if fixture:
        for field, value in values.items():
            setattr(fixture, field, value)
    else:
        fixture = Fixture(api_id=data.api_id, **values)
        db.add(fixture)
    db.flush()
    return fixture


def fixtures_for_day(db: Session, now: datetime) -> list[Fixture]:
    start, end = day_bounds(now)
    return (
        db.query(Fixture)
        .options(joinedload(Fixture.home_team), joinedload(Fixture.away_team))
        .filter(Fixture.kickoff >= start, Fixture.kickoff < end)
        .order_by(Fixture.kickoff, Fixture.id)
        .all()
    )


def delete_fixtures(db: Session, fixture_ids: list[int]) -> int:
    """Cancella fixture con le loro formazioni e punteggi live. Aggregati e team_fixture_cache restano."""
    if not fixture_ids:
        return 0
    db.query(FixtureLineup).filter(FixtureLineup.fixture_id.in_(fixture_ids)).delete(synchronize_session=False)
    db.query(LiveScoreCache).filter(LiveScoreCache.fixture_id.in_(fixture_ids)).delete(synchronize_session=False)
    deleted = db.query(Fixture).filter(Fixture.id.in_(fixture_ids)).delete(synchronize_session=False)
    db.commit()
    return deleted


def prune_past_fixtures(db: Session, now: datetime) -> int:
    """Rimuove le fixture dei giorni gia' conclusi (fuso di riferimento)."""
    start, _ = day_bounds(now)
    ids = [row.id for row in db.query(Fixture.id).filter(Fixture.kickoff < start).all()]
    deleted = delete_fixtures(db, ids)
    if deleted:
        logger.info("Rimosse %s fixture dei giorni precedenti", deleted)
    return deleted


class InFlightRegistry:
    """
    Refresh in corso per chiave: chiave -> asyncio.Task.
    La entry viene rimossa quando il task termina (anche con errore).
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, key: str) -> asyncio.Task | None:
        return self._tasks.get(key)

    def start(self, key: str, factory: Callable[[], Awaitable]) -> asyncio.Task:
        task = asyncio.ensure_future(factory())
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._discard(k, t))
        return task

    def _discard(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def drop(self, key: str) -> None:
        """Dimentica il refresh in corso senza cancellarlo: il prossimo chiamante ne avvia uno nuovo."""
        self._tasks.pop(key, None)

    def clear(self) -> None:
        self._tasks.clear()

    async def run(self, key: str, factory: Callable[[], Awaitable]):
        """Si unisce al task in corso per `key` oppure ne avvia uno. Cancellare un chiamante non cancella il task."""
        task = self._tasks.get(key)
        if task is None:
            task = self.start(key, factory)
        else:
            logger.debug("Refresh %s gia' in corso, attendo quello", key)
        return await asyncio.shield(task)


class FixtureSynchronizer:
    """Fixture di oggi: una istanza per processo (app.state.fixture_synchronizer)."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client_factory: Callable[[], ApiSportsClient] = ApiSportsClient,
        league_ids: list[int] | None = None,
    ):
        self._session_factory = session_factory
        self._client_factory = client_factory
        self._league_ids = league_ids
        self.in_flight = InFlightRegistry()

    @property
    def league_ids(self) -> list[int]:
        if self._league_ids is None:
            return get_required_league_ids()
        return self._league_ids

    def _is_cached(self, db: Session, now: datetime, fixtures: list[Fixture]) -> bool:
        if not fixtures:
            return False
        marker = latest_fetch(db, FIXTURES_RESOURCE.format(day=day_key(now)), success=True)
        return fixtures_marker_policy.is_fresh(marker, now)

    async def ensure_today(self, now: datetime | None = None) -> list[FixtureSummary]:
        """
        Fixture del giorno corrente. Cache hit se ci sono fixture per il giorno e
        un marker di successo di oggi; altrimenti refresh (condiviso tra chiamanti concorrenti).
        """
        now = as_utc(now) if now else utcnow()
        key = day_key(now)

        db = self._session_factory()
        try:
            fixtures = fixtures_for_day(db, now)
            if self._is_cached(db, now, fixtures):
                logger.debug("Fixture %s servite dalla cache (%s)", key, len(fixtures))
                return [fixture_summary(f) for f in fixtures]
        finally:
            db.close()

        return await self.in_flight.run(FIXTURES_RESOURCE.format(day=key), lambda: self._refresh(now))

    async def _fetch_day(
        self,
        client: ApiSportsClient,
        now: datetime,
    ) -> tuple[list[ProviderFixture], list[str]]:
        """Una chiamata per competizione (o una senza filtro). Ritorna fixture deduplicate ed errori."""
        key = day_key(now)
        league_ids = self.league_ids
        season = season_for_day(now)
        calls: list[tuple[int | None, int | None]] = (
            [(league_id, season) for league_id in league_ids] if league_ids else [(None, None)]
        )

        by_api_id: dict[int, ProviderFixture] = {}
        errors: list[str] = []
        for league_id, league_season in calls:
            try:
                fixtures = await client.get_fixtures_by_date(key, league_id=league_id, season=league_season)
            except Exception as e:
                logger.exception("Errore fixture %s league=%s", key, league_id)
                errors.append(f"league {league_id}: {type(e).__name__}: {e}")
                continue
            for fixture in fixtures:
                by_api_id.setdefault(fixture.api_id, fixture)
        return list(by_api_id.values()), errors

    async def _refresh(self, now: datetime) -> list[FixtureSummary]:
        key = day_key(now)
        resource = FIXTURES_RESOURCE.format(day=key)
        client = self._client_factory()

        db = self._session_factory()
        try:
            try:
                prune_past_fixtures(db, now)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Errore pulizia fixture dei giorni passati, proseguo con il refresh")

            fetched, errors = await self._fetch_day(client, now)
            stored = 0
            for data in fetched:
                try:
                    upsert_fixture(db, data)
                    db.commit()
                    stored += 1
                except SQLAlchemyError:
                    db.rollback()
                    logger.exception("Errore salvataggio fixture api_id=%s", data.api_id)

            if not fetched:
                cleared = delete_markers(db, resource, success=True)
                logger.warning(
                    "Nessuna fixture per %s (marker rimossi: %s), il prossimo accesso riprova",
                    key, cleared,
                )
                record_fetch(db, resource, False, "; ".join(errors) or "0 fixtures", now)
            elif errors:
                record_fetch(db, resource, False, "; ".join(errors), now)
            else:
                record_fetch(db, resource, True, f"Fetched {len(fetched)} fixtures, stored {stored}", now)

            logger.info("Refresh fixture %s: %s dal provider, %s salvate, %s errori", key, len(fetched), stored, len(errors))
            return [fixture_summary(f) for f in fixtures_for_day(db, now)]
        finally:
            db.close()

    def clear_today(self, now: datetime | None = None) -> int:
        """Dimentica il refresh in corso, cancella fixture e marker del giorno. Ritorna le fixture rimosse."""
        now = as_utc(now) if now else utcnow()
        key = day_key(now)
        self.in_flight.drop(FIXTURES_RESOURCE.format(day=key))

        db = self._session_factory()
        try:
            ids = [f.id for f in fixtures_for_day(db, now)]
            deleted = delete_fixtures(db, ids)
            db.query(ApiFetchLog).filter(
                ApiFetchLog.resource == FIXTURES_RESOURCE.format(day=key)
            ).delete(synchronize_session=False)
            db.commit()
        finally:
            db.close()
        logger.info("Cache fixture %s svuotata (%s fixture)", key, deleted)
        return deleted
