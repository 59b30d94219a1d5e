"""
Regole di freschezza per categoria di cache e registro delle chiamate (api_fetch_log).

Ogni categoria ha una regola diversa (stesso giorno, cooldown, stagione completa,
TTL breve, finestra pre-partita) ma tutte espongono is_fresh(entity, now).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from matchday.core.config import get_reference_timezone
from matchday.models import ApiFetchLog


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite restituisce datetime naive: li consideriamo UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reference_zone() -> ZoneInfo:
    return ZoneInfo(get_reference_timezone())


def local_day(now: datetime) -> date:
    """Giorno di calendario di `now` nel fuso di riferimento."""
    return as_utc(now).astimezone(reference_zone()).date()


def day_key(now: datetime) -> str:
    return local_day(now).isoformat()


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """[inizio, fine) del giorno di `now` nel fuso di riferimento, in UTC."""
    zone = reference_zone()
    day = local_day(now)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class FreshnessPolicy:
    """is_fresh(entity, now) -> True se il dato locale puo' essere servito senza chiamare il provider."""

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        raise NotImplementedError


class SameDayPolicy(FreshnessPolicy):
    """Fresco se il timestamp cade nel giorno corrente (fuso di riferimento)."""

    def __init__(self, timestamp: Callable[[Any], datetime | None] = lambda e: e):
        self._timestamp = timestamp

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        if entity is None:
            return False
        ts = as_utc(self._timestamp(entity))
        if ts is None:
            return False
        start, _ = day_bounds(now)
        return ts >= start


class CooldownPolicy(FreshnessPolicy):
    """Fresco finche' non e' trascorso `cooldown` dal timestamp."""

    def __init__(self, cooldown: timedelta, timestamp: Callable[[Any], datetime | None] = lambda e: e):
        self.cooldown = cooldown
        self._timestamp = timestamp

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        if entity is None:
            return False
        ts = as_utc(self._timestamp(entity))
        if ts is None:
            return False
        return as_utc(now) - ts < self.cooldown


class CompleteSeasonPolicy(FreshnessPolicy):
    """Aggregato stagionale completo: minuti >= partite massime * 90. Mai piu' ricalcolato."""

    def __init__(self, max_fixtures: int):
        self.max_fixtures = max_fixtures

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        if entity is None:
            return False
        return (entity.minutes_played or 0) >= self.max_fixtures * 90


class LiveScorePolicy(FreshnessPolicy):
    """Punteggio live: stato terminale = per sempre, altrimenti TTL breve."""

    def __init__(self, ttl: timedelta, terminal_statuses: frozenset[str]):
        self.ttl = ttl
        self.terminal_statuses = terminal_statuses

    def is_terminal(self, entity: Any) -> bool:
        return entity is not None and entity.status_short in self.terminal_statuses

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        if entity is None:
            return False
        if self.is_terminal(entity):
            return True
        cached_at = as_utc(entity.cached_at)
        return cached_at is not None and as_utc(now) - cached_at <= self.ttl


class WindowPolicy(FreshnessPolicy):
    """
    Finestra temporale [anchor - before, anchor + after] attorno al kickoff.
    Fuori finestra non c'e' nulla da chiedere al provider: il dato locale vale com'e'.
    """

    def __init__(self, before: timedelta, after: timedelta = timedelta(0)):
        self.before = before
        self.after = after

    def contains(self, anchor: datetime, now: datetime) -> bool:
        anchor = as_utc(anchor)
        now = as_utc(now)
        return anchor - self.before <= now <= anchor + self.after

    def is_fresh(self, entity: Any, now: datetime) -> bool:
        if entity is None:
            return False
        return not self.contains(entity.kickoff, now)


@dataclass
class CallBudget:
    """Numero massimo di chiamate al provider per una singola invocazione, condivisibile tra squadre."""

    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self, n: int = 1) -> None:
        self.remaining -= n


# --- api_fetch_log ---


def latest_fetch(db: Session, resource: str, success: bool | None = True) -> ApiFetchLog | None:
    q = db.query(ApiFetchLog).filter(ApiFetchLog.resource == resource)
    if success is not None:
        q = q.filter(ApiFetchLog.success == success)
    return q.order_by(ApiFetchLog.fetched_at.desc(), ApiFetchLog.id.desc()).first()


def record_fetch(
    db: Session,
    resource: str,
    success: bool,
    message: str | None = None,
    now: datetime | None = None,
) -> ApiFetchLog:
    """Aggiunge un marker e fa commit."""
    entry = ApiFetchLog(
        resource=resource,
        success=success,
        message=message,
        fetched_at=as_utc(now) if now else utcnow(),
    )
    db.add(entry)
    db.commit()
    return entry


def delete_markers(db: Session, resource: str, success: bool | None = None) -> int:
    q = db.query(ApiFetchLog).filter(ApiFetchLog.resource == resource)
    if success is not None:
        q = q.filter(ApiFetchLog.success == success)
    deleted = q.delete(synchronize_session=False)
    db.commit()
    return deleted


def delete_markers_with_prefix(db: Session, prefix: str) -> int:
    deleted = (
        db.query(ApiFetchLog)
        .filter(ApiFetchLog.resource.startswith(prefix))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
