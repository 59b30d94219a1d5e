"""
Pulizia mirata delle cache, per debug e ripartenze manuali.
Solo clear_all tocca team_fixture_cache: per le altre i checkpoint per partita restano validi.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.models import (
    ApiFetchLog,
    Fixture,
    FixtureLineup,
    LiveScoreCache,
    Player,
    PlayerSeasonStats,
    Team,
    TeamFixtureCache,
    TeamSeasonStats,
)
from matchday.services.fixtures_service import delete_fixtures
from matchday.services.freshness import delete_markers_with_prefix

logger = logging.getLogger(__name__)


def clear_team_stats_markers(db: Session) -> int:
    """
    Rimuove i marker teamSeasonCorners:. La prossima aggregazione richiama solo
    l'elenco partite e scarica le statistiche mancanti.
    """
    deleted = delete_markers_with_prefix(db, "teamSeasonCorners:")
    logger.info("Rimossi %s marker teamSeasonCorners", deleted)
    return deleted


def clear_player_stats(db: Session) -> int:
    """Cancella tutte le statistiche giocatori e i relativi marker: il cooldown riparte da zero."""
    deleted = db.query(PlayerSeasonStats).delete(synchronize_session=False)
    db.commit()
    delete_markers_with_prefix(db, "playerStats:")
    logger.info("Cancellate %s righe player_season_stats", deleted)
    return deleted


def clear_fixtures(db: Session) -> int:
    """Cancella fixture (con formazioni e punteggi live) e tutti i marker."""
    ids = [row.id for row in db.query(Fixture.id).all()]
    deleted = delete_fixtures(db, ids)
    markers = db.query(ApiFetchLog).delete(synchronize_session=False)
    db.commit()
    logger.info("Cancellate %s fixture e %s marker", deleted, markers)
    return deleted


# Figli prima dei genitori: nessun vincolo di chiave esterna resta appeso.
ALL_TABLES = (
    FixtureLineup,
    LiveScoreCache,
    PlayerSeasonStats,
    TeamFixtureCache,
    TeamSeasonStats,
    Player,
    Fixture,
    Team,
    ApiFetchLog,
)


def clear_all(db: Session) -> int:
    """
    Svuota tutto: statistiche, giocatori, fixture, squadre e marker.
    Un solo commit alla fine; in caso di errore non resta nulla a meta'.
    """
    counts: dict[str, int] = {}
    try:
        for model in ALL_TABLES:
            counts[model.__tablename__] = db.query(model).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Errore svuotamento database")
        raise
    logger.info("Database svuotato: %s", ", ".join(f"{table}={n}" for table, n in counts.items()))
    return sum(counts.values())
