"""Punteggio live per fixture: una riga per partita, TTL breve finche' non e' terminata."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from matchday.core.database import Base


class LiveScoreCache(Base):
    __tablename__ = "live_score_cache"

    fixture_id = Column(
        Integer, ForeignKey("fixtures.id", ondelete="CASCADE"),
        primary_key=True,
    )
    home_goals = Column(Integer, nullable=False, default=0)
    away_goals = Column(Integer, nullable=False, default=0)
    elapsed_minutes = Column(Integer, nullable=True)
    status_short = Column(String(16), nullable=False, default="?")
    cached_at = Column(DateTime(timezone=True), nullable=False)
