"""
Checkpoint per fixture: statistiche di una singola partita di una squadra.
La presenza della riga significa "statistiche gia' scaricate, non richiamare il provider".
Mai cancellata automaticamente; usata anche per la form delle ultime partite.
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer
from sqlalchemy.sql import func

from matchday.core.database import Base


class TeamFixtureCache(Base):
    __tablename__ = "team_fixture_cache"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    season = Column(Integer, nullable=False)
    league_id = Column(Integer, nullable=False)
    api_fixture_id = Column(Integer, nullable=False)
    fixture_date = Column(DateTime(timezone=True), nullable=True)

    goals_for = Column(Integer, nullable=False, default=0)
    goals_against = Column(Integer, nullable=False, default=0)
    corners = Column(Integer, nullable=False, default=0)
    yellow_cards = Column(Integer, nullable=False, default=0)
    red_cards = Column(Integer, nullable=False, default=0)
    xg = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index(
            "uq_team_fixture_cache_key",
            "team_id", "season", "league_id", "api_fixture_id",
            unique=True,
        ),
        Index("ix_team_fixture_cache_team_season", "team_id", "season", "league_id"),
    )
