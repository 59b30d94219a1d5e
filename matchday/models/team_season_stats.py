"""
Aggregati stagionali di squadra (gol, corner, cartellini, xG) per team/stagione/competizione.
Costruiti a partire dalle righe di team_fixture_cache.
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from matchday.core.database import Base


class TeamSeasonStats(Base):
    __tablename__ = "team_season_stats"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    season = Column(Integer, nullable=False)
    league_id = Column(Integer, nullable=False)
    league = Column(String(255), nullable=True)

    minutes_played = Column(Integer, nullable=False, default=0)
    goals_for = Column(Integer, nullable=False, default=0)
    goals_against = Column(Integer, nullable=False, default=0)
    corners = Column(Integer, nullable=False, default=0)
    yellow_cards = Column(Integer, nullable=False, default=0)
    red_cards = Column(Integer, nullable=False, default=0)
    # Somma xG sulle sole partite che lo riportano; xg_matches = quante sono
    xg_for = Column(Float, nullable=True)
    xg_matches = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team")

    __table_args__ = (
        Index(
            "uq_team_season_stats_key",
            "team_id", "season", "league_id",
            unique=True,
        ),
    )
