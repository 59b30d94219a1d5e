"""
Player season statistics: una riga per giocatore per squadra, stagione e competizione.
Aggiornate al massimo una volta ogni 24 ore (cooldown su updated_at).
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from matchday.core.database import Base


class PlayerSeasonStats(Base):
    __tablename__ = "player_season_stats"

    id = Column(Integer, primary_key=True, index=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    season = Column(Integer, nullable=False)
    league_id = Column(Integer, nullable=False)
    league = Column(String(255), nullable=True)

    appearances = Column(Integer, nullable=False, default=0)
    minutes = Column(Integer, nullable=False, default=0)
    goals = Column(Integer, nullable=False, default=0)
    assists = Column(Integer, nullable=False, default=0)
    fouls = Column(Integer, nullable=False, default=0)
    shots = Column(Integer, nullable=False, default=0)
    shots_on_target = Column(Integer, nullable=False, default=0)
    tackles = Column(Integer, nullable=False, default=0)
    yellow_cards = Column(Integer, nullable=False, default=0)
    red_cards = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # --- RELAZIONI ---
    player = relationship("Player", back_populates="season_stats")
    team = relationship("Team")

    # --- INDICI ---
    __table_args__ = (
        Index(
            "uq_player_season_stats_key",
            "player_id", "team_id", "season", "league_id",
            unique=True,
        ),
        Index("ix_player_season_stats_team_season", "team_id", "season", "league_id"),
    )
