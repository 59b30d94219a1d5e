"""Player ORM model. Dati anagrafici giocatore (API-Football)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from matchday.core.database import Base


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    api_id = Column(Integer, unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    position = Column(String(64), nullable=True)
    shirt_number = Column(Integer, nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team")
    season_stats = relationship("PlayerSeasonStats", back_populates="player", lazy="selectin")
