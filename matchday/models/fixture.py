"""Fixture ORM model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from matchday.core.database import Base


class Fixture(Base):
    __tablename__ = "fixtures"

    id = Column(Integer, primary_key=True, index=True)
    api_id = Column(Integer, unique=True, nullable=True, index=True)
    kickoff = Column(DateTime(timezone=True), nullable=False, index=True)
    league = Column(String(255), nullable=True)
    league_id = Column(Integer, nullable=True, index=True)
    season = Column(Integer, nullable=False, index=True)
    status = Column(String(32), nullable=False, default="UNKNOWN")
    home_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    away_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    home_team = relationship("Team", foreign_keys=[home_team_id])
    away_team = relationship("Team", foreign_keys=[away_team_id])
