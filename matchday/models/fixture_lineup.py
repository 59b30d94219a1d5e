"""
Formazioni per singola fixture: un record per ogni giocatore in distinta.
Nessuna riga per la fixture = formazione non ancora scaricata (non "senza formazione").
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from matchday.core.database import Base

LINEUP_STARTING = "starting"
LINEUP_SUBSTITUTE = "substitute"


class FixtureLineup(Base):
    __tablename__ = "fixture_lineups"

    id = Column(Integer, primary_key=True, index=True)
    fixture_id = Column(
        Integer, ForeignKey("fixtures.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    team_id = Column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    player_id = Column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
    )
    lineup_status = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # --- Relazioni ---
    fixture = relationship("Fixture")
    team = relationship("Team")
    player = relationship("Player")

    # --- Vincoli ---
    __table_args__ = (
        Index(
            "uq_fixture_lineups_fixture_team_player",
            "fixture_id", "team_id", "player_id",
            unique=True,
        ),
    )
