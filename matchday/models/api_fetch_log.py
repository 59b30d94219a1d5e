"""
Registro append-only delle chiamate al provider, chiave = stringa risorsa
(es. fixtures:2026-02-14, teamSeasonCorners:12:2025:39).
Consultato prima di una nuova chiamata per le categorie senza una cache dedicata.
"""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from matchday.core.database import Base


class ApiFetchLog(Base):
    __tablename__ = "api_fetch_log"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    resource = Column(String(255), nullable=False)
    success = Column(Boolean, nullable=False, default=True)
    message = Column(Text, nullable=True)
    fetched_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_api_fetch_log_resource_fetched_at", "resource", "fetched_at"),
    )
