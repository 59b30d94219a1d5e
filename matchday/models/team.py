"""Team ORM model."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from matchday.core.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    api_id = Column(Integer, unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    short_name = Column(String(32), nullable=True)
    country = Column(String(128), nullable=True)
    crest_url = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
