"""SQLAlchemy models for persistent run history."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Boolean,
    Text,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Run(Base):
    __tablename__ = "runs"

    id = Column(String(36), primary_key=True)
    prompt = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="running")  # running | success | clarification | failure | cancelled
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)
    category = Column(String(32), nullable=True)
    complexity = Column(String(16), nullable=True)
    section_titles = Column(JSON, nullable=True)
    sections_generated = Column(Integer, nullable=False, default=0)
    salvaged = Column(Boolean, nullable=False, default=False)
    total_tokens = Column(Integer, nullable=False, default=0)
    retry_count = Column(Integer, nullable=False, default=0)
    step_count = Column(Integer, nullable=False, default=0)
    model_used = Column(String(64), nullable=True)
    error = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Run {self.id} status={self.status} sections={self.sections_generated}>"
