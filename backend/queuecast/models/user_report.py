from sqlalchemy import Boolean, Column, Float, Index, Integer, String
from queuecast.db.base import Base
from queuecast.db.types import UTCDateTime

class UserReport(Base):
    # Written by the report submission/validation workflow; read-only here.
    __tablename__ = "user_reports"
    id = Column(Integer, primary_key=True)
    queue_id = Column(String(255), nullable=False)
    reported_wait_minutes = Column(Float, nullable=True)
    reported_crowd_level = Column(String(16), nullable=True)  # low | medium | high
    validated = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(UTCDateTime, nullable=False)
    __table_args__ = (Index("ix_user_reports_queue_submitted", "queue_id", "submitted_at"),)
