from sqlalchemy import Column, String, Float, Index
from queuecast.db.base import Base
from queuecast.db.types import UTCDateTime

class PredictionForecast(Base):
    """Latest forecast for one queue; queue_id is the upsert key."""

    __tablename__ = "prediction_forecasts"
    queue_id = Column(String(255), primary_key=True)
    model_id = Column(String(128), nullable=False)
    model_type = Column(String(32), nullable=False)
    accuracy_threshold = Column(Float, nullable=False)
    est_wait_time = Column(Float, nullable=False)
    entry_probability = Column(Float, nullable=False)
    ci_lower = Column(Float, nullable=False)
    ci_upper = Column(Float, nullable=False)
    last_run = Column(UTCDateTime, nullable=False)
    __table_args__ = (Index("ix_prediction_forecasts_last_run", "last_run"),)
