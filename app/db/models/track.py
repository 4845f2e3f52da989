from sqlalchemy import Column, Integer, String, Enum, DateTime, Float, JSON
from sqlalchemy.sql import func
from app.db.base import Base, BigIntPK

TRACK_STATUSES = ("pending", "queued", "processing", "done", "failed")

class Track(Base):
    __tablename__ = "track"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    title = Column(String(255))
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(512))
    duration = Column(Float, nullable=False, default=0.0)
    bpm = Column(Integer)
    status = Column(Enum(*TRACK_STATUSES, name="track_status"), default="pending")
    waveform_data = Column(JSON)
    upload_date = Column(DateTime, server_default=func.now())
    file_deleted_at = Column(DateTime)
