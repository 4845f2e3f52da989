from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.sql import func
from app.db.base import Base, BigIntPK

class Comment(Base):
    __tablename__ = "comment"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    track_id = Column(BigIntPK, ForeignKey("track.id", ondelete="CASCADE"), nullable=False, index=True)
    time = Column(Float, nullable=False)  # seconds into the track
    username = Column(String(64), nullable=False)
    text = Column(Text, nullable=False, default="")
    emoji = Column(String(16))
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
