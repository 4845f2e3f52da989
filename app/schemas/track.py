from datetime import datetime
from pydantic import BaseModel
from typing import List

from app.schemas.comment import CommentOut

class TrackOut(BaseModel):
    id: int
    title: str | None
    original_name: str
    duration: float
    bpm: int | None = None
    status: str
    upload_date: datetime | None = None
    file_deleted_at: datetime | None = None
    class Config:
        from_attributes = True

class TrackDetailOut(BaseModel):
    track: TrackOut
    comments: List[CommentOut]

class JobOut(BaseModel):
    job_id: str
    status: str
