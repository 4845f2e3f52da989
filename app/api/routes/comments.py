from collections import Counter

from fastapi import APIRouter, HTTPException
from sqlalchemy import select
from starlette.status import HTTP_201_CREATED

from app.db.session import SESSION
from app.db.models.comment import Comment
from app.db.models.track import Track
from app.schemas.comment import CommentCreate, CommentOut

router = APIRouter()


async def _ensure_track(db, track_id: int) -> Track:
    track = await db.get(Track, track_id)
    if not track:
        raise HTTPException(404, "Track not found")
    return track


@router.get("/{track_id}/comments", response_model=list[CommentOut])
async def list_comments(track_id: int):
    async with SESSION() as db:
        await _ensure_track(db, track_id)
        rows = await db.scalars(
            select(Comment).where(Comment.track_id == track_id).order_by(Comment.time, Comment.id)
        )
        return [CommentOut.model_validate(c) for c in rows]


@router.post("/{track_id}/comments", status_code=HTTP_201_CREATED, response_model=CommentOut)
async def create_comment(track_id: int, body: CommentCreate):
    async with SESSION() as db:
        track = await _ensure_track(db, track_id)
        if track.duration and body.time > track.duration:
            raise HTTPException(400, f"Comment time {body.time:.2f}s is beyond track duration {track.duration:.2f}s")

        comment = Comment(track_id=track_id, **body.model_dump())
        db.add(comment)
        await db.commit()
        await db.refresh(comment)
        return CommentOut.model_validate(comment)


@router.delete("/{track_id}/comments/{comment_id}")
async def delete_comment(track_id: int, comment_id: int):
    async with SESSION() as db:
        comment = await db.get(Comment, comment_id)
        if not comment or comment.track_id != track_id:
            raise HTTPException(404, "Comment not found")
        await db.delete(comment)
        await db.commit()
    return {"message": "Comment deleted successfully"}


@router.get("/{track_id}/reactions", response_model=dict[str, int])
async def reaction_counts(track_id: int):
    async with SESSION() as db:
        await _ensure_track(db, track_id)
        emojis = await db.scalars(
            select(Comment.emoji).where(Comment.track_id == track_id, Comment.emoji.is_not(None))
        )
        return dict(Counter(emojis))
