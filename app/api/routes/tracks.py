from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from fastapi.responses import FileResponse
from redis.exceptions import RedisError
import os, asyncio
from typing import BinaryIO
from app.core.config import settings
from app.core.logging import logger
from app.db.session import SESSION
from app.db.models.track import Track
from app.db.models.comment import Comment
from app.schemas.comment import CommentOut
from app.schemas.track import TrackOut, TrackDetailOut
from app.services.audio.errors import ProbeFailure
from app.services.audio.io import probe_duration
from app.services.tasks.queue import enqueue_analysis
from sqlalchemy import delete, insert, select, update
from starlette.status import HTTP_201_CREATED, HTTP_413_REQUEST_ENTITY_TOO_LARGE

router = APIRouter()

COPY_CHUNK = 1024 * 1024


class UploadTooLarge(Exception):
    pass


def _tracks_dir() -> str:
    dest_dir = os.path.join(settings.STORAGE_DIR, "tracks")
    os.makedirs(dest_dir, exist_ok=True)
    return dest_dir

def _save_upload(src: BinaryIO, dst_path: str, max_bytes: int) -> int:
    written = 0
    with open(dst_path, "wb") as f:
        while True:
            block = src.read(COPY_CHUNK)
            if not block:
                break
            written += len(block)
            if written > max_bytes:
                raise UploadTooLarge(f"{written} > {max_bytes} bytes")
            f.write(block)
    return written

def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass

async def _create_stub_record(*, title: str, original_name: str, bpm: int | None) -> int:
    async with SESSION() as db:
        stmt = insert(Track).values(
            title=title,
            original_name=original_name,
            file_path="",
            duration=0.0,
            bpm=bpm,
            status="pending",
        )
        res = await db.execute(stmt)
        await db.commit()
        return res.inserted_primary_key[0]

async def _finalize_record(track_id: int, file_path: str, duration: float, status: str = "pending") -> None:
    async with SESSION() as db:
        stmt = update(Track).where(Track.id == track_id).values(
            file_path=file_path, duration=duration, status=status
        )
        await db.execute(stmt)
        await db.commit()

async def _set_status(track_id: int, status: str) -> None:
    async with SESSION() as db:
        await db.execute(update(Track).where(Track.id == track_id).values(status=status))
        await db.commit()

async def _discard_record(track_id: int) -> None:
    async with SESSION() as db:
        await db.execute(delete(Track).where(Track.id == track_id))
        await db.commit()

async def _get_track_or_404(db, track_id: int) -> Track:
    track = await db.get(Track, track_id)
    if not track:
        raise HTTPException(404, "Track not found")
    return track

# ------- endpoint -------
@router.post("/upload", status_code=HTTP_201_CREATED, response_model=TrackOut)
async def upload_track(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    bpm: int | None = Form(None),
    duration: float | None = Form(None),
):
    original_name = file.filename or ""
    ext = os.path.splitext(original_name)[1].lower()
    if ext not in settings.ALLOWED_EXTENSIONS:
        raise HTTPException(400, "Invalid file type. Only MP3, WAV, and OGG files are allowed.")

    track_id = await _create_stub_record(title=title or original_name, original_name=original_name, bpm=bpm)
    final_path = os.path.join(_tracks_dir(), f"{track_id}{ext}")

    try:
        size = await asyncio.to_thread(_save_upload, file.file, final_path, settings.UPLOAD_MAX_BYTES)
    except UploadTooLarge:
        _remove_quietly(final_path)
        await _discard_record(track_id)
        raise HTTPException(HTTP_413_REQUEST_ENTITY_TOO_LARGE, "File too large")
    except Exception:
        _remove_quietly(final_path)
        await _discard_record(track_id)
        raise
    logger.info(f"[upload] track={track_id} saved '{final_path}' ({size} bytes)")

    if duration is None:
        try:
            duration = await probe_duration(
                final_path, settings.FFPROBE_BIN, timeout=settings.WAVEFORM_PROBE_TIMEOUT
            )
        except ProbeFailure as e:
            logger.warning(f"[upload] track={track_id} duration probe failed: {e}")
            duration = 0.0

    # 워커가 processing 으로 바꾸기 전에 queued 를 먼저 기록
    status = "queued" if settings.WAVEFORM_ON_UPLOAD else "pending"
    await _finalize_record(track_id, final_path, duration, status=status)

    if settings.WAVEFORM_ON_UPLOAD:
        try:
            job_id = await asyncio.to_thread(enqueue_analysis, track_id)
            logger.info(f"[upload] track={track_id} waveform job={job_id} queued")
        except RedisError as e:
            # 업로드 자체는 성공; 파형은 GET 시 계산되거나 refresh 로 재시도
            logger.error(f"[upload] track={track_id} enqueue failed: {e}")
            await _set_status(track_id, "pending")

    async with SESSION() as db:
        return TrackOut.model_validate(await _get_track_or_404(db, track_id))

@router.get("", response_model=list[TrackOut])
async def list_tracks():
    async with SESSION() as db:
        rows = await db.scalars(select(Track).order_by(Track.upload_date.desc(), Track.id.desc()))
        return [TrackOut.model_validate(t) for t in rows]

@router.get("/{track_id}", response_model=TrackDetailOut)
async def get_track(track_id: int):
    async with SESSION() as db:
        track = await _get_track_or_404(db, track_id)
        comments = await db.scalars(
            select(Comment).where(Comment.track_id == track_id).order_by(Comment.time, Comment.id)
        )
        return TrackDetailOut(
            track=TrackOut.model_validate(track),
            comments=[CommentOut.model_validate(c) for c in comments],
        )

@router.get("/{track_id}/audio")
async def get_track_audio(track_id: int):
    async with SESSION() as db:
        track = await _get_track_or_404(db, track_id)
    if track.file_deleted_at is not None or not track.file_path or not os.path.exists(track.file_path):
        raise HTTPException(404, "Audio file not found")
    return FileResponse(track.file_path, filename=track.original_name)

@router.delete("/{track_id}")
async def delete_track(track_id: int):
    async with SESSION() as db:
        track = await _get_track_or_404(db, track_id)
        if track.file_path:
            await asyncio.to_thread(_remove_quietly, track.file_path)
        await db.execute(delete(Comment).where(Comment.track_id == track_id))
        await db.delete(track)
        await db.commit()
    logger.info(f"[tracks] track={track_id} deleted")
    return {"message": "Track deleted successfully"}
