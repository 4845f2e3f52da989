from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
import asyncio
from sqlalchemy import update

from app.core.logging import logger
from app.db.session import SESSION
from app.db.models.track import Track
from app.schemas.track import JobOut
from app.schemas.waveform import WaveformOut
from app.services.audio.waveform import WaveformExtractor, create_extractor
from app.services.tasks.queue import enqueue_analysis

router = APIRouter()


def get_extractor() -> WaveformExtractor:
    return create_extractor()


@router.get("/{track_id}/waveform", response_model=WaveformOut)
async def get_waveform(track_id: int, extractor: WaveformExtractor = Depends(get_extractor)):
    async with SESSION() as db:
        track = await db.get(Track, track_id)
        if not track:
            raise HTTPException(404, "Track not found")

        was_cached = extractor.is_valid_cache(track.waveform_data)
        data = await extractor.get_or_compute(track)
        if data is None:
            raise HTTPException(404, "Audio file not found")

        if not was_cached:
            track.waveform_data = data.to_dict()
            await db.commit()
            logger.info(f"[waveform] track={track_id} cached source={data.source} length={data.length}")
        return data.to_dict()


@router.post("/{track_id}/waveform/refresh", response_model=JobOut)
async def refresh_waveform(track_id: int):
    async with SESSION() as db:
        track = await db.get(Track, track_id)
        if not track:
            raise HTTPException(404, "Track not found")
        previous = track.status if track.status != "queued" else "pending"
        track.status = "queued"
        await db.commit()
    try:
        job_id = await asyncio.to_thread(enqueue_analysis, track_id)
    except RedisError as e:
        logger.error(f"[waveform] enqueue failed track={track_id}: {e}")
        # 잡이 없으니 queued 로 남기지 않음
        async with SESSION() as db:
            await db.execute(update(Track).where(Track.id == track_id).values(status=previous))
            await db.commit()
        raise HTTPException(503, "Job queue unavailable")
    return {"job_id": job_id, "status": "queued"}
