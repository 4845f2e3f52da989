from __future__ import annotations

import asyncio
import os
import time

from app.core.logging import logger
from app.db.session import SyncSession

# ── 동기 분석 파이프라인 함수들 ──────────────────────────────────────
from app.services.audio.analyze import estimate_bpm                # 동기
from app.services.audio.waveform import create_extractor           # async → asyncio.run

# ── ORM 모델 ──────────────────────────────────────────────────────
from app.db.models.track import Track


def analyze_track_job(track_id: int) -> None:
    """
    RQ 워커에서 실행되는 '동기' 잡 함수.
    파형(peaks) 재계산 + BPM 이 비어 있으면 추정.
    각 단계 전/후로 로그와 경과 시간을 남긴다.
    """
    db = SyncSession()
    t: Track | None = None
    t0 = time.time()

    def dt() -> str:
        return f"{time.time() - t0:.2f}s"

    try:
        logger.info(f"[jobs] track={track_id} START")

        # 0) 대상 트랙 로드
        t = db.get(Track, track_id)
        if not t:
            logger.error(f"[jobs] Track {track_id} not found — ABORT total={dt()}")
            return
        if t.file_deleted_at is not None or not t.file_path or not os.path.exists(t.file_path):
            logger.error(f"[jobs] audio file missing path='{t.file_path}', ABORT total={dt()}")
            t.status = "failed"
            db.commit()
            return

        # 1) 상태 전이: queued -> processing
        t.status = "processing"
        db.commit()
        logger.info(f"[jobs] status=processing COMMIT ok total={dt()}")

        # 2) 파형 추출 (실패해도 fallback 파형이 돌아옴; 캐시 무시하고 새로 계산)
        s = time.time()
        logger.info(f"[jobs] extract_waveform START src='{t.file_path}'")
        extractor = create_extractor()
        waveform = asyncio.run(extractor.extract(t.file_path))
        t.waveform_data = waveform.to_dict()
        db.commit()
        logger.info(
            f"[jobs] extract_waveform DONE source={waveform.source} length={waveform.length} "
            f"dt={time.time()-s:.2f}s total={dt()}"
        )

        # 3) BPM 추정 (업로드 시 값이 없을 때만)
        if t.bpm is None and waveform.source == "decoded":
            s = time.time()
            bpm = estimate_bpm(t.file_path)
            t.bpm = bpm
            db.commit()
            logger.info(f"[jobs] estimate_bpm DONE bpm={bpm} dt={time.time()-s:.2f}s total={dt()}")

        # 4) 완료
        t.status = "done"
        db.commit()
        logger.info(f"[jobs] track={t.id} COMPLETE total={dt()}")

    except Exception as e:
        logger.exception(f"[jobs] analyze_track_job FAILED: {e} total={dt()}")
        try:
            if t is not None:
                db.rollback()
                t.status = "failed"
                db.commit()
                logger.info(f"[jobs] status=failed COMMIT ok total={dt()}")
        except Exception:
            logger.exception("[jobs] failed to mark track as failed")
        raise
    finally:
        db.close()
