import numpy as np
import librosa

from app.core.config import settings
from app.core.logging import logger

# 통일된 hop_length 사용 (librosa 기본값 512과 동일)
HOP = 512


def estimate_bpm(audio_path: str, sr: int | None = None) -> int | None:
    """
    업로드 시 BPM 이 비어 있는 트랙용 템포 추정 (librosa beat tracking)
    - 무음 / 추정 실패 / 로드 실패 → None
    """
    sr = int(sr or settings.TARGET_SR)
    try:
        y, _ = librosa.load(audio_path, sr=sr, mono=True)
    except Exception as e:  # audioread/soundfile 백엔드별 예외가 제각각
        logger.warning(f"[bpm] load failed path='{audio_path}': {e}")
        return None

    # 무음이면 beat_track 결과가 의미 없음
    if y.size == 0 or np.allclose(y, 0):
        return None
    y = librosa.util.normalize(y)

    tempo, _ = librosa.beat.beat_track(y=y, sr=sr, hop_length=HOP, units="frames")
    bpm = float(np.atleast_1d(tempo)[0])
    if not np.isfinite(bpm) or bpm <= 0:
        return None
    return int(round(bpm))
