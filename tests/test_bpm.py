import numpy as np
import soundfile as sf

from app.services.audio.analyze import estimate_bpm


def test_estimate_bpm_click_track(tmp_path):
    sr = 22050
    y = np.zeros(sr * 12, dtype=np.float32)
    click = np.hanning(200).astype(np.float32)
    for start in range(0, len(y) - 200, sr // 2):  # 120 BPM
        y[start:start + 200] += click
    path = tmp_path / "clicks.wav"
    sf.write(str(path), y, sr)

    bpm = estimate_bpm(str(path))
    assert bpm is not None
    assert 110 <= bpm <= 130


def test_estimate_bpm_silence_is_none(tmp_path):
    path = tmp_path / "silence.wav"
    sf.write(str(path), np.zeros(22050 * 2, dtype=np.float32), 22050)
    assert estimate_bpm(str(path)) is None


def test_estimate_bpm_unreadable_is_none(tmp_path):
    path = tmp_path / "notes.wav"
    path.write_text("not audio")
    assert estimate_bpm(str(path)) is None
