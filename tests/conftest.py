import os
import stat
import tempfile

# app.* 임포트 전에 테스트용 저장소/DB 지정
_TMP = tempfile.mkdtemp(prefix="demo-feedback-tests-")
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "data")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db")
os.environ["WAVEFORM_ON_UPLOAD"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import numpy as np
import pytest
import soundfile as sf


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable /bin/sh script standing in for ffmpeg/ffprobe."""
    def _make(name: str, body: str) -> str:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return _make


@pytest.fixture
def wav_file(tmp_path):
    """3 s, 16 kHz mono sine; soundfile can probe it without ffprobe."""
    path = tmp_path / "demo.wav"
    t = np.arange(48000) / 16000.0
    sf.write(str(path), 0.5 * np.sin(2 * np.pi * 440.0 * t), 16000, subtype="PCM_16")
    return str(path)


@pytest.fixture
def scenario_pcm():
    """24000 s16 samples (3 s at 8 kHz); bucket i holds one spike of -(i * 100)."""
    samples = np.zeros(24000, dtype="<i2")
    for i in range(300):
        samples[i * 80 + 3] = -(i * 100)
    samples[-1] = -32768
    return samples


@pytest.fixture
def pcm_ffmpeg(tmp_path, make_tool, scenario_pcm):
    """Fake ffmpeg that streams `scenario_pcm` to stdout."""
    raw = tmp_path / "decoded.pcm"
    raw.write_bytes(scenario_pcm.tobytes())
    return make_tool("ffmpeg-pcm", f"exec cat '{raw}'")
