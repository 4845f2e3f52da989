"""Waveform peak extraction for the track player.

Produces a fixed-size amplitude envelope (`WaveformData`) for any audio file
the blob store holds. Extraction never raises for probe or decode problems:
those degrade to a synthetic fallback waveform of the same shape, tagged with
``source="fallback"`` so callers can tell it apart from decoded data.
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

import numpy as np

from app.core.config import Settings, settings as default_settings
from app.core.logging import logger
from app.services.audio.errors import DecodeFailure, ProbeFailure
from app.services.audio.io import decode_magnitudes, probe_duration
from app.services.audio.peaks import downsample_peaks, fallback_peaks

WaveformSource = Literal["decoded", "fallback"]


@dataclass(frozen=True)
class WaveformData:
    peaks: list[float]
    source: WaveformSource = "decoded"
    length: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "length", len(self.peaks))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class WaveformExtractor:
    """Holds extraction settings; one instance can serve any number of calls.

    Calls share no mutable state, so concurrent `extract` calls on the same
    instance are safe.
    """

    def __init__(
        self,
        *,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        target_peaks: int = 300,
        sample_rate: int = 8000,
        min_peak: float = 0.05,
        fallback_range: tuple[float, float] = (0.1, 0.4),
        decode_timeout: float | None = None,
        probe_timeout: float | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin
        self.target_peaks = target_peaks
        self.sample_rate = sample_rate
        self.min_peak = min_peak
        self.fallback_range = fallback_range
        self.decode_timeout = decode_timeout
        self.probe_timeout = probe_timeout
        self.rng = rng

    def fallback(self) -> WaveformData:
        low, high = self.fallback_range
        return WaveformData(
            peaks=fallback_peaks(self.target_peaks, low, high, self.rng),
            source="fallback",
        )

    async def extract(self, file_path: str) -> WaveformData:
        try:
            duration = await probe_duration(file_path, self.ffprobe_bin, timeout=self.probe_timeout)
        except ProbeFailure as e:
            kind = "missing file" if e.missing else "probe failed"
            logger.warning(f"[waveform] {kind} path='{file_path}': {e} -> fallback")
            return self.fallback()

        if not duration or duration <= 0:
            logger.warning(f"[waveform] zero duration path='{file_path}' -> fallback")
            return self.fallback()

        try:
            raw = await decode_magnitudes(
                file_path,
                ffmpeg_bin=self.ffmpeg_bin,
                sample_rate=self.sample_rate,
                timeout=self.decode_timeout,
            )
            if raw.size == 0:
                raise DecodeFailure("decoder produced no samples")
        except DecodeFailure as e:
            logger.warning(f"[waveform] decode failed path='{file_path}': {e} -> fallback")
            return self.fallback()

        peaks = downsample_peaks(raw, self.target_peaks, self.min_peak)
        logger.debug(
            f"[waveform] decoded path='{file_path}' dur={duration:.2f}s "
            f"raw={raw.size} peaks={len(peaks)}"
        )
        return WaveformData(peaks=peaks, source="decoded")

    def is_valid_cache(self, cached: Any) -> bool:
        """Stored waveform is reusable: well-formed and not denser than target."""
        if not isinstance(cached, dict):
            return False
        peaks = cached.get("peaks")
        length = cached.get("length")
        if not isinstance(peaks, list) or not isinstance(length, int):
            return False
        if cached.get("source", "decoded") not in ("decoded", "fallback"):
            return False
        if not all(isinstance(p, (int, float)) and not isinstance(p, bool) for p in peaks):
            return False
        return 0 < length == len(peaks) and length <= self.target_peaks

    async def get_or_compute(self, track) -> WaveformData | None:
        """Cached waveform of `track`, recomputed when missing or stale.

        Returns None when nothing usable is cached and the audio file is gone.
        The caller persists `track.waveform_data` when a new value comes back.
        """
        cached = track.waveform_data
        if self.is_valid_cache(cached):
            return WaveformData(
                peaks=[float(p) for p in cached["peaks"]],
                source=cached.get("source", "decoded"),
            )

        if track.file_deleted_at is not None or not track.file_path or not os.path.exists(track.file_path):
            logger.warning(f"[waveform] audio file not found track={track.id} path='{track.file_path}'")
            return None

        logger.info(f"[waveform] generating waveform track={track.id}")
        return await self.extract(track.file_path)


def create_extractor(cfg: Settings | None = None, **overrides) -> WaveformExtractor:
    cfg = cfg or default_settings
    options = dict(
        ffmpeg_bin=cfg.FFMPEG_BIN,
        ffprobe_bin=cfg.FFPROBE_BIN,
        target_peaks=cfg.WAVEFORM_TARGET_PEAKS,
        sample_rate=cfg.WAVEFORM_SAMPLE_RATE,
        min_peak=cfg.WAVEFORM_MIN_PEAK,
        fallback_range=(cfg.WAVEFORM_FALLBACK_LOW, cfg.WAVEFORM_FALLBACK_HIGH),
        decode_timeout=cfg.WAVEFORM_DECODE_TIMEOUT,
        probe_timeout=cfg.WAVEFORM_PROBE_TIMEOUT,
    )
    options.update(overrides)
    return WaveformExtractor(**options)


async def extract_waveform(file_path: str) -> WaveformData:
    return await create_extractor().extract(file_path)
