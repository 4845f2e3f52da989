import numpy as np
import pytest

from app.services.audio.peaks import downsample_peaks, fallback_peaks, pcm16_to_magnitudes


def test_magnitudes_use_abs_and_32768_divisor():
    buf = np.array([0, 16384, -16384, 32767, -32768], dtype="<i2").tobytes()
    mags = pcm16_to_magnitudes(buf)
    assert mags.tolist() == [0.0, 0.5, 0.5, 32767 / 32768, 1.0]


def test_max_not_average_within_chunk():
    raw = np.array([0.01] * 10 + [0.9] + [0.01] * 11)  # 22 samples, 2 buckets of 11
    peaks = downsample_peaks(raw, 2, 0.05)
    assert peaks[0] == 0.9
    assert peaks[1] == 0.05


def test_silent_chunk_gets_floor():
    raw = np.concatenate([np.zeros(10), np.full(10, 0.3)])
    assert downsample_peaks(raw, 2, 0.05) == [0.05, pytest.approx(0.3)]


def test_floor_applied_after_max():
    # 0.04 and 0.06 in the same chunk: max first (0.06), then floor leaves it alone
    raw = np.array([0.04, 0.06, 0.0, 0.0])
    assert downsample_peaks(raw, 2, 0.05) == [pytest.approx(0.06), 0.05]


def test_last_chunk_absorbs_remainder():
    # 10 samples / 3 buckets -> chunk 3, last bucket covers indices 6..9
    raw = np.zeros(10)
    raw[9] = 0.7
    peaks = downsample_peaks(raw, 3, 0.05)
    assert len(peaks) == 3
    assert peaks == [0.05, 0.05, pytest.approx(0.7)]


def test_short_sequence_returned_unchanged():
    raw = np.array([0.0, 0.2, 0.01])
    assert downsample_peaks(raw, 300, 0.05) == [0.0, pytest.approx(0.2), pytest.approx(0.01)]


def test_scenario_24000_samples_gives_300_buckets_of_80(scenario_pcm):
    raw = pcm16_to_magnitudes(scenario_pcm.tobytes())
    peaks = downsample_peaks(raw, 300, 0.05)
    assert len(peaks) == 300
    assert peaks[0] == 0.05
    assert peaks[1] == 0.05  # 100 / 32768 is below the floor
    assert peaks[100] == pytest.approx(10000 / 32768)
    assert peaks[-1] == 1.0
    assert all(0.05 <= p <= 1.0 for p in peaks)


def test_fallback_peaks_range_and_length():
    peaks = fallback_peaks(300, 0.1, 0.4)
    assert len(peaks) == 300
    assert all(0.1 <= p <= 0.4 for p in peaks)


def test_fallback_peaks_seeded_rng_is_repeatable():
    a = fallback_peaks(5, 0.1, 0.4, np.random.default_rng(7))
    b = fallback_peaks(5, 0.1, 0.4, np.random.default_rng(7))
    assert a == b
