import numpy as np

# signed 16-bit full scale; abs(-32768) / 32768 == 1.0
PCM16_SCALE = 32768.0


def pcm16_to_magnitudes(buf: bytes) -> np.ndarray:
    """Little-endian s16 PCM bytes -> abs(sample) / 32768 as float64.

    `buf` must hold a whole number of samples (even length).
    """
    samples = np.frombuffer(buf, dtype="<i2").astype(np.int32)
    return np.abs(samples) / PCM16_SCALE


def downsample_peaks(raw: np.ndarray, target: int, min_peak: float) -> list[float]:
    """Bucket `raw` magnitudes into `target` max-peaks for bar rendering.

    Sequences shorter than `target` are returned unchanged (no floor, no
    padding). Otherwise chunk size is floor(len / target), the last chunk runs
    to the end of `raw`, each bucket is the chunk max and then floored at
    `min_peak`.
    """
    raw = np.asarray(raw, dtype=np.float64)
    n = len(raw)
    if n < target:
        return [float(v) for v in raw]

    chunk = n // target
    head = raw[: chunk * (target - 1)].reshape(target - 1, chunk).max(axis=1)
    tail = raw[chunk * (target - 1):].max()
    peaks = np.maximum(np.append(head, tail), min_peak)
    return [float(v) for v in peaks]


def fallback_peaks(
    count: int,
    low: float,
    high: float,
    rng: np.random.Generator | None = None,
) -> list[float]:
    # placeholder noise for undecodable audio; only the shape is stable
    rng = rng or np.random.default_rng()
    return [float(v) for v in rng.uniform(low, high, size=count)]
