class WaveformError(Exception):
    """Base class for waveform extraction failures (never leaves the extractor)."""


class ProbeFailure(WaveformError):
    """Duration could not be determined."""

    def __init__(self, message: str, *, missing: bool = False):
        super().__init__(message)
        self.missing = missing


class DecodeFailure(WaveformError):
    """The decoder could not be started, failed mid-stream or timed out."""
