from pydantic_settings import BaseSettings, SettingsConfigDict
import os

class Settings(BaseSettings):
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    REDIS_URL: str = "redis://localhost:6379/0"
    RQ_QUEUE: str = "waveform"

    STORAGE_BACKEND: str = "local"
    STORAGE_DIR: str = "./data"
    UPLOAD_MAX_BYTES: int = 50 * 1024 * 1024
    ALLOWED_EXTENSIONS: tuple[str, ...] = (".mp3", ".wav", ".ogg")

    FFMPEG_BIN: str = "ffmpeg"
    FFPROBE_BIN: str = "ffprobe"

    # tempo estimation
    TARGET_SR: int = 22050

    # waveform contract (stored data + client depend on these)
    WAVEFORM_TARGET_PEAKS: int = 300
    WAVEFORM_SAMPLE_RATE: int = 8000
    WAVEFORM_MIN_PEAK: float = 0.05
    WAVEFORM_FALLBACK_LOW: float = 0.1
    WAVEFORM_FALLBACK_HIGH: float = 0.4
    WAVEFORM_DECODE_TIMEOUT: float = 120.0
    WAVEFORM_PROBE_TIMEOUT: float = 30.0
    WAVEFORM_ON_UPLOAD: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
os.makedirs(settings.STORAGE_DIR, exist_ok=True)
