from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """DB 접속 설정. DATABASE_URL 하나로 MySQL / SQLite 모두 지원."""

    DATABASE_URL: str = "sqlite:///./data/demo_feedback.db"
    DB_ECHO: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def url(self) -> str:
        """async 드라이버로 보정된 URL (API 서버용)"""
        url = self.DATABASE_URL
        if url.startswith("mysql://") or url.startswith("mysql+pymysql://"):
            return "mysql+aiomysql://" + url.split("://", 1)[1]
        if url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def sync_url(self) -> str:
        """sync 드라이버로 보정된 URL (RQ 워커용)"""
        url = self.DATABASE_URL
        if url.startswith("mysql://") or url.startswith("mysql+aiomysql://"):
            return "mysql+pymysql://" + url.split("://", 1)[1]
        if url.startswith("sqlite+aiosqlite://"):
            return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")
