from contextvars import ContextVar, Token
from uuid import uuid4
from sqlalchemy import AsyncAdaptedQueuePool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.ext.asyncio import (
    async_scoped_session,
    async_sessionmaker,
    create_async_engine,
)
from starlette.middleware.base import BaseHTTPMiddleware

from app.db.base import Base
from app.db.config import DatabaseSettings
settings = DatabaseSettings()
class DatabaseManager:
    def __init__(self):
        # mysql이면 aiomysql, sqlite면 aiosqlite 로 driver 자동 보정
        url = settings.url
        self.engine = create_async_engine(
            url,
            poolclass=AsyncAdaptedQueuePool,
            pool_recycle=28000,      # RDS wait_timeout 대비
            pool_pre_ping=True,      # 죽은 커넥션 사전 감지
            echo=settings.DB_ECHO,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """앱 기동 시 테이블 보장"""
        # 모델 등록을 위해 import (metadata 채우기)
        from app.db.models import track, comment  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


db_manager = DatabaseManager()


# 세션 컨텍스트(요청/태스크 스코프)
session_context_var: ContextVar[tuple[str | None, str | None]] = ContextVar(
    "session_context", default=(None, None)
)


def reset_session(token: Token) -> None:
    """세션 컨텍스트 초기화"""
    session_context_var.reset(token)


def start_default_session() -> Token:
    """DefaultSessionMiddleware 에서 요청마다 1회 호출"""
    return session_context_var.set((uuid4().hex, None))


def get_session_id() -> str | None:
    """async_scoped_session scopefunc: 세션 스코프 키 반환"""
    return session_context_var.get()[0]


SESSION = async_scoped_session(
    session_factory=db_manager.session_factory,
    scopefunc=get_session_id,
)


class DefaultSessionMiddleware(BaseHTTPMiddleware):
    """요청 단위로 세션 스코프를 열고, 응답 후 scoped session 정리"""

    async def dispatch(self, request, call_next):
        token = start_default_session()
        try:
            return await call_next(request)
        finally:
            await SESSION.remove()
            reset_session(token)


# ── 동기 엔진/세션 (RQ 워커 전용, mysql이면 pymysql) ──────────────────────
_sync_engine = create_engine(settings.sync_url, pool_pre_ping=True, pool_recycle=28000)
SyncSession = sessionmaker(bind=_sync_engine, autoflush=False, autocommit=False)


def create_all_sync() -> None:
    """워커 단독 실행 시 테이블 보장"""
    from app.db.models import track, comment  # noqa: F401

    Base.metadata.create_all(bind=_sync_engine)
