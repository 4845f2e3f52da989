from contextlib import asynccontextmanager

from fastapi import FastAPI
from app.core.logging import logger
from app.db.session import DefaultSessionMiddleware, db_manager
from app.api.routes.tracks import router as tracks_router
from app.api.routes.comments import router as comments_router
from app.api.routes.waveform import router as waveform_router


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await db_manager.create_all()
    logger.info("DB tables ensured.")
    yield
    await db_manager.engine.dispose()


app = FastAPI(title="Demo feedback API", lifespan=lifespan)
app.add_middleware(DefaultSessionMiddleware)

app.include_router(tracks_router, prefix="/tracks", tags=["tracks"])
app.include_router(comments_router, prefix="/tracks", tags=["comments"])
app.include_router(waveform_router, prefix="/tracks", tags=["waveform"])


@app.get("/health")
def health():
    return {"status": "ok"}
