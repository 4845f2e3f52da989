from __future__ import annotations

import argparse
import logging
import os
import shutil
import signal
import sys
from typing import List

from redis import Redis
from rq import Worker, Queue
from rq.logutils import setup_loghandlers

# ────────────────────────────────────────────────────────────────────────────
# 프로젝트 루트 경로 추가 (app.* 임포트 보장)
# ────────────────────────────────────────────────────────────────────────────
ROOT = os.path.abspath(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# settings: REDIS_URL, RQ_QUEUE, FFMPEG_BIN 등 사용
from app.core.config import settings  # noqa: E402
from app.db.session import create_all_sync  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Graceful shutdown (SIGINT/SIGTERM): 현재 잡 끝나면 종료
# ────────────────────────────────────────────────────────────────────────────
_SHOULD_STOP = False


def _signal_handler(signum, frame):
    global _SHOULD_STOP
    logging.warning("Received signal %s. Will stop after current job.", signum)
    _SHOULD_STOP = True


def _install_signal_handlers():
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)


def parse_queue_names(raw: str) -> List[str]:
    return [q.strip() for q in str(raw).split(",") if q.strip()]


def missing_decoder_binaries() -> List[str]:
    """PATH 에 없는 디코더 바이너리 목록 (없으면 모든 파형이 fallback)"""
    return [b for b in (settings.FFMPEG_BIN, settings.FFPROBE_BIN) if shutil.which(b) is None]


# ────────────────────────────────────────────────────────────────────────────
# 메인
# ────────────────────────────────────────────────────────────────────────────
def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Waveform / BPM analysis RQ worker")
    p.add_argument(
        "--queues",
        default=settings.RQ_QUEUE,
        help="Comma-separated queue names (default: settings.RQ_QUEUE)",
    )
    p.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log verbosity (default: settings.LOG_LEVEL)",
    )
    p.add_argument(
        "--burst",
        action="store_true",
        help="Burst mode: exit when queues are empty",
    )
    p.add_argument(
        "--require-ffmpeg",
        action="store_true",
        help="Refuse to start when ffmpeg/ffprobe are not on PATH",
    )
    return p.parse_args(argv)


def main(argv: List[str] | None = None):
    args = parse_args(argv)

    setup_loghandlers(level=args.log_level)
    logging.getLogger().setLevel(args.log_level)
    logging.info("Starting waveform worker")

    missing = missing_decoder_binaries()
    if missing:
        if args.require_ffmpeg:
            logging.error("Decoder binaries not found: %s", missing)
            sys.exit(1)
        logging.warning("Decoder binaries not found: %s (waveforms will fall back)", missing)

    redis_url = settings.REDIS_URL
    if not redis_url:
        logging.error("REDIS_URL is empty. Check environment.")
        sys.exit(1)
    redis_conn = Redis.from_url(redis_url)

    qnames = parse_queue_names(args.queues)
    if not qnames:
        logging.error("No queues specified")
        sys.exit(1)
    queues = [Queue(name, connection=redis_conn) for name in qnames]

    # 워커 단독 기동 시에도 테이블 보장
    create_all_sync()

    worker_name = os.environ.get("WORKER_NAME")
    _install_signal_handlers()

    worker = Worker(queues, connection=redis_conn, name=worker_name)
    logging.info(
        "Worker started. name=%s queues=%s, burst=%s, redis=%s",
        worker_name, qnames, args.burst, redis_url
    )
    worker.work(with_scheduler=False, burst=args.burst)

    if _SHOULD_STOP:
        logging.info("Worker stopped by signal.")
    else:
        logging.info("Worker exited.")


if __name__ == "__main__":
    main()
