import asyncio
from pathlib import Path

import numpy as np
import soundfile as sf

from app.services.audio.errors import DecodeFailure, ProbeFailure
from app.services.audio.peaks import pcm16_to_magnitudes

READ_CHUNK = 64 * 1024


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass  # 이미 종료됨, wait 로 회수만
        await proc.wait()


async def probe_duration(input_path: str, ffprobe_bin: str = "ffprobe", timeout: float | None = None) -> float:
    """
    오디오 길이(초) 확인. 메타데이터만 읽음 (디코딩 없음)
    - libsndfile 이 읽을 수 있는 포맷(wav/flac/ogg)은 soundfile 로
    - 그 외(mp3 등)는 ffprobe format=duration
    - ffprobe 가 timeout 초 안에 끝나지 않으면 kill 후 ProbeFailure

    Raises:
        ProbeFailure: 파일 없음 / ffprobe 실행 불가 / 시간 초과 / 길이 파싱 실패
    """
    in_path = Path(input_path)
    if not in_path.is_file():
        raise ProbeFailure(f"Input audio not found: {in_path}", missing=True)

    try:
        info = await asyncio.to_thread(sf.info, str(in_path))
        if info.samplerate > 0:
            return info.frames / info.samplerate
    except (RuntimeError, OSError, TypeError, ValueError):
        pass  # libsndfile 미지원 포맷 → ffprobe

    cmd = [
        ffprobe_bin, "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(in_path),
    ]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProbeFailure(f"Cannot start {ffprobe_bin}: {e}") from e

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError as e:
        raise ProbeFailure(f"ffprobe timed out after {timeout}s") from e
    finally:
        await _kill(proc)

    if proc.returncode != 0:
        msg = err.decode(errors="replace").strip()[-500:]
        raise ProbeFailure(f"ffprobe exited with {proc.returncode}: {msg}")
    try:
        return float(out.decode().strip())
    except ValueError as e:
        raise ProbeFailure(f"Unparseable duration {out!r}") from e


async def _read_magnitudes(proc: asyncio.subprocess.Process, chunk_size: int) -> np.ndarray:
    # stderr 를 따로 비워줘야 파이프가 막히지 않음
    stderr_task = asyncio.ensure_future(proc.stderr.read())
    parts: list[np.ndarray] = []
    carry = b""
    try:
        while True:
            block = await proc.stdout.read(chunk_size)
            if not block:
                break
            block = carry + block
            cut = len(block) - (len(block) % 2)
            carry = block[cut:]
            if cut:
                parts.append(pcm16_to_magnitudes(block[:cut]))
        returncode = await proc.wait()
        stderr = await stderr_task
    finally:
        if not stderr_task.done():
            stderr_task.cancel()

    if returncode != 0:
        msg = stderr.decode(errors="replace").strip()[-500:]
        raise DecodeFailure(f"ffmpeg exited with {returncode}: {msg}")
    return np.concatenate(parts) if parts else np.zeros(0, dtype=np.float64)


async def decode_magnitudes(
    input_path: str,
    *,
    ffmpeg_bin: str = "ffmpeg",
    sample_rate: int = 8000,
    timeout: float | None = None,
    chunk_size: int = READ_CHUNK,
) -> np.ndarray:
    """
    ffmpeg 으로 mono s16le PCM 디코딩 → 샘플별 abs(x)/32768 배열

    - stdout 을 chunk 단위로 스트리밍 처리 (홀수 바이트는 다음 chunk 로 이월)
    - timeout 초과 시 DecodeFailure
    - 호출 task 가 cancel 되면 ffmpeg 프로세스를 kill 후 CancelledError 전파
    """
    cmd = [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-nostdin",
        "-i", str(input_path),
        "-vn", "-ac", "1", "-ar", str(sample_rate),
        "-f", "s16le", "-acodec", "pcm_s16le",
        "pipe:1",
    ]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise DecodeFailure(f"Cannot start {ffmpeg_bin}: {e}") from e

    try:
        return await asyncio.wait_for(_read_magnitudes(proc, chunk_size), timeout)
    except asyncio.TimeoutError as e:
        raise DecodeFailure(f"ffmpeg decode timed out after {timeout}s") from e
    finally:
        await _kill(proc)
