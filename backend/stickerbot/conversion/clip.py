"""Clip transcoding: ffmpeg to a short silent VP9/WebM loop, lossless first and lossy if too big."""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from stickerbot import config
from stickerbot.conversion.exceptions import ExternalToolError
from stickerbot.conversion.models import ConversionResult, StickerFormat

logger = logging.getLogger("stickerbot.clip")


class ClipTranscoder:
    _STDERR_TAIL = 2000

    def __init__(
        self,
        ffmpeg_binary: Optional[str] = None,
        box: Optional[int] = None,
        max_seconds: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self._ffmpeg = ffmpeg_binary or config.FFMPEG_BINARY
        self._box = box or config.STICKER_SIZE
        self._max_seconds = max_seconds or config.CLIP_MAX_SECONDS
        self._max_bytes = max_bytes or config.CLIP_MAX_BYTES

    def build_command(self, source: Path, lossless: bool) -> list[str]:
        box = self._box
        command = [
            self._ffmpeg,
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-i", str(source),
            "-t", str(self._max_seconds),
            # Fit inside the box, never upscale
            "-vf", f"scale='min({box},iw)':'min({box},ih)':force_original_aspect_ratio=decrease",
            "-an",
            "-c:v", "libvpx-vp9",
        ]
        if lossless:
            command.extend(["-lossless", "1"])
        command.extend(["-f", "webm", "pipe:1"])
        return command

    async def _run_ffmpeg(self, command: list[str]) -> bytes:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            logger.error("ffmpeg not found (%s). Install ffmpeg for clip conversion.", self._ffmpeg)
            raise ExternalToolError(f"{self._ffmpeg} not installed") from e
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip()[-self._STDERR_TAIL:]
            logger.error("ffmpeg failed with code %s: %s", process.returncode, detail)
            raise ExternalToolError(
                f"ffmpeg failed with code {process.returncode}",
                returncode=process.returncode,
                stderr=detail,
            )
        if not stdout:
            raise ExternalToolError("ffmpeg produced no output", returncode=process.returncode)
        return stdout

    async def transcode(self, source: Path) -> ConversionResult:
        """
        Convert a materialized clip. At most two ffmpeg runs: the lossy re-encode only
        happens when the lossless output is over the byte target, and its result is kept
        whatever its size.
        """
        data = await self._run_ffmpeg(self.build_command(source, lossless=True))
        logger.info("Lossless clip encode of %s: %s bytes", source.name, len(data))
        if len(data) > self._max_bytes:
            logger.info("Over %s bytes, re-encoding %s lossy", self._max_bytes, source.name)
            data = await self._run_ffmpeg(self.build_command(source, lossless=False))
            logger.info("Lossy clip encode of %s: %s bytes", source.name, len(data))
            if len(data) > self._max_bytes:
                logger.warning("Clip %s still %s bytes after lossy encode, sending anyway", source.name, len(data))
        return ConversionResult(data=data, format_tag=StickerFormat.WEBM)


async def transcode_clip(local_path: Path) -> ConversionResult:
    return await ClipTranscoder().transcode(local_path)
