"""Media router: size ceiling, still/clip classification, dispatch and output naming."""
import asyncio
import logging
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional, Union

from stickerbot import config
from stickerbot.conversion.clip import ClipTranscoder
from stickerbot.conversion.exceptions import MediaIOError, TooLargeError
from stickerbot.conversion.image import transcode_image
from stickerbot.conversion.models import ConversionResult, MediaKind, MediaRequest, StickerFormat
from stickerbot.conversion.storage import materialize_clip

logger = logging.getLogger("stickerbot.service")

DEFAULT_STEM = "sticker"


def is_clip_attachment(kind: MediaKind, declared_name: Optional[str]) -> bool:
    """Animations are clips; so are documents whose name ends in a clip extension. Content is never sniffed."""
    if kind == MediaKind.ANIMATION:
        return True
    if kind == MediaKind.DOCUMENT and declared_name:
        return declared_name.strip().lower().endswith(tuple(config.CLIP_EXTENSIONS))
    return False


def compose_output_name(declared_name: Optional[str], format_tag: Union[StickerFormat, str]) -> str:
    ext = StickerFormat(format_tag).value
    stem = ""
    if declared_name:
        # Drop any directory part, whichever separator the sender used
        base = PureWindowsPath(PurePosixPath(declared_name.strip()).name).name
        stem = PurePosixPath(base).stem.strip()
        if stem in ("", ".", ".."):
            stem = ""
    return f"{stem or DEFAULT_STEM}.{ext}"


class StickerService:
    """Routes one MediaRequest to the still-image or clip transcoder."""

    def __init__(
        self,
        max_input_bytes: Optional[int] = None,
        clip_transcoder: Optional[ClipTranscoder] = None,
    ):
        self._max_input_bytes = max_input_bytes or config.MAX_INPUT_BYTES
        self._clip_transcoder = clip_transcoder or ClipTranscoder()
        logger.info("StickerService initialized with max_input_bytes=%s", self._max_input_bytes)

    @property
    def max_input_bytes(self) -> int:
        return self._max_input_bytes

    def check_size(self, declared_size: int) -> None:
        if declared_size > self._max_input_bytes:
            logger.info("Rejecting input of %s bytes (limit %s)", declared_size, self._max_input_bytes)
            raise TooLargeError(declared_size, self._max_input_bytes)

    @staticmethod
    def build_request(
        source: Union[bytes, Path],
        declared_size: int,
        kind: MediaKind,
        declared_name: Optional[str] = None,
    ) -> MediaRequest:
        return MediaRequest(
            source=source,
            declared_size=declared_size,
            is_clip=is_clip_attachment(kind, declared_name),
            declared_name=declared_name,
        )

    async def route(self, request: MediaRequest) -> ConversionResult:
        self.check_size(request.declared_size)
        if request.is_clip:
            return await self._route_clip(request)
        data = await self._read_source(request.source)
        return await asyncio.to_thread(transcode_image, data)

    async def _route_clip(self, request: MediaRequest) -> ConversionResult:
        if isinstance(request.source, Path):
            # Caller owns this file
            return await self._clip_transcoder.transcode(request.source)
        suffix = Path(request.declared_name or "").suffix.lower()
        async with materialize_clip(request.source, suffix) as path:
            return await self._clip_transcoder.transcode(path)

    @staticmethod
    async def _read_source(source: Union[bytes, Path]) -> bytes:
        if isinstance(source, Path):
            try:
                return await asyncio.to_thread(source.read_bytes)
            except OSError as e:
                raise MediaIOError(f"Could not read {source}: {e}") from e
        return source

    async def convert(self, request: MediaRequest) -> tuple[str, ConversionResult]:
        """Route the request and name the output after the declared filename."""
        kind = "clip" if request.is_clip else "image"
        logger.info("Converting %s %r (%s bytes declared)", kind, request.declared_name, request.declared_size)
        result = await self.route(request)
        name = compose_output_name(request.declared_name, result.format_tag)
        logger.info("Converted %r -> %s (%s bytes)", request.declared_name, name, result.size_bytes)
        return name, result


# Singleton
_sticker_service: Optional[StickerService] = None


def get_sticker_service() -> StickerService:
    global _sticker_service
    if _sticker_service is None:
        _sticker_service = StickerService()
    return _sticker_service
