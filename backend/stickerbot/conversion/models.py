"""Conversion request/response models."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class MediaKind(str, Enum):
    PHOTO = "photo"
    DOCUMENT = "document"
    ANIMATION = "animation"


class StickerFormat(str, Enum):
    WEBP = "webp"
    PNG = "png"
    WEBM = "webm"

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]


_MEDIA_TYPES = {
    StickerFormat.WEBP: "image/webp",
    StickerFormat.PNG: "image/png",
    StickerFormat.WEBM: "video/webm",
}


@dataclass(frozen=True)
class MediaRequest:
    """One inbound attachment. source is in-memory bytes or an already materialized local file."""

    source: Union[bytes, Path]
    declared_size: int
    is_clip: bool = False
    declared_name: Optional[str] = None


@dataclass(frozen=True)
class ConversionResult:
    data: bytes
    format_tag: StickerFormat

    def __post_init__(self):
        if not self.data:
            raise ValueError("ConversionResult requires non-empty data")

    @property
    def media_type(self) -> str:
        return self.format_tag.media_type

    @property
    def size_bytes(self) -> int:
        return len(self.data)
