from .service import StickerService, compose_output_name, get_sticker_service
from .models import ConversionResult, MediaKind, MediaRequest, StickerFormat

__all__ = [
    "StickerService",
    "compose_output_name",
    "get_sticker_service",
    "ConversionResult",
    "MediaKind",
    "MediaRequest",
    "StickerFormat",
]
