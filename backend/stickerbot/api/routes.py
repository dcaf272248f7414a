"""API routes for sticker conversion."""
import asyncio
import logging
import re
from typing import Optional
from urllib.parse import quote, unquote, urlparse
from urllib.request import Request, urlopen

from fastapi import APIRouter, Body, File, Form, HTTPException, UploadFile
from fastapi import Request as HTTPRequest
from fastapi.responses import JSONResponse, Response

from stickerbot.config import (
    CLIP_MAX_BYTES,
    CLIP_MAX_SECONDS,
    STICKER_SIZE,
    URL_DOWNLOAD_TIMEOUT,
)
from stickerbot.conversion.exceptions import (
    ConversionError,
    ExternalToolError,
    MediaIOError,
    NotAnImageError,
    TooLargeError,
)
from stickerbot.conversion.models import ConversionResult, MediaKind
from stickerbot.conversion.service import get_sticker_service

logger = logging.getLogger("stickerbot.api")
router = APIRouter(prefix="/api", tags=["stickers"])

_CHUNK_SIZE = 1024 * 1024

_ERROR_STATUS = {
    NotAnImageError: 415,
    TooLargeError: 413,
}


async def conversion_error_handler(request: HTTPRequest, exc: ConversionError) -> JSONResponse:
    """One short message per failed request; diagnostics only go to the log."""
    status = _ERROR_STATUS.get(type(exc), 500)
    if status == 500:
        if isinstance(exc, ExternalToolError):
            logger.error("Transcoder failed for %s: %s (code=%s)", request.url.path, exc, exc.returncode)
        else:
            logger.error("Conversion failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": exc.user_message})


def _sticker_response(name: str, result: ConversionResult) -> Response:
    ascii_name = name.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(name)}",
            "X-Sticker-Format": result.format_tag.value,
        },
    )


def _declared_upload_size(file: UploadFile, request: HTTPRequest) -> Optional[int]:
    if file.size is not None:
        return file.size
    header = request.headers.get("content-length")
    if header and header.isdigit():
        return int(header)
    return None


def _filename_from_response(content_disposition: Optional[str], url_path: str) -> Optional[str]:
    filename = None
    if content_disposition:
        m = re.search(r"filename\*?=(?:UTF-8'')?([^;\s]+)", content_disposition, re.I)
        if m:
            filename = unquote(m.group(1).strip('"\'')).strip()
    if not filename:
        path_part = (url_path or "").rstrip("/").split("/")[-1]
        if path_part:
            filename = unquote(path_part)
    return filename or None


def _download_from_url(url: str, max_bytes: int) -> tuple[bytes, int, Optional[str]]:
    """
    Download url into memory. Returns (data, declared_size, filename).
    The declared Content-Length is checked before the body is read; the body is cut off past max_bytes.
    Raises HTTPException for bad URLs, TooLargeError and MediaIOError otherwise.
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise HTTPException(400, "Invalid URL")
    if parsed.scheme not in ("http", "https"):
        raise HTTPException(400, "Only http and https URLs are supported")
    req = Request(url, headers={"User-Agent": "StickerBot/1.0"})
    try:
        with urlopen(req, timeout=URL_DOWNLOAD_TIMEOUT) as resp:
            if resp.status >= 400:
                raise MediaIOError(f"URL returned status {resp.status}")
            length = resp.headers.get("Content-Length")
            declared = int(length) if length and length.isdigit() else None
            if declared is not None and declared > max_bytes:
                raise TooLargeError(declared, max_bytes)
            filename = _filename_from_response(resp.headers.get("Content-Disposition"), parsed.path)
            chunks = []
            total = 0
            while True:
                chunk = resp.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise TooLargeError(total, max_bytes)
                chunks.append(chunk)
            data = b"".join(chunks)
            return data, declared if declared is not None else len(data), filename
    except ConversionError:
        raise
    except Exception as e:
        logger.exception("URL download failed: %s", e)
        raise MediaIOError(f"Failed to download URL: {e!s}") from e


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return input and output limits for the client."""
    max_bytes = get_sticker_service().max_input_bytes
    return {
        "max_input_size_mb": max_bytes // (1024 * 1024),
        "max_input_size_bytes": max_bytes,
        "sticker_size": STICKER_SIZE,
        "clip_max_seconds": CLIP_MAX_SECONDS,
        "clip_target_bytes": CLIP_MAX_BYTES,
        "kinds": [k.value for k in MediaKind],
    }


@router.post("/stickers")
async def convert_upload(
    request: HTTPRequest,
    file: UploadFile = File(...),
    kind: MediaKind = Form(MediaKind.DOCUMENT),
):
    """Upload one image or clip and get the sticker back as a file."""
    svc = get_sticker_service()
    declared = _declared_upload_size(file, request)
    if declared is not None:
        svc.check_size(declared)
    try:
        data = await file.read()
    except OSError as e:
        raise MediaIOError(f"Upload failed: {e}") from e
    finally:
        await file.close()
    sticker_request = svc.build_request(
        data,
        declared if declared is not None else len(data),
        kind,
        file.filename or None,
    )
    name, result = await svc.convert(sticker_request)
    return _sticker_response(name, result)


@router.post("/stickers/from-url")
async def convert_from_url(
    url: str = Body(..., embed=True),
    kind: MediaKind = Body(MediaKind.DOCUMENT, embed=True),
):
    """Download a file from URL and convert it like an upload."""
    url = (url or "").strip()
    if not url:
        raise HTTPException(400, "URL is required")
    svc = get_sticker_service()
    data, declared, filename = await asyncio.to_thread(_download_from_url, url, svc.max_input_bytes)
    sticker_request = svc.build_request(data, declared, kind, filename)
    name, result = await svc.convert(sticker_request)
    return _sticker_response(name, result)
