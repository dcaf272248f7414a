"""Per-request temporary files for clips. Each file lives only as long as its request."""
import asyncio
import logging
import tempfile
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from stickerbot import config
from stickerbot.conversion.exceptions import MediaIOError

logger = logging.getLogger("stickerbot.storage")


def build_temp_path(suffix: str, tmp_dir: Optional[Path] = None) -> Path:
    if suffix and not suffix.startswith("."):
        suffix = f".{suffix}"
    root = tmp_dir or config.TEMP_DIR or Path(tempfile.gettempdir())
    return root / f"stickerbot-{uuid.uuid4().hex}{suffix}"


def cleanup(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove temp file %s: %s", path, e)


@asynccontextmanager
async def materialize_clip(
    data: bytes, suffix: str = "", tmp_dir: Optional[Path] = None
) -> AsyncIterator[Path]:
    """Write clip bytes to a fresh temp file and yield its path; the file is removed on exit, whatever happens."""
    path = build_temp_path(suffix, tmp_dir)
    try:
        try:
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            logger.error("Could not write temp file %s: %s", path, e)
            raise MediaIOError(f"Could not write temp file: {e}") from e
        logger.debug("Materialized %s bytes to %s", len(data), path)
        yield path
    finally:
        cleanup(path)
