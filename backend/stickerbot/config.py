"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Sticker geometry (bounding box edge, pixels)
STICKER_SIZE = int(os.getenv("STICKER_SIZE", "512"))

# Input ceiling, checked against the declared size before any work
MAX_INPUT_MB = int(os.getenv("MAX_INPUT_MB", "10"))
MAX_INPUT_BYTES = MAX_INPUT_MB * 1024 * 1024

# Clips: trim duration and the size that triggers the lossy re-encode
CLIP_MAX_SECONDS = int(os.getenv("CLIP_MAX_SECONDS", "3"))
CLIP_MAX_BYTES = int(os.getenv("CLIP_MAX_BYTES", "256000"))
# Document suffixes routed to the clip path, e.g. ".gif,.mp4"
CLIP_EXTENSIONS = {
    e.strip().lower() if e.strip().startswith(".") else f".{e.strip().lower()}"
    for e in os.getenv("CLIP_EXTENSIONS", ".gif").split(",")
    if e.strip()
}
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")

# Still images: libwebp effort (0-6) for the lossless encode
WEBP_METHOD = int(os.getenv("WEBP_METHOD", "6"))

# Materialized clips go here; unset means the system temp directory
_temp_dir = os.getenv("TEMP_DIR", "").strip()
TEMP_DIR: Optional[Path] = Path(_temp_dir) if _temp_dir else None
if TEMP_DIR is not None:
    TEMP_DIR.mkdir(parents=True, exist_ok=True)

URL_DOWNLOAD_TIMEOUT = int(os.getenv("URL_DOWNLOAD_TIMEOUT", "60"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("stickerbot")
