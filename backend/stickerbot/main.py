"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stickerbot.api.routes import conversion_error_handler, router
from stickerbot.config import CORS_ORIGINS, logger as config_logger
from stickerbot.conversion.exceptions import ConversionError

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config_logger.info("Sticker API started")
    yield
    config_logger.info("Sticker API shutting down")


app = FastAPI(
    title="Sticker Converter API",
    description="Convert images to lossless WebP stickers and clips to short silent WebM loops.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Sticker-Format"],
)
app.add_exception_handler(ConversionError, conversion_error_handler)
app.include_router(router)


def run() -> None:
    import uvicorn
    from stickerbot.config import HOST, PORT
    uvicorn.run("stickerbot.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
