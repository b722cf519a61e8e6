from __future__ import annotations
import logging
from contextlib import ExitStack, asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.registry import build_default_registry
from logging_config import configure_logging
from services.ingestor import build_default_ingestor
from settings import get_settings
from streams.line_reader import LineReader
from streams.sources import FileByteSource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    ingestor = build_default_ingestor()
    with ExitStack() as resources:
        if settings.source_path:
            handle = resources.enter_context(Path(settings.source_path).open("rb", buffering=0))
            source = FileByteSource(handle, follow=True)
            resources.callback(source.release)
            reader = LineReader(
                source,
                banner_markers=settings.banner_markers,
                poll_interval=settings.poll_interval,
                chunk_size=settings.read_chunk_size,
            )
            logger.info("Streaming telemetry from %s", settings.source_path)
            ingestor.start(reader)
        try:
            yield
        finally:
            ingestor.shutdown()
            build_default_ingestor.cache_clear()
            build_default_registry.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Serial Telemetry Registry",
        description="Ingests line-delimited device telemetry into an in-memory device registry.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
