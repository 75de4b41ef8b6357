"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.exceptions import register_exception_handlers
from src.api.routes import router
from src.config import get_settings
from src.logging_config import setup_logging
from src.store.redis import TableStore, create_redis_client
from src.tables.engine import TableEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting table service")

    redis_client = await create_redis_client(settings.redis_url)

    app.state.settings = settings
    app.state.store = TableStore(redis_client)
    app.state.engine = TableEngine(settings)

    logger.info(
        "table service ready",
        extra={
            "llm_provider": settings.llm_provider,
            "table_llm": settings.table_llm,
            "scrape_provider": settings.scrape_provider,
            "max_content_chars": settings.max_content_chars,
        },
    )

    yield

    logger.info("shutting down table service")
    await redis_client.aclose()


app = FastAPI(title="Table Service", lifespan=lifespan)
register_exception_handlers(app)
app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok"}
