import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend
from redis import asyncio as aioredis
from sqlalchemy.exc import SQLAlchemyError

from config import LOG_LEVEL, REDIS_HOST
from database import engine
from links.exceptions import AuthorizationError, ShortIdExhaustedError
from links.models import metadata
from links.router import router as links_router
from messages.router import router as messages_router

import uvicorn

import messages.models  # noqa: F401

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("whisperlink")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    redis = aioredis.from_url(f"redis://{REDIS_HOST}")
    FastAPICache.init(RedisBackend(redis), prefix="fastapi-cache")
    yield
    await engine.dispose()


app = FastAPI(title="Whisperlink", lifespan=lifespan)

# Link creation and public lookup under /links
app.include_router(links_router)
# Sending, listing, deleting and summarizing messages under /links/{short_id}
app.include_router(messages_router)


@app.exception_handler(ShortIdExhaustedError)
async def short_id_exhausted_handler(request: Request, exc: ShortIdExhaustedError):
    logger.error("Link creation failed at %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Could not generate a new link. Please try again."},
    )


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    logger.warning("Authorization failed at %s", request.url.path)
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error at %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    uvicorn.run("main:app", reload=True, host="0.0.0.0", log_level="info")
