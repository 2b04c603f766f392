import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.cache import cache
from app.config import settings
from app.errors import BlogError
from app.schemas import ErrorResponse
from app.routers import images, posts
from app.storage import storage

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, serving uncached reads: %s", exc)
    storage.connect()
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Blog Content API",
    description="Post repository, cover-image lifecycle and cached read views for the site blog",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError):
    if exc.kind == "retry":
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.message, kind=exc.kind).model_dump(),
    )

# Routers
app.include_router(posts.router)
app.include_router(images.router)

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "cache": "connected" if cache.connected else "disabled",
    }
