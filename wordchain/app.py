"""
Wordchain Microservice
Main application entry point

Serves word-level Markov chains: additive training, sampling and
binary/base64 persistence of named chains.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wordchain.config import settings
from wordchain.utils.logger import setup_logger

# Setup logging for the whole package
setup_logger("wordchain")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    from wordchain.api.routers.markov_router import MODEL_CACHE
    from wordchain.services.markov_io import deserialize_from_file
    from wordchain.services.tokenizer import Tokenizer

    logger.info(f"[BOOT] Starting {settings.SERVICE_NAME} v{settings.SERVICE_VERSION}...")
    logger.info(f"[BOOT] Chain store: {settings.MARKOV_STORE_DIR}")

    try:
        if settings.MARKOV_PRELOAD_PATH:
            path = Path(settings.MARKOV_PRELOAD_PATH)
            if path.exists():
                MODEL_CACHE["default"] = deserialize_from_file(
                    path, Tokenizer(settings.MARKOV_MEANINGLESS_PATTERN)
                )
                logger.info(f"[BOOT] Preloaded default chain ({len(MODEL_CACHE['default'])} nodes)")
            else:
                logger.warning(f"[BOOT] Preload path not found: {path}")

        logger.info("[BOOT] Wordchain service ready!")
        yield

    except Exception as e:
        logger.error(f"[ERR] Failed to initialize: {e}", exc_info=True)
        raise
    finally:
        logger.info("[SHUTDOWN] Wordchain service stopped")


# Create FastAPI app
app = FastAPI(
    title="Wordchain Service",
    description="Word-level Markov chain training and phrase generation",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[ERR] Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "WORDCHAIN_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    from wordchain.api.routers.markov_router import MODEL_CACHE

    return {
        "ok": True,
        "data": {
            "status": "healthy",
            "models": sorted(MODEL_CACHE),
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "markov": "/markov/*",
        },
    }


from wordchain.api.routers import markov_router

app.include_router(markov_router.router, tags=["Markov"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wordchain.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
