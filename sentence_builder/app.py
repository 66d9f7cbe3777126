"""
Sentence Builder Service
Main application entry point

Serves first/second-order Markov generation, N-gram generation (N=1-5),
next-word autocomplete, text import and browsing of the stored counts
over a shared aggregate store.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from sentence_builder.config import settings
from sentence_builder.services.errors import BootstrapFailureError, SentenceBuilderError
from sentence_builder.services.ingest import TextIngestor
from sentence_builder.services.orchestrator import GenerationOrchestrator
from sentence_builder.services.storage import create_store
from sentence_builder.utils.logger import log_error, setup_logger

# Setup logging
logger = setup_logger("sentence_builder")

ERROR_STATUS = {
    "INVALID_ARGUMENT": 400,
    "UNKNOWN_START_TOKEN": 404,
    "NOT_TRAINED": 409,
    "UNSUPPORTED_FORMAT": 415,
    "BOOTSTRAP_FAILURE": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    logger.info("[BOOT] Starting Sentence Builder service...")
    logger.info(f"[BOOT] Storage backend: {settings.STORAGE_BACKEND}")

    store = create_store(settings)
    try:
        orchestrator = GenerationOrchestrator(store, settings=settings)
        app.state.store = store
        app.state.orchestrator = orchestrator
        app.state.ingestor = TextIngestor(store, orchestrator, settings=settings)

        try:
            orchestrator.ensure_loaded()
        except BootstrapFailureError as e:
            logger.warning(f"[BOOT] Models start empty: {e.message}")

        logger.info("[BOOT] Sentence Builder service ready!")
        yield

    except Exception as e:
        logger.error(f"[ERR] Failed to initialize: {e}", exc_info=True)
        raise
    finally:
        logger.info("[SHUTDOWN] Cleaning up...")
        store.close()
        logger.info("[SHUTDOWN] Sentence Builder service stopped")


# Create FastAPI app
app = FastAPI(
    title="Sentence Builder Service",
    description="Markov chain and N-gram text generation with autocomplete",
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


@app.exception_handler(SentenceBuilderError)
async def sentence_builder_exception_handler(request: Request, exc: SentenceBuilderError):
    status_code = ERROR_STATUS.get(exc.code, 500)
    logger.warning(f"[ERR] {exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"ok": False, "error": exc.to_dict()})


@app.exception_handler(PyMongoError)
async def storage_exception_handler(request: Request, exc: PyMongoError):
    log_error("[ERR] Storage failure", exc_info=True, path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content={
            "ok": False,
            "error": {
                "code": "STORAGE_UNAVAILABLE",
                "message": "Aggregate store is unavailable",
                "details": {"type": type(exc).__name__},
            },
        },
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
                "code": "AI_SERVICE_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


# Health check
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    return {
        "ok": True,
        "data": {
            "status": "healthy",
            "storage": settings.STORAGE_BACKEND,
            "models_loaded": bool(orchestrator and orchestrator.loaded),
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
            "generate": "/generate/*",
            "autocomplete": "/autocomplete/*",
            "import": "/import/*",
            "reload": "/reload/*",
            "browse": "/browse/*",
        },
    }


from sentence_builder.api.routers import (
    generation_router,
    autocomplete_router,
    import_router,
    reload_router,
    browse_router,
)

app.include_router(generation_router.router, tags=["Generate"])
app.include_router(autocomplete_router.router, tags=["Autocomplete"])
app.include_router(import_router.router, tags=["Import"])
app.include_router(reload_router.router, tags=["Reload"])
app.include_router(browse_router.router, tags=["Browse"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sentence_builder.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
