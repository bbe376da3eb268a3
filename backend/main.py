"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dreammapper.api.routes import analyze, dreams, health, metrics, models, moon
from dreammapper.core.config import get_settings
from dreammapper.core.database import init_db
from dreammapper.core.errors import DreamAnalysisError
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.middleware import LoggingContextMiddleware
from dreammapper.core.middleware_metrics import MetricsMiddleware

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")
    if not settings.moon_credentials_configured:
        logger.warning("MOON_ACCESS_KEY or MOON_SECRET_KEY not set; moon phases will be reported as unknown")
    init_db()

    yield

    logger.info(f"Shutting down {settings.app_name}...")


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Dream analysis backend: LLM interpretation plus moon phase",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingContextMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DreamAnalysisError)
async def dream_analysis_error_handler(request: Request, exc: DreamAnalysisError):
    """Map pipeline errors to their HTTP status and a client-safe body"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors like any other validation failure"""
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "detail": "invalid request", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to log all unhandled errors"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(status_code=500, content={"error": "server_error", "detail": "Server Error"})


app.include_router(analyze.router)
app.include_router(dreams.router)
app.include_router(models.router)
app.include_router(moon.router)
app.include_router(health.router)
app.include_router(metrics.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
