from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contrastlens import __version__
from contrastlens.api.v1 import router as v1_router
from contrastlens.config import config
from contrastlens.utils.logging import get_logger

logger = get_logger()

app = FastAPI(
    title="ContrastLens Backend",
    description="Dominant color extraction and WCAG contrast analysis for uploaded images",
    version=__version__
)

# Add CORS middleware with basic configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)

app.include_router(v1_router)

logger.info("ContrastLens backend initialized", extra={
    "version": __version__,
    "classifier_enabled": config.classifier_enabled,
    "max_file_mb": config.MAX_FILE_MB
})


@app.get("/healthz")
def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "contrastlens-backend",
        "version": __version__
    }


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "ContrastLens Backend API",
        "version": __version__,
        "docs": "/docs"
    }
