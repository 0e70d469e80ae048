"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from promptcut.config import settings
from promptcut.api.routes import router, files_router
from promptcut.errors import EditError
from promptcut.services.media_store import MediaStore
from promptcut.utils.ffmpeg import check_ffmpeg_available

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting PromptCut...")
    MediaStore.from_settings().ensure_dirs()
    if not check_ffmpeg_available():
        logger.warning(f"ffmpeg not found at '{settings.ffmpeg_path}'; edits will fail")

    yield

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Prompt-driven video editing on top of ffmpeg",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EditError)
async def edit_error_handler(request: Request, exc: EditError):
    """Report every edit failure as {success, error, message}."""
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed ({exc.kind}): {exc.message}")
    else:
        logger.info(f"{request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include API routes
app.include_router(router, prefix="/api")
app.include_router(files_router)

# Serve uploads and produced artifacts
app.mount("/uploads/videos", StaticFiles(directory=str(settings.uploads_dir)), name="uploads")
app.mount("/uploads/cuts", StaticFiles(directory=str(settings.cuts_dir)), name="cuts")
app.mount("/downloads", StaticFiles(directory=str(settings.downloads_dir)), name="downloads")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "api": "/api",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "promptcut.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
