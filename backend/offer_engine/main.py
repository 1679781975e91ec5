"""
Offer Engine - FastAPI Application

Main entry point for the offer letter composition and export backend.

Architecture:
- DocumentStore holds the single LetterDocument snapshot (update/subscribe)
- RenderingEngine resolves {token} placeholders in the body
- LetterSurface renders theme markup in the document's element order
- ExportPipeline inlines assets, resolves styles and writes PDF / DOCX
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .dependencies import create_engine_state
from .routers import letter_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session's document store and services on startup."""
    app.state.engine = create_engine_state(settings)
    logger.info("Offer engine ready")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Offer Engine",
    description="""
    Offer Engine - Offer Letter Composition and Export

    ## Pipeline
    1. **Document Model**: partial patches merged into one LetterDocument
    2. **Placeholder Engine**: {token} substitution in the letter body
    3. **Layout Resolver**: theme layouts and reorderable section order
    4. **Export**: asset inlining + style resolution, then PDF or DOCX

    ## Key Principles
    - Snapshots are immutable; updates replace them
    - Exports never mutate the stored document
    - One failing image degrades the export, it never aborts it
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(letter_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Offer Engine",
        "version": "1.0.0",
        "description": "Offer letter composition and multi-format export",
        "docs": "/docs",
        "exports": ["pdf", "docx"],
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m offer_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
