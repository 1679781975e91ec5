"""
Offer Engine - Application State

Process-wide collaborators are created once in the app lifespan and handed
to endpoints through FastAPI dependencies.
"""
from dataclasses import dataclass

from fastapi import Request

from .config import Settings
from .models.letter import create_default_document
from .services.assist import GeminiAssistClient
from .services.export import ExportPipeline, create_export_pipeline
from .services.renderer import LetterSurface
from .services.store import DocumentStore


@dataclass
class EngineState:
    store: DocumentStore
    surface: LetterSurface
    pipeline: ExportPipeline
    assist: GeminiAssistClient


def create_engine_state(settings: Settings) -> EngineState:
    """Build the session's store (seeded from a fresh default document) and services."""
    surface = LetterSurface()
    return EngineState(
        store=DocumentStore(create_default_document()),
        surface=surface,
        pipeline=create_export_pipeline(settings, surface=surface),
        assist=GeminiAssistClient(api_key=settings.gemini_api_key, model=settings.gemini_model),
    )


def get_state(request: Request) -> EngineState:
    """Dependency for FastAPI - the engine state attached at startup."""
    return request.app.state.engine


def get_store(request: Request) -> DocumentStore:
    return get_state(request).store
