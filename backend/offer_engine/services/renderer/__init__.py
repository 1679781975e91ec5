"""Offer Engine - Rendering

Placeholder substitution (RenderingEngine) and theme markup (LetterSurface).
"""
from .engine import (
    RenderingEngine,
    render_letter,
    render_view,
    format_long_date,
    format_currency,
    compensation_details,
)
from .markup import LetterSurface, body_markup, is_rich_text, RENDER_TARGET_ID

__all__ = [
    "RenderingEngine", "render_letter", "render_view",
    "format_long_date", "format_currency", "compensation_details",
    "LetterSurface", "body_markup", "is_rich_text", "RENDER_TARGET_ID",
]
