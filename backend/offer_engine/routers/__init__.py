"""Offer Engine - API Routers"""
from .letter import router as letter_router

__all__ = [
    "letter_router",
]
