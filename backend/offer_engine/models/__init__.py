"""Offer Engine - Data Models"""
from .letter import (
    # Enums
    Theme, OfferType, SalaryFrequency, LogoAlignment, SectionKey,
    DEFAULT_SECTION_ORDER,
    # Compensation union
    SalaryCompensation, PerksCompensation, Compensation, compensation_from_value,
    # Root document
    LetterDocument, RenderedLetterView, DEFAULT_BODY, create_default_document,
)

__all__ = [
    "Theme", "OfferType", "SalaryFrequency", "LogoAlignment", "SectionKey",
    "DEFAULT_SECTION_ORDER",
    "SalaryCompensation", "PerksCompensation", "Compensation", "compensation_from_value",
    "LetterDocument", "RenderedLetterView", "DEFAULT_BODY", "create_default_document",
]
