"""Offer Engine - offer letter composition and PDF/DOCX export."""
__version__ = "1.0.0"
