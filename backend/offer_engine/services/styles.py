"""
Offer Engine - Style Resolution

Builds the single self-contained style sheet embedded in exports: the
hand-maintained letter.css (every theme's rules, always in full) preceded by
an override block carrying the user's font and heading/body/accent colors.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Dict, Optional
from urllib.parse import quote_plus

from ..models.letter import LetterDocument, Theme

logger = logging.getLogger(__name__)

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
OVERRIDE_VAR_RE = re.compile(r"--letter-([a-z-]+)\s*:\s*([^;]+);")

FALLBACK_FONT = "Merriweather"
FALLBACK_COLOR = "#1D1D1D"


@lru_cache(maxsize=1)
def base_stylesheet() -> str:
    return resources.files("offer_engine").joinpath("static/letter.css").read_text(encoding="utf-8")


@dataclass(frozen=True)
class StyleOverrides:
    font_family: str = FALLBACK_FONT
    heading_color: str = FALLBACK_COLOR
    body_color: str = FALLBACK_COLOR
    accent_color: str = "#2D3C77"

    @classmethod
    def from_document(cls, doc: LetterDocument) -> "StyleOverrides":
        return cls(
            font_family=doc.font_family,
            heading_color=doc.heading_color,
            body_color=doc.body_color,
            accent_color=doc.accent_color,
        )


def _safe_color(value: str, fallback: str) -> str:
    if value and HEX_COLOR_RE.match(value.strip()):
        return value.strip()
    logger.warning(f"Ignoring invalid color {value!r}, using {fallback}")
    return fallback


def _safe_font(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9 \-]", "", value or "").strip()
    return cleaned or FALLBACK_FONT


class StyleResolver:
    """Resolve the complete style sheet for a theme plus user overrides."""

    def __init__(self, stylesheet: Optional[str] = None, include_web_fonts: bool = False):
        self._stylesheet = stylesheet
        self.include_web_fonts = include_web_fonts

    @property
    def stylesheet(self) -> str:
        if self._stylesheet is None:
            self._stylesheet = base_stylesheet()
        return self._stylesheet

    def resolve(self, theme: Theme, overrides: Optional[StyleOverrides] = None) -> str:
        overrides = overrides or StyleOverrides()
        font = _safe_font(overrides.font_family)
        parts = []
        if self.include_web_fonts:
            parts.append(
                f"@import url('https://fonts.googleapis.com/css2?family={quote_plus(font)}:wght@400;700&display=swap');"
            )
        parts.append(
            ":root {\n"
            f"  --letter-font-family: '{font}';\n"
            f"  --letter-heading-color: {_safe_color(overrides.heading_color, FALLBACK_COLOR)};\n"
            f"  --letter-body-color: {_safe_color(overrides.body_color, FALLBACK_COLOR)};\n"
            f"  --letter-accent-color: {_safe_color(overrides.accent_color, '#2D3C77')};\n"
            f"  --letter-theme: {Theme(theme).value};\n"
            "}"
        )
        parts.append(self.stylesheet)
        return "\n".join(parts)


def resolve_styles(doc: LetterDocument, include_web_fonts: bool = False) -> str:
    """Style sheet for the document's theme and its color/font choices."""
    resolver = StyleResolver(include_web_fonts=include_web_fonts)
    return resolver.resolve(doc.theme, StyleOverrides.from_document(doc))


def read_overrides(css: str) -> Dict[str, str]:
    """Extract the --letter-* override variables from a resolved style sheet."""
    values: Dict[str, str] = {}
    for name, value in OVERRIDE_VAR_RE.findall(css):
        values.setdefault(name, value.strip().strip("'\""))
    return values
