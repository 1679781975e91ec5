"""
Offer Engine - Export Pipeline

Orchestrates both exports from the same snapshot of the rendered letter:

    snapshot markup -> inline assets -> resolve styles -> serialize

Both exports are read-only with respect to the document store; they work on
the LetterDocument value passed in at invocation time. A missing render
target is a logged no-op (None). A missing converter or rasterizer aborts the
export before any bytes are produced.

The DOCX export also turns inline SVG images into PNG captures through the
rasterizer, when one is configured.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from markupsafe import escape

from ...config import Settings
from ...errors import ExportDependencyError
from ...models.letter import LetterDocument
from ..assets import EXTERNAL_SRC_RE, AssetInliner, to_data_uri
from ..renderer.markup import RENDER_TARGET_ID, LetterSurface
from ..styles import resolve_styles
from .docx_converter import IMAGE_WIDTHS_IN, DocumentConverter, DocxOptions, HtmlDocxConverter
from .raster import PageGeometry, PlaywrightRasterizer, Rasterizer, capture_to_pdf

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

FALLBACK_NAME = "Candidate"
UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
SVG_DATA_URI_RE = re.compile(r"^data:image/svg\+xml[;,]", re.IGNORECASE)


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content_type: str
    content: bytes


def export_filename(candidate_name: Optional[str], extension: str) -> str:
    """'<candidate>_Offer_Letter.<ext>'; spaces kept, empty names fall back to 'Candidate'."""
    name = UNSAFE_FILENAME_RE.sub("", candidate_name or "").strip() or FALLBACK_NAME
    return f"{name}_Offer_Letter.{extension}"


def build_document_shell(markup: str, css: str, title: str = "Offer Letter") -> str:
    """Minimal standalone HTML document embedding the style sheet."""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        f'<head><meta charset="UTF-8"><title>{escape(title)}</title>'
        f"<style>\n{css}\n</style></head>\n"
        f"<body>{markup}</body>\n"
        "</html>"
    )


def allow_pixel_capture(markup: str) -> str:
    """Request remaining external images in CORS mode so the rasterizer may read their pixels."""
    soup = BeautifulSoup(markup, "html.parser")
    changed = False
    for img in soup.find_all("img"):
        if EXTERNAL_SRC_RE.match(img.get("src", "")):
            img["crossorigin"] = "anonymous"
            changed = True
    return str(soup) if changed else markup


def svg_capture_shell(src: str, width_in: Optional[float] = None) -> str:
    """Standalone page whose render target is a single image."""
    style = f"display: block; width: {width_in}in;" if width_in else "display: block;"
    return build_document_shell(
        f'<div id="{RENDER_TARGET_ID}" style="display: inline-block;">'
        f'<img src="{escape(src)}" style="{style}" alt=""></div>',
        "body { margin: 0; background: transparent; }",
        title="Image",
    )


def _image_width_in(img) -> Optional[float]:
    for css_class in img.get("class") or []:
        if css_class in IMAGE_WIDTHS_IN:
            return IMAGE_WIDTHS_IN[css_class]
    return None


async def rasterize_svg_images(markup: str, rasterizer: Optional[Rasterizer], width_px: int, scale: int) -> str:
    """
    Replace inline SVG images with PNG captures.

    The DOCX converter only embeds raster formats. Captures run concurrently
    and settle individually: an image whose capture fails keeps its SVG
    source and is logged. Without a rasterizer the markup is returned as is.
    """
    soup = BeautifulSoup(markup, "html.parser")
    images = [img for img in soup.find_all("img") if SVG_DATA_URI_RE.match(img.get("src", ""))]
    if not images:
        return markup
    if rasterizer is None:
        logger.warning(f"No rasterizer configured: {len(images)} SVG image(s) cannot be embedded")
        return markup

    captures = (
        rasterizer.capture(svg_capture_shell(img["src"], _image_width_in(img)), width_px, scale)
        for img in images
    )
    results = await asyncio.gather(*captures, return_exceptions=True)
    converted = 0
    for img, result in zip(images, results):
        if isinstance(result, BaseException):
            logger.warning(f"Keeping SVG image unconverted: {result}")
            continue
        img["src"] = to_data_uri(result, "image/png")
        converted += 1
    logger.info(f"Rasterized {converted}/{len(images)} SVG images")
    return str(soup) if converted else markup


class ExportPipeline:
    """
    Produce the rasterized (PDF) and structured (DOCX) artifacts.

    Every collaborator is injected; ``create_export_pipeline`` wires the
    defaults. ``rasterizer`` or ``converter`` may be None, in which case the
    corresponding export raises ExportDependencyError.
    """

    def __init__(
        self,
        surface: LetterSurface,
        inliner: AssetInliner,
        rasterizer: Optional[Rasterizer],
        converter: Optional[DocumentConverter],
        geometry: Optional[PageGeometry] = None,
        docx_options: Optional[DocxOptions] = None,
    ):
        self.surface = surface
        self.inliner = inliner
        self.rasterizer = rasterizer
        self.converter = converter
        self.geometry = geometry or PageGeometry()
        self.docx_options = docx_options or DocxOptions(
            page_format=self.geometry.format,
            orientation=self.geometry.orientation,
            margins_in=self.geometry.margins_in,
        )

    def snapshot(self, doc: LetterDocument) -> Optional[str]:
        markup = self.surface.export_snapshot(doc)
        if not markup:
            logger.warning("Export skipped: no render target to export")
            return None
        return markup

    async def export_pdf(self, doc: LetterDocument) -> Optional[ExportArtifact]:
        if self.rasterizer is None:
            raise ExportDependencyError("No rasterizer configured for PDF export")
        markup = self.snapshot(doc)
        if markup is None:
            return None

        filename = export_filename(doc.candidate_name, "pdf")
        logger.info(f"Starting PDF export: {filename}")
        geometry = self.geometry
        css = resolve_styles(doc, include_web_fonts=True)
        css += f"\nbody {{ margin: 0; }}\n.letter {{ width: {geometry.content_size_in[0]}in; }}"

        markup = allow_pixel_capture(await self.inliner.inline_all(markup))
        shell = build_document_shell(markup, css, title=filename)
        png = await self.rasterizer.capture(shell, geometry.content_width_css_px, geometry.scale)
        content = await asyncio.to_thread(capture_to_pdf, png, geometry)

        logger.info(f"PDF export finished: {filename} ({len(content)} bytes)")
        return ExportArtifact(filename=filename, content_type=PDF_CONTENT_TYPE, content=content)

    async def export_docx(self, doc: LetterDocument) -> Optional[ExportArtifact]:
        if self.converter is None:
            raise ExportDependencyError("No word-processor converter configured for DOCX export")
        markup = self.snapshot(doc)
        if markup is None:
            return None

        filename = export_filename(doc.candidate_name, "docx")
        logger.info(f"Starting DOCX export: {filename}")
        css = resolve_styles(doc)

        # Serialization waits for every inlining fetch to settle.
        markup = await self.inliner.inline_all(markup)
        markup = await rasterize_svg_images(
            markup, self.rasterizer, self.geometry.content_width_css_px, self.geometry.scale
        )
        shell = build_document_shell(markup, css, title=filename)
        content = await asyncio.to_thread(self.converter.convert, shell, self.docx_options)

        logger.info(f"DOCX export finished: {filename} ({len(content)} bytes)")
        return ExportArtifact(filename=filename, content_type=DOCX_CONTENT_TYPE, content=content)


def create_export_pipeline(settings: Settings, surface: Optional[LetterSurface] = None) -> ExportPipeline:
    """Pipeline wired with the default inliner, Playwright rasterizer and python-docx converter."""
    geometry = PageGeometry.uniform(
        settings.export_margin_in,
        format=settings.export_page_format,
        orientation=settings.export_orientation,
        scale=settings.export_scale,
        image_quality=settings.export_image_quality,
    )
    return ExportPipeline(
        surface=surface or LetterSurface(),
        inliner=AssetInliner(timeout=settings.asset_fetch_timeout),
        rasterizer=PlaywrightRasterizer(),
        converter=HtmlDocxConverter(),
        geometry=geometry,
    )
