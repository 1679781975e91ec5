"""
Offer Engine - Rasterized (PDF) Export

The letter is captured once as a tall supersampled PNG by a headless browser,
sliced into page-height strips, placed on fixed-size pages with margins and
written out as a multi-page PDF.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from PIL import Image
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ...errors import ExportDependencyError, LetterValidationError
from ..renderer.markup import RENDER_TARGET_ID

logger = logging.getLogger(__name__)

CSS_PX_PER_INCH = 96

PAGE_SIZES_IN = {
    "letter": (8.5, 11.0),
    "a4": (8.27, 11.69),
    "legal": (8.5, 14.0),
}


@dataclass(frozen=True)
class PageGeometry:
    """Page size, orientation and margins (inches: top, right, bottom, left)."""
    format: str = "letter"
    orientation: str = "portrait"
    margins_in: Tuple[float, float, float, float] = (0.5, 0.5, 0.5, 0.5)
    scale: int = 2
    image_quality: float = 0.98

    def __post_init__(self):
        if self.format not in PAGE_SIZES_IN:
            raise LetterValidationError(f"Unknown page format '{self.format}'")
        if self.orientation not in ("portrait", "landscape"):
            raise LetterValidationError(f"Unknown orientation '{self.orientation}'")
        if self.scale < 1:
            raise LetterValidationError("Rasterization scale must be at least 1")
        top, right, bottom, left = self.margins_in
        width, height = self.page_size_in
        if left + right >= width or top + bottom >= height:
            raise LetterValidationError("Margins leave no printable area")

    @classmethod
    def uniform(cls, margin_in: float, **kwargs) -> "PageGeometry":
        return cls(margins_in=(margin_in,) * 4, **kwargs)

    @property
    def page_size_in(self) -> Tuple[float, float]:
        width, height = PAGE_SIZES_IN[self.format]
        if self.orientation == "landscape":
            return height, width
        return width, height

    @property
    def content_size_in(self) -> Tuple[float, float]:
        top, right, bottom, left = self.margins_in
        width, height = self.page_size_in
        return width - left - right, height - top - bottom

    @property
    def content_width_css_px(self) -> int:
        return int(round(self.content_size_in[0] * CSS_PX_PER_INCH))

    @property
    def dpi(self) -> int:
        return CSS_PX_PER_INCH * self.scale

    def to_px(self, inches: float) -> int:
        return int(round(inches * self.dpi))


class Rasterizer(Protocol):
    async def capture(self, html_document: str, width_px: int, scale: int) -> bytes:
        """Render a full HTML document and return a PNG of the render target."""
        ...


class PlaywrightRasterizer:
    """Headless Chromium capture at ``device_scale_factor=scale`` for supersampling."""

    def __init__(self, launch_args: Optional[List[str]] = None):
        self.launch_args = launch_args or ["--no-sandbox"]

    async def capture(self, html_document: str, width_px: int, scale: int) -> bytes:
        async with async_playwright() as p:
            try:
                browser = await p.chromium.launch(args=self.launch_args)
            except PlaywrightError as e:
                raise ExportDependencyError(f"Headless browser unavailable: {e}") from e
            try:
                page = await browser.new_page(
                    viewport={"width": width_px, "height": 1024},
                    device_scale_factor=scale,
                )
                await page.set_content(html_document, wait_until="networkidle")
                target = await page.query_selector(f"#{RENDER_TARGET_ID}")
                if target is not None:
                    return await target.screenshot(type="png")
                return await page.screenshot(type="png", full_page=True)
            finally:
                await browser.close()


def paginate(capture: Image.Image, geometry: PageGeometry) -> List[Image.Image]:
    """
    Slice a captured image into page images.

    The capture is expected at ``geometry.dpi``; each strip is as tall as the
    printable area and is pasted at the top-left margin of a white page.
    """
    top, _right, _bottom, left = geometry.margins_in
    page_w_in, page_h_in = geometry.page_size_in
    page_size = (geometry.to_px(page_w_in), geometry.to_px(page_h_in))
    content_w, content_h = (geometry.to_px(v) for v in geometry.content_size_in)
    offset = (geometry.to_px(left), geometry.to_px(top))

    source = capture.convert("RGB")
    if source.width > content_w:
        ratio = content_w / source.width
        source = source.resize((content_w, max(1, int(source.height * ratio))), Image.LANCZOS)

    pages: List[Image.Image] = []
    y = 0
    while y < source.height or not pages:
        strip = source.crop((0, y, source.width, min(y + content_h, source.height)))
        page = Image.new("RGB", page_size, "white")
        page.paste(strip, offset)
        pages.append(page)
        y += content_h
    return pages


def pages_to_pdf(pages: List[Image.Image], geometry: PageGeometry) -> bytes:
    buffer = io.BytesIO()
    first, rest = pages[0], pages[1:]
    first.save(
        buffer,
        format="PDF",
        save_all=True,
        append_images=rest,
        resolution=float(geometry.dpi),
        quality=int(round(geometry.image_quality * 100)),
    )
    return buffer.getvalue()


def capture_to_pdf(png_bytes: bytes, geometry: PageGeometry) -> bytes:
    """PNG capture -> paginated PDF bytes."""
    with Image.open(io.BytesIO(png_bytes)) as capture:
        pages = paginate(capture, geometry)
    logger.info(f"Paginated capture into {len(pages)} {geometry.format} page(s)")
    return pages_to_pdf(pages, geometry)
