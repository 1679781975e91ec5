"""
Offer Engine - Structured (DOCX) Export

HtmlDocxConverter turns the export shell (letter markup with the resolved
style sheet embedded) into a word-processing package with python-docx.
The pipeline only relies on the DocumentConverter contract:
``convert(html, options) -> bytes``.

Supported markup: headings, paragraphs, divs, inline bold/italic/underline,
line breaks, lists, tables (layout tables included) and data-URI images.
Theme font and colors are read from the style sheet's --letter-* variables.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Protocol, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor
from PIL import Image, UnidentifiedImageError

from ..styles import read_overrides
from .raster import PAGE_SIZES_IN

logger = logging.getLogger(__name__)

HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 4, "h6": 4}
INLINE_TAGS = {"span", "a", "b", "strong", "i", "em", "u", "small", "sup", "sub", "label", "font"}
SKIP_TAGS = {"style", "script", "head", "title", "meta", "link", "noscript"}
DATA_URI_RE = re.compile(r"^data:(?P<type>[\w.+/-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s+")

# Image widths by class, inches
IMAGE_WIDTHS_IN = {"company-logo": 1.0, "signature-image": 1.6}


class DocumentConverter(Protocol):
    def convert(self, html: str, options: "DocxOptions") -> bytes:
        ...


@dataclass(frozen=True)
class DocxOptions:
    table_row_cant_split: bool = True
    footer: bool = True
    page_number: bool = True
    footer_text: str = ""
    page_format: str = "letter"
    orientation: str = "portrait"
    margins_in: Tuple[float, float, float, float] = (0.5, 0.5, 0.5, 0.5)


@dataclass(frozen=True)
class RunFormat:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: Optional[str] = None


@dataclass(frozen=True)
class ConversionContext:
    """Settings for one convert() call, passed down the walk."""
    accent_color: Optional[str] = None
    content_width_in: float = 7.5
    cant_split: bool = True


def hex_to_rgb(value: Optional[str]) -> Optional[RGBColor]:
    if not value:
        return None
    value = value.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if not re.fullmatch(r"[0-9a-fA-F]{6}", value):
        return None
    return RGBColor.from_string(value.upper())


def decode_data_uri(src: str) -> Optional[Tuple[str, bytes]]:
    match = DATA_URI_RE.match(src or "")
    if not match:
        return None
    try:
        return match.group("type") or "", base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None


def _classes(node: Tag) -> set:
    return set(node.get("class") or [])


class HtmlDocxConverter:
    """
    Markup -> DOCX package.

    Stateless between calls: one instance may convert many documents,
    concurrently from worker threads included.
    """

    def convert(self, html: str, options: Optional[DocxOptions] = None) -> bytes:
        options = options or DocxOptions()
        soup = BeautifulSoup(html, "html.parser")
        css = "\n".join(style.get_text() for style in soup.find_all("style"))
        theme = read_overrides(css)

        document = Document()
        self._setup_page(document, options)
        self._setup_styles(document, theme)
        ctx = ConversionContext(
            accent_color=theme.get("accent-color"),
            content_width_in=self._content_width(options),
            cant_split=options.table_row_cant_split,
        )

        root = soup.body or soup
        self._blocks(root, document, RunFormat(), ctx)
        if options.footer:
            self._add_footer(document, options)

        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    # -------------------------------------------------------------------------
    # Document setup
    # -------------------------------------------------------------------------

    def _setup_page(self, document, options: DocxOptions) -> None:
        width, height = PAGE_SIZES_IN.get(options.page_format, PAGE_SIZES_IN["letter"])
        if options.orientation == "landscape":
            width, height = height, width
        top, right, bottom, left = options.margins_in
        for section in document.sections:
            section.page_width = Inches(width)
            section.page_height = Inches(height)
            section.top_margin = Inches(top)
            section.right_margin = Inches(right)
            section.bottom_margin = Inches(bottom)
            section.left_margin = Inches(left)

    def _content_width(self, options: DocxOptions) -> float:
        width, height = PAGE_SIZES_IN.get(options.page_format, PAGE_SIZES_IN["letter"])
        if options.orientation == "landscape":
            width = height
        return width - options.margins_in[1] - options.margins_in[3]

    def _setup_styles(self, document, theme: Dict[str, str]) -> None:
        normal = document.styles["Normal"]
        font_name = theme.get("font-family")
        if font_name:
            normal.font.name = font_name
            rpr = normal.element.get_or_add_rPr()
            rfonts = rpr.find(qn("w:rFonts"))
            if rfonts is None:
                rfonts = OxmlElement("w:rFonts")
                rpr.append(rfonts)
            rfonts.set(qn("w:eastAsia"), font_name)
        normal.font.size = Pt(11)
        body_color = hex_to_rgb(theme.get("body-color"))
        if body_color is not None:
            normal.font.color.rgb = body_color

        heading_color = hex_to_rgb(theme.get("heading-color"))
        for level in range(1, 5):
            style = document.styles[f"Heading {level}"]
            if font_name:
                style.font.name = font_name
            if heading_color is not None:
                style.font.color.rgb = heading_color

    def _add_footer(self, document, options: DocxOptions) -> None:
        for section in document.sections:
            paragraph = section.footer.paragraphs[0]
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            if options.footer_text:
                paragraph.add_run(options.footer_text)
            if options.page_number:
                if options.footer_text:
                    paragraph.add_run("  |  ")
                paragraph.add_run("Page ")
                self._add_field(paragraph.add_run(), "PAGE")

    @staticmethod
    def _add_field(run, instruction: str) -> None:
        begin = OxmlElement("w:fldChar")
        begin.set(qn("w:fldCharType"), "begin")
        instr = OxmlElement("w:instrText")
        instr.set(qn("xml:space"), "preserve")
        instr.text = f" {instruction} "
        end = OxmlElement("w:fldChar")
        end.set(qn("w:fldCharType"), "end")
        run._r.append(begin)
        run._r.append(instr)
        run._r.append(end)

    # -------------------------------------------------------------------------
    # Block-level walk
    # -------------------------------------------------------------------------

    def _blocks(self, node: Tag, container: Any, fmt: RunFormat, ctx: ConversionContext) -> None:
        paragraph = None
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                text = WHITESPACE_RE.sub(" ", str(child))
                if not text.strip():
                    continue
                paragraph = paragraph or container.add_paragraph()
                self._add_text(paragraph, text, fmt)
                continue
            if not isinstance(child, Tag) or child.name in SKIP_TAGS:
                continue

            name = child.name
            if name in HEADING_TAGS:
                paragraph = None
                heading = container.add_paragraph(style=f"Heading {HEADING_TAGS[name]}")
                self._inline(child, heading, fmt, ctx)
            elif name == "p":
                paragraph = None
                self._inline(child, container.add_paragraph(), fmt, ctx)
            elif name in ("ul", "ol"):
                paragraph = None
                style = "List Bullet" if name == "ul" else "List Number"
                for item in child.find_all("li", recursive=False):
                    self._inline(item, container.add_paragraph(style=style), fmt, ctx)
            elif name == "table":
                paragraph = None
                self._table(child, container, fmt, ctx)
            elif name == "br":
                if paragraph is not None:
                    paragraph.add_run().add_break()
            elif name == "img":
                paragraph = paragraph or container.add_paragraph()
                self._image(child, paragraph, ctx)
            elif name in INLINE_TAGS:
                paragraph = paragraph or container.add_paragraph()
                self._inline(child, paragraph, self._format_for(child, fmt), ctx)
            else:
                paragraph = None
                self._blocks(child, container, fmt, ctx)

    def _table(self, node: Tag, container: Any, fmt: RunFormat, ctx: ConversionContext) -> None:
        rows = [tr for tr in node.find_all("tr") if tr.find_parent("table") is node]
        if not rows:
            return
        columns = max(len(tr.find_all(["td", "th"], recursive=False)) for tr in rows) or 1
        table = container.add_table(rows=0, cols=columns)
        for tr in rows:
            row = table.add_row()
            if ctx.cant_split:
                tr_pr = row._tr.get_or_add_trPr()
                tr_pr.append(OxmlElement("w:cantSplit"))
            for index, cell_node in enumerate(tr.find_all(["td", "th"], recursive=False)):
                cell = row.cells[index]
                cell_fmt = fmt
                if "sidebar" in _classes(cell_node):
                    self._shade(cell, ctx.accent_color)
                    cell_fmt = replace(fmt, color="#FFFFFF")
                if cell_node.name == "th":
                    cell_fmt = replace(cell_fmt, bold=True)
                self._blocks(cell_node, cell, cell_fmt, ctx)
                if len(cell.paragraphs) > 1 and not cell.paragraphs[0].text and not cell.paragraphs[0].runs:
                    first = cell.paragraphs[0]._p
                    first.getparent().remove(first)

    @staticmethod
    def _shade(cell, color: Optional[str]) -> None:
        rgb = hex_to_rgb(color)
        if rgb is None:
            return
        tc_pr = cell._tc.get_or_add_tcPr()
        shading = OxmlElement("w:shd")
        shading.set(qn("w:val"), "clear")
        shading.set(qn("w:color"), "auto")
        shading.set(qn("w:fill"), str(rgb))
        tc_pr.append(shading)

    # -------------------------------------------------------------------------
    # Inline content
    # -------------------------------------------------------------------------

    def _format_for(self, node: Tag, fmt: RunFormat) -> RunFormat:
        name = node.name
        if name in ("b", "strong"):
            return replace(fmt, bold=True)
        if name in ("i", "em"):
            return replace(fmt, italic=True)
        if name == "u":
            return replace(fmt, underline=True)
        return fmt

    def _inline(self, node: Tag, paragraph, fmt: RunFormat, ctx: ConversionContext) -> None:
        classes = _classes(node)
        if "letter-subject" in classes:
            fmt = replace(fmt, color=ctx.accent_color)
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                text = WHITESPACE_RE.sub(" ", str(child))
                if text.strip() or paragraph.runs:
                    self._add_text(paragraph, text, fmt)
            elif isinstance(child, Tag):
                if child.name in SKIP_TAGS:
                    continue
                if child.name == "br":
                    paragraph.add_run().add_break()
                elif child.name == "img":
                    self._image(child, paragraph, ctx)
                else:
                    self._inline(child, paragraph, self._format_for(child, fmt), ctx)

    def _add_text(self, paragraph, text: str, fmt: RunFormat) -> None:
        if not paragraph.text:
            text = text.lstrip()
            if not text:
                return
        run = paragraph.add_run(text)
        run.bold = fmt.bold or None
        run.italic = fmt.italic or None
        run.underline = fmt.underline or None
        color = hex_to_rgb(fmt.color)
        if color is not None:
            run.font.color.rgb = color

    def _image(self, node: Tag, paragraph, ctx: ConversionContext) -> None:
        src = node.get("src", "")
        decoded = decode_data_uri(src)
        if decoded is None:
            logger.warning(f"Skipping image that is not inline-encoded: {src[:80]}")
            return
        content_type, data = decoded
        try:
            with Image.open(io.BytesIO(data)) as image:
                natural_width_in = image.width / 96
        except (UnidentifiedImageError, OSError):
            logger.warning(f"Skipping unsupported image ({content_type or 'unknown type'})")
            return

        width_in = natural_width_in
        for css_class in _classes(node):
            if css_class in IMAGE_WIDTHS_IN:
                width_in = IMAGE_WIDTHS_IN[css_class]
        width_in = min(width_in, ctx.content_width_in)
        paragraph.add_run().add_picture(io.BytesIO(data), width=Inches(width_in))


def convert_html_to_docx(html: str, options: Optional[DocxOptions] = None) -> bytes:
    return HtmlDocxConverter().convert(html, options)
