"""
Offer Engine - Letter Surface

The renderable surface: produces the letter markup for a document under its
theme. Placeholder text comes from the RenderingEngine; layout comes from the
Layout Resolver. Editor mode adds affordances (drag handles) that export
snapshots strip again.
"""
from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup
from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup, escape

from ...models.letter import LetterDocument
from ..layout import layout_for
from .engine import RenderingEngine, format_long_date

logger = logging.getLogger(__name__)

RENDER_TARGET_ID = "letter-preview-content"
EDITOR_ONLY_ATTR = "data-editor-only"


def is_rich_text(text: Optional[str]) -> bool:
    """True when the text is rich-text editor output (contains tags)."""
    return BeautifulSoup(text or "", "html.parser").find() is not None


def body_markup(text: str, rich: Optional[bool] = None) -> Markup:
    """
    Convert resolved body text into markup.

    Rich-text editor output (already markup) is kept as is; plain text is
    escaped and split into paragraphs on blank lines. Pass ``rich`` when the
    mode was decided on the unresolved body; otherwise it is detected here.
    """
    if rich is None:
        rich = is_rich_text(text)
    if rich:
        return Markup(text)
    paragraphs = [p for p in text.replace("\r\n", "\n").split("\n\n") if p.strip()]
    return Markup("\n").join(
        Markup("<p>{}</p>").format(Markup("<br>").join(escape(line) for line in p.split("\n")))
        for p in paragraphs
    )


class LetterSurface:
    """Render LetterDocument snapshots into theme markup."""

    def __init__(self, engine: Optional[RenderingEngine] = None, env: Optional[Environment] = None):
        self.engine = engine or RenderingEngine()
        self.env = env or Environment(
            loader=PackageLoader("offer_engine", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_markup(self, doc: LetterDocument, *, editor: bool = False) -> str:
        template = self.env.get_template("letter.html")
        # Mode is fixed by the author's body; field values never switch it.
        rich = is_rich_text(doc.body)
        body = self.engine.render(doc, escape=escape if rich else None)
        return template.render(
            doc=doc,
            layout=layout_for(doc.theme),
            order=[key.value for key in doc.element_order],
            body=body_markup(body, rich=rich),
            letter_date=format_long_date(doc.date),
            editor=editor,
        )

    def export_snapshot(self, doc: LetterDocument) -> Optional[str]:
        """
        On-screen markup of the render target with editor-only affordances removed.

        Returns None when the surface produced no render target.
        """
        soup = BeautifulSoup(self.render_markup(doc, editor=True), "html.parser")
        target = soup.find(id=RENDER_TARGET_ID)
        if target is None:
            return None
        for node in target.find_all(attrs={EDITOR_ONLY_ATTR: True}):
            node.decompose()
        return str(target)
