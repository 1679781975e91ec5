"""
Letter Surface and Style Resolution Tests

Verifies:
1. Flow themes render sections in element_order; fixed themes ignore it
2. Editor affordances are present on screen and absent from export snapshots
3. Body text is escaped plain text or kept rich text; field values never
   switch the mode and are escaped in both
4. The resolved style sheet carries every theme plus the user's overrides
"""

import dataclasses
import re

import pytest
from bs4 import BeautifulSoup

from offer_engine.models.letter import SectionKey, Theme, create_default_document
from offer_engine.services.renderer import RENDER_TARGET_ID, LetterSurface, body_markup, is_rich_text
from offer_engine.services.styles import (
    StyleOverrides,
    StyleResolver,
    base_stylesheet,
    read_overrides,
    resolve_styles,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def surface():
    return LetterSurface()


@pytest.fixture
def document():
    return create_default_document()


def section_order(markup):
    soup = BeautifulSoup(markup, "html.parser")
    return [node["data-section"] for node in soup.find_all(attrs={"data-section": True})]


# =============================================================================
# BODY MARKUP
# =============================================================================

class TestBodyMarkup:

    def test_plain_text_paragraphs(self):
        assert str(body_markup("First line\nsecond line\n\nNext")) == (
            "<p>First line<br>second line</p>\n<p>Next</p>"
        )

    def test_plain_text_escaped(self):
        assert str(body_markup("Salary < bonus & perks")) == "<p>Salary &lt; bonus &amp; perks</p>"

    def test_rich_text_kept(self):
        html = "<p>Welcome <strong>aboard</strong></p>"
        assert str(body_markup(html)) == html

    def test_blank_text(self):
        assert str(body_markup("")) == ""

    def test_explicit_plain_mode_escapes_tags(self):
        assert str(body_markup("Hi <b>there</b>", rich=False)) == "<p>Hi &lt;b&gt;there&lt;/b&gt;</p>"

    def test_rich_text_detection(self):
        assert is_rich_text("<p>x</p>") is True
        assert is_rich_text("a < b and {companyName}") is False
        assert is_rich_text(None) is False


# =============================================================================
# LETTER MARKUP
# =============================================================================

class TestRenderMarkup:

    def test_render_target_present(self, surface, document):
        soup = BeautifulSoup(surface.render_markup(document), "html.parser")
        target = soup.find(id=RENDER_TARGET_ID)
        assert target is not None
        assert "theme-classic" in target["class"]
        assert "layout-flow" in target["class"]

    def test_flow_sections_follow_element_order(self, surface, document):
        order = ("body", "header", "date", "recipient", "subject", "signature")
        doc = dataclasses.replace(document, element_order=tuple(SectionKey(k) for k in order))
        assert section_order(surface.render_markup(doc)) == list(order)

    def test_fixed_layout_ignores_element_order(self, surface, document):
        doc = dataclasses.replace(
            document,
            theme=Theme.CREATIVE,
            element_order=tuple(reversed(document.element_order)),
        )
        markup = surface.render_markup(doc)
        soup = BeautifulSoup(markup, "html.parser")
        assert section_order(markup) == []
        assert soup.find("td", class_="sidebar") is not None
        assert "layout-sidebar" in soup.find(id=RENDER_TARGET_ID)["class"]

    def test_banner_layout(self, surface, document):
        doc = dataclasses.replace(document, theme=Theme.VIBRANT)
        soup = BeautifulSoup(surface.render_markup(doc), "html.parser")
        assert soup.find("div", class_="banner") is not None

    def test_body_placeholders_resolved(self, surface, document):
        markup = surface.render_markup(document)
        assert "Software Engineer Intern at Innovate Inc." in markup
        assert "{jobTitle}" not in markup
        assert "$60,000.00 annually" in markup

    def test_user_text_escaped(self, surface, document):
        doc = dataclasses.replace(document, company_name="Smith & <Sons>")
        assert "Smith &amp; &lt;Sons&gt;" in surface.render_markup(doc)

    def test_tag_like_value_keeps_plain_body_plain(self, surface, document):
        doc = dataclasses.replace(
            document,
            company_name="R&D <Labs>",
            body="Welcome to {companyName}.\n\nSecond paragraph.",
        )
        target = BeautifulSoup(surface.render_markup(doc), "html.parser").find(class_="letter-body")
        markup = str(target)
        assert "Welcome to R&amp;D &lt;Labs&gt;." in markup
        assert "<labs>" not in markup.lower()
        assert [p.get_text() for p in target.find_all("p")] == ["Welcome to R&D <Labs>.", "Second paragraph."]

    def test_rich_body_escapes_values(self, surface, document):
        doc = dataclasses.replace(
            document,
            company_name="<script>alert(1)</script>",
            body="<p>Welcome to <strong>{companyName}</strong></p>",
        )
        soup = BeautifulSoup(surface.render_markup(doc), "html.parser")
        assert soup.find("script") is None
        assert soup.find("strong").get_text() == "<script>alert(1)</script>"

    def test_rich_body_kept_as_markup(self, surface, document):
        doc = dataclasses.replace(document, body="<ul><li>{jobTitle}</li></ul>")
        soup = BeautifulSoup(surface.render_markup(doc), "html.parser")
        assert soup.find("li").get_text() == "Software Engineer Intern"

    def test_logo_rendered_when_set(self, surface, document):
        doc = dataclasses.replace(document, company_logo="https://img.test/logo.png")
        soup = BeautifulSoup(surface.render_markup(doc), "html.parser")
        assert soup.find("img", class_="company-logo")["src"] == "https://img.test/logo.png"

    def test_no_logo_no_img(self, surface, document):
        soup = BeautifulSoup(surface.render_markup(document), "html.parser")
        assert soup.find("img") is None

    def test_empty_contact_channels_omitted(self, surface, document):
        doc = dataclasses.replace(
            document, company_email=None, company_phone="", company_website=None, company_linkedin=None
        )
        soup = BeautifulSoup(surface.render_markup(doc), "html.parser")
        assert soup.find(class_="company-contact") is None

    def test_editor_handles_only_in_editor_mode(self, surface, document):
        assert "drag-handle" in surface.render_markup(document, editor=True)
        assert "drag-handle" not in surface.render_markup(document)


class TestExportSnapshot:

    def test_snapshot_is_render_target(self, surface, document):
        root = BeautifulSoup(surface.export_snapshot(document), "html.parser").find()
        assert root["id"] == RENDER_TARGET_ID

    def test_snapshot_strips_editor_affordances(self, surface, document):
        snapshot = surface.export_snapshot(document)
        assert "drag-handle" not in snapshot
        assert "data-editor-only" not in snapshot

    def test_snapshot_keeps_content(self, surface, document):
        snapshot = surface.export_snapshot(document)
        assert "Innovate Inc." in snapshot
        assert "Alex Chen" in snapshot

    def test_snapshot_keeps_section_order(self, surface, document):
        doc = dataclasses.replace(document, element_order=tuple(reversed(document.element_order)))
        assert section_order(surface.export_snapshot(doc))[0] == "signature"


# =============================================================================
# STYLE RESOLUTION
# =============================================================================

class TestStyleResolution:

    def test_all_theme_rules_always_present(self, document):
        css = resolve_styles(document)
        for theme in Theme:
            assert f".theme-{theme.value}" in css

    def test_overrides_block(self, document):
        doc = dataclasses.replace(
            document, font_family="Roboto", heading_color="#112233", body_color="#445566", accent_color="#abc"
        )
        assert read_overrides(resolve_styles(doc)) == {
            "font-family": "Roboto",
            "heading-color": "#112233",
            "body-color": "#445566",
            "accent-color": "#abc",
            "theme": "classic",
        }

    def test_invalid_color_falls_back(self):
        css = StyleResolver(stylesheet="").resolve(Theme.MODERN, StyleOverrides(heading_color="red;}body{"))
        assert read_overrides(css)["heading-color"] == "#1D1D1D"

    def test_font_name_sanitized(self):
        css = StyleResolver(stylesheet="").resolve(Theme.MODERN, StyleOverrides(font_family="Evil'; }"))
        assert read_overrides(css)["font-family"] == "Evil"

    def test_web_font_import(self, document):
        css = resolve_styles(dataclasses.replace(document, font_family="Open Sans"), include_web_fonts=True)
        assert css.startswith("@import url('https://fonts.googleapis.com/css2?family=Open+Sans")

    def test_no_web_font_by_default(self, document):
        assert "@import" not in resolve_styles(document)

    def test_base_stylesheet_uses_override_variables(self):
        css = base_stylesheet()
        for var in ("--letter-font-family", "--letter-heading-color", "--letter-body-color", "--letter-accent-color"):
            assert re.search(rf"var\({var}", css)

    def test_overrides_precede_base_sheet(self, document):
        css = resolve_styles(document)
        assert css.index(":root") < css.index(".theme-classic")
