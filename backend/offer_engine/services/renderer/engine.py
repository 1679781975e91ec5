"""
Offer Engine - Placeholder Rendering Engine

Takes a LetterDocument snapshot and resolves the {token} placeholders in its
body into display text.

SUBSTITUTION RULES:
- Single pass, non-recursive: replacement values are never re-scanned
- Unrecognized tokens stay verbatim so authors notice them
- A malformed date only affects its own token
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional

from dateutil import parser as date_parser

from ...models.letter import (
    LetterDocument,
    PerksCompensation,
    RenderedLetterView,
    SalaryCompensation,
)

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{(\w+)\}")

INVALID_DATE = "Invalid Date"
UNPAID_SENTENCE = "This is an unpaid position."
PERKS_INTRO = "As part of your internship, you will receive the following perks and benefits:"


def format_long_date(value: Optional[str]) -> str:
    """'2025-09-01' -> 'September 1, 2025'. Unparseable input yields INVALID_DATE."""
    if not value:
        return INVALID_DATE
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(value, fuzzy=False)
        except (ValueError, OverflowError):
            logger.debug(f"Unparseable date value {value!r}")
            return INVALID_DATE
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def format_currency(amount: float) -> str:
    """US-locale currency: 150000 -> '$150,000.00'."""
    return f"${amount:,.2f}"


def compensation_details(doc: LetterDocument) -> str:
    """Sentence describing the active compensation variant."""
    comp = doc.compensation
    if isinstance(comp, SalaryCompensation) and comp.amount > 0:
        return f"Your starting salary will be {format_currency(comp.amount)} {comp.frequency.value}."
    if isinstance(comp, PerksCompensation) and comp.description:
        return f"{PERKS_INTRO}\n{comp.description}"
    return UNPAID_SENTENCE


class RenderingEngine:
    """
    Resolve placeholder tokens in a letter body.

    Input: LetterDocument snapshot
    Output: fully resolved display text

    Resolvers only run for tokens present in the body, once each.
    """

    def __init__(self):
        self.resolvers: Dict[str, Callable[[LetterDocument], str]] = {
            "companyName": lambda d: d.company_name,
            "jobTitle": lambda d: d.job_title,
            "offerType": lambda d: d.offer_type.value,
            "managerName": lambda d: d.manager_name,
            "candidateName": lambda d: d.candidate_name,
            "signerName": lambda d: d.signer_name,
            "signerTitle": lambda d: d.signer_title,
            "startDate": lambda d: format_long_date(d.start_date),
            "acceptanceDeadline": lambda d: format_long_date(d.acceptance_deadline),
            "date": lambda d: format_long_date(d.date),
            "compensationDetails": compensation_details,
        }

    def render(self, doc: LetterDocument, escape: Optional[Callable[[str], str]] = None) -> str:
        """
        Substitute every recognized token in ``doc.body`` in one pass.

        ``escape`` is applied to resolved values only, never to the body
        text around them.
        """
        cache: Dict[str, str] = {}

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            resolver = self.resolvers.get(name)
            if resolver is None:
                return match.group(0)
            if name not in cache:
                value = resolver(doc) or ""
                cache[name] = str(escape(value)) if escape is not None else value
            return cache[name]

        return TOKEN_RE.sub(substitute, doc.body or "")

    def render_view(self, doc: LetterDocument) -> RenderedLetterView:
        return RenderedLetterView(document=doc, body=self.render(doc))


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def render_letter(doc: LetterDocument) -> str:
    """Resolve all placeholders in the document body."""
    return RenderingEngine().render(doc)


def render_view(doc: LetterDocument) -> RenderedLetterView:
    """Fresh RenderedLetterView for the given snapshot."""
    return RenderingEngine().render_view(doc)
