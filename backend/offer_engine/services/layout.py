"""
Offer Engine - Layout Resolver

Themes are partitioned into fixed-layout themes (sidebar or banner structure
hardcoded in their template) and flow-layout themes whose sections follow
the document's element_order and may be reordered.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Tuple

from ..errors import LayoutLockedError, LetterValidationError
from ..models.letter import DEFAULT_SECTION_ORDER, LetterDocument, SectionKey, Theme

logger = logging.getLogger(__name__)


class LayoutKind:
    FLOW = "flow"
    SIDEBAR = "sidebar"
    BANNER = "banner"


THEME_LAYOUTS: Dict[Theme, str] = {
    Theme.CLASSIC: LayoutKind.FLOW,
    Theme.MODERN: LayoutKind.FLOW,
    Theme.REGAL: LayoutKind.FLOW,
    Theme.FORMAL: LayoutKind.FLOW,
    Theme.CREATIVE: LayoutKind.SIDEBAR,
    Theme.TECH: LayoutKind.SIDEBAR,
    Theme.VIBRANT: LayoutKind.BANNER,
    Theme.CORPORATE: LayoutKind.BANNER,
}


def layout_for(theme: Theme) -> str:
    return THEME_LAYOUTS[Theme(theme)]


def is_reorderable(theme: Theme) -> bool:
    return layout_for(theme) == LayoutKind.FLOW


def sections_for(theme: Theme, order: Optional[Sequence[SectionKey]] = None) -> Tuple[SectionKey, ...]:
    """
    Section keys eligible for reordering under ``theme``, in ``order`` when
    given (the document's element_order) or the default order otherwise.
    Fixed-layout themes have none.
    """
    if not is_reorderable(theme):
        return ()
    return tuple(order or DEFAULT_SECTION_ORDER)


def reorder(doc: LetterDocument, from_index: int, to_index: int) -> Tuple[SectionKey, ...]:
    """
    Move the section at ``from_index`` to ``to_index``; returns the new order.

    Splice semantics: remove then reinsert, all other relative positions kept.
    Out-of-range indices are rejected, never clamped. The document itself is
    not touched; callers push the result through DocumentStore.update().
    """
    if not is_reorderable(doc.theme):
        raise LayoutLockedError(doc.theme.value)

    order = list(doc.element_order)
    size = len(order)
    for label, index in (("from_index", from_index), ("to_index", to_index)):
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < size:
            raise LetterValidationError(f"{label} {index!r} is out of range 0..{size - 1}")

    moved = order.pop(from_index)
    order.insert(to_index, moved)
    logger.debug(f"Reordered {moved.value}: {from_index} -> {to_index}")
    return tuple(order)
