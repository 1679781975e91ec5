"""
Offer Engine - Document Store

Owns the single LetterDocument snapshot. ``update`` is the only mutation
entry point: it shallow-merges a patch field by field (last write wins),
repairs the two structural invariants and notifies subscribers synchronously.

Structural invariants repaired here (never rejected):
- element_order is a permutation of SectionKey
- compensation holds exactly one variant
"""
from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import LetterValidationError
from ..models.letter import (
    DEFAULT_SECTION_ORDER,
    LetterDocument,
    LogoAlignment,
    OfferType,
    SectionKey,
    Theme,
    compensation_from_value,
    create_default_document,
)

logger = logging.getLogger(__name__)

Listener = Callable[[LetterDocument], None]

DOCUMENT_FIELDS = frozenset(f.name for f in fields(LetterDocument))

_ENUM_FIELDS = {
    "theme": Theme,
    "offer_type": OfferType,
    "logo_alignment": LogoAlignment,
}


def normalize_element_order(order: Iterable[Any]) -> Tuple[SectionKey, ...]:
    """
    Repair an order into a permutation of SectionKey.

    Unknown keys and duplicates are dropped (first occurrence wins); missing
    keys are appended in their default position order.
    """
    seen: List[SectionKey] = []
    for raw in order:
        try:
            key = SectionKey(raw)
        except ValueError:
            logger.debug(f"Dropping unknown section key {raw!r}")
            continue
        if key not in seen:
            seen.append(key)
    seen.extend(key for key in DEFAULT_SECTION_ORDER if key not in seen)
    return tuple(seen)


class DocumentStore:
    """Publish/subscribe holder for the current LetterDocument."""

    def __init__(self, initial: Optional[LetterDocument] = None):
        self._snapshot = initial if initial is not None else create_default_document()
        self._listeners: List[Listener] = []

    def current(self) -> LetterDocument:
        """Latest snapshot. Frozen, so callers always hold a value, never a live handle."""
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, patch: Mapping[str, Any]) -> LetterDocument:
        """Merge ``patch`` into the snapshot and notify subscribers."""
        changes = self._coerce(patch)
        self._snapshot = replace(self._snapshot, **changes)
        logger.debug(f"Document updated: {sorted(changes)}")
        self._notify()
        return self._snapshot

    def reset(self) -> LetterDocument:
        """Replace the snapshot with a fresh default document."""
        self._snapshot = create_default_document()
        self._notify()
        return self._snapshot

    def _notify(self) -> None:
        snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Document listener {listener!r} failed")

    def _coerce(self, patch: Mapping[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name, value in patch.items():
            if name not in DOCUMENT_FIELDS:
                logger.warning(f"Ignoring unknown document field '{name}'")
                continue
            try:
                if name in _ENUM_FIELDS:
                    value = _ENUM_FIELDS[name](value)
                elif name == "compensation":
                    value = compensation_from_value(value)
                elif name == "element_order":
                    value = normalize_element_order(value or ())
            except (TypeError, ValueError) as e:
                raise LetterValidationError(f"Invalid value for '{name}': {e}") from e
            changes[name] = value
        return changes
