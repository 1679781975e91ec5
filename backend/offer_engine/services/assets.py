"""
Offer Engine - Asset Inlining

Replaces every externally referenced <img> source in a markup string with an
inline data payload so exported files are self-contained.

FAILURE POLICY:
- Fetches run concurrently and are joined with each-settled semantics
- One failing image never aborts the others or the export; it keeps its
  original URL and the failure is logged
- Already-inlined images are skipped, so inlining is idempotent
"""
from __future__ import annotations

import asyncio
import base64
import html
import logging
import mimetypes
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from ..errors import AssetFetchError, LetterValidationError

logger = logging.getLogger(__name__)

IMG_SRC_RE = re.compile(r"(<img\b[^>]*?(?<![\w-])src\s*=\s*)([\"'])(.*?)\2", re.IGNORECASE | re.DOTALL)
EXTERNAL_SRC_RE = re.compile(r"^(?:https?:)?//", re.IGNORECASE)

UPLOAD_CONTENT_TYPES = {"image/png", "image/jpeg", "image/gif", "image/svg+xml"}
MAX_UPLOAD_BYTES = 2 * 1024 * 1024


def to_data_uri(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


@dataclass(frozen=True)
class ExportableAsset:
    """An image reference: either an inline data payload or an external URL."""
    source: str

    @property
    def is_inline(self) -> bool:
        return self.source.startswith("data:")

    @property
    def is_external(self) -> bool:
        return bool(EXTERNAL_SRC_RE.match(self.source))

    @classmethod
    def from_upload(cls, data: bytes, content_type: str) -> "ExportableAsset":
        """Inline reference for uploaded bytes (png, jpeg, gif or svg; max 2MB)."""
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in UPLOAD_CONTENT_TYPES:
            raise LetterValidationError("Invalid file type. Please use PNG, JPEG, GIF, or SVG.")
        if len(data) > MAX_UPLOAD_BYTES:
            raise LetterValidationError("File is too large. Maximum size is 2MB.")
        return cls(source=to_data_uri(data, content_type))


def find_external_sources(markup: str) -> List[str]:
    """Distinct external image URLs in document order (raw attribute values)."""
    sources: List[str] = []
    for match in IMG_SRC_RE.finditer(markup):
        raw = match.group(3).strip()
        if EXTERNAL_SRC_RE.match(html.unescape(raw)) and raw not in sources:
            sources.append(raw)
    return sources


class AssetInliner:
    """
    Inline external images in markup.

    Input: markup string
    Output: markup string with external <img> sources replaced by data URIs

    Pass an ``httpx.AsyncClient`` to share connections or to inject a mock
    transport; otherwise a client is opened per call.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self.client = client
        self.timeout = timeout

    async def inline_all(self, markup: str) -> str:
        sources = find_external_sources(markup)
        if not sources:
            return markup

        if self.client is not None:
            replacements = await self._fetch_all(self.client, sources)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                replacements = await self._fetch_all(client, sources)

        if not replacements:
            return markup

        def substitute(match: re.Match) -> str:
            raw = match.group(3).strip()
            if raw not in replacements:
                return match.group(0)
            return f"{match.group(1)}{match.group(2)}{replacements[raw]}{match.group(2)}"

        return IMG_SRC_RE.sub(substitute, markup)

    async def _fetch_all(self, client: httpx.AsyncClient, sources: List[str]) -> Dict[str, str]:
        results = await asyncio.gather(
            *(self._fetch_one(client, raw) for raw in sources),
            return_exceptions=True,
        )
        replacements: Dict[str, str] = {}
        for raw, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.warning(f"Keeping external image {raw}: {result}")
                continue
            replacements[raw] = result
        logger.info(f"Inlined {len(replacements)}/{len(sources)} external images")
        return replacements

    async def _fetch_one(self, client: httpx.AsyncClient, raw: str) -> str:
        url = html.unescape(raw)
        if url.startswith("//"):
            url = f"https:{url}"
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AssetFetchError(url, str(e) or e.__class__.__name__) from e

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            guessed, _ = mimetypes.guess_type(url)
            if content_type or not (guessed and guessed.startswith("image/")):
                raise AssetFetchError(url, f"not an image ({content_type or 'unknown type'})")
            content_type = guessed
        if not response.content:
            raise AssetFetchError(url, "empty response body")
        return to_data_uri(response.content, content_type)


async def inline_all(markup: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Inline every external image in ``markup``."""
    return await AssetInliner(client=client).inline_all(markup)
