"""
Offer Engine - Letter API Router

Thin HTTP surface over the document store, renderer, layout resolver,
export pipeline and generative assist. Patches from the form layer and from
the assist endpoint both go through DocumentStore.update().
"""
from __future__ import annotations

import logging
from typing import List, Literal, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field, model_validator

from ..dependencies import EngineState, get_state, get_store
from ..errors import ExportDependencyError, GenerationError, LetterValidationError
from ..models.letter import LogoAlignment, OfferType, SalaryFrequency, Theme
from ..services.assets import ExportableAsset
from ..services.export import ExportArtifact
from ..services.layout import is_reorderable, layout_for, reorder, sections_for
from ..services.renderer import render_view
from ..services.store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/letter", tags=["letter"])

NULLABLE_FIELDS = {
    "company_logo", "company_email", "company_phone", "company_website",
    "company_linkedin", "signer_signature",
}
ASSET_SLOTS = {"logo": "company_logo", "signature": "signer_signature"}


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class CompensationPatch(BaseModel):
    kind: Literal["salary", "perks"]
    amount: Optional[float] = Field(default=None, ge=0)
    frequency: Optional[SalaryFrequency] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def salary_needs_amount(self):
        if self.kind == "salary" and self.amount is None:
            raise ValueError("salary compensation requires an amount")
        return self

    def to_value(self) -> dict:
        if self.kind == "salary":
            return {"amount": self.amount, "frequency": self.frequency or SalaryFrequency.ANNUALLY}
        return {"description": self.description or ""}


class LetterPatch(BaseModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_logo: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    company_website: Optional[str] = None
    company_linkedin: Optional[str] = None
    candidate_name: Optional[str] = None
    candidate_address: Optional[str] = None
    date: Optional[str] = None
    job_title: Optional[str] = None
    start_date: Optional[str] = None
    acceptance_deadline: Optional[str] = None
    manager_name: Optional[str] = None
    offer_type: Optional[OfferType] = None
    compensation: Optional[CompensationPatch] = None
    body: Optional[str] = None
    signer_name: Optional[str] = None
    signer_title: Optional[str] = None
    signer_signature: Optional[str] = None
    theme: Optional[Theme] = None
    font_family: Optional[str] = None
    heading_color: Optional[str] = None
    body_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_alignment: Optional[LogoAlignment] = None
    element_order: Optional[List[str]] = None

    def to_patch(self) -> dict:
        patch = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None or name in NULLABLE_FIELDS
        }
        if self.compensation is not None:
            patch["compensation"] = self.compensation.to_value()
        return patch


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class AssistRequest(BaseModel):
    prompt: str = Field(min_length=1)


class RenderedResponse(BaseModel):
    body: str
    html: str


class LayoutResponse(BaseModel):
    theme: str
    layout: str
    reorderable: bool
    sections: List[str]
    element_order: List[str]


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def layout_response(store: DocumentStore) -> LayoutResponse:
    doc = store.current()
    return LayoutResponse(
        theme=doc.theme.value,
        layout=layout_for(doc.theme),
        reorderable=is_reorderable(doc.theme),
        sections=[key.value for key in sections_for(doc.theme, doc.element_order)],
        element_order=[key.value for key in doc.element_order],
    )


def download_response(artifact: Optional[ExportArtifact]) -> Response:
    if artifact is None:
        return Response(status_code=204)
    ascii_name = artifact.filename.encode("ascii", "ignore").decode("ascii") or "Offer_Letter"
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(artifact.filename)}"
    return Response(
        content=artifact.content,
        media_type=artifact.content_type,
        headers={"Content-Disposition": disposition},
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("")
async def get_letter(store: DocumentStore = Depends(get_store)):
    """Current document snapshot."""
    return store.current().to_dict()


@router.patch("")
async def update_letter(request: LetterPatch, store: DocumentStore = Depends(get_store)):
    """Merge a partial document into the current snapshot."""
    try:
        doc = store.update(request.to_patch())
    except LetterValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return doc.to_dict()


@router.post("/reset")
async def reset_letter(store: DocumentStore = Depends(get_store)):
    return store.reset().to_dict()


@router.get("/rendered", response_model=RenderedResponse)
async def get_rendered(state: EngineState = Depends(get_state)):
    """Placeholder-resolved body text plus the on-screen markup."""
    doc = state.store.current()
    view = render_view(doc)
    return RenderedResponse(body=view.body, html=state.surface.render_markup(doc, editor=True))


@router.get("/themes")
async def list_themes():
    return [
        {"theme": theme.value, "layout": layout_for(theme), "reorderable": is_reorderable(theme)}
        for theme in Theme
    ]


@router.get("/layout", response_model=LayoutResponse)
async def get_layout(store: DocumentStore = Depends(get_store)):
    return layout_response(store)


@router.post("/layout/reorder", response_model=LayoutResponse)
async def reorder_sections(request: ReorderRequest, store: DocumentStore = Depends(get_store)):
    """Move one section; out-of-range indices or a fixed-layout theme are rejected."""
    try:
        order = reorder(store.current(), request.from_index, request.to_index)
    except LetterValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    store.update({"element_order": order})
    return layout_response(store)


@router.post("/assets/{slot}")
async def upload_asset(
    slot: Literal["logo", "signature"],
    file: UploadFile = File(...),
    store: DocumentStore = Depends(get_store),
):
    """Store an uploaded logo or signature as an inline image reference."""
    data = await file.read()
    try:
        asset = ExportableAsset.from_upload(data, file.content_type or "")
    except LetterValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    doc = store.update({ASSET_SLOTS[slot]: asset.source})
    return doc.to_dict()


@router.post("/assist")
async def generate_with_assist(request: AssistRequest, state: EngineState = Depends(get_state)):
    """Ask the generative collaborator for a partial document and apply it."""
    try:
        patch = await state.assist.generate_patch(request.prompt)
    except GenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    try:
        doc = state.store.update(patch)
    except LetterValidationError as e:
        raise HTTPException(status_code=502, detail=f"Generated content was not usable: {e}")
    return doc.to_dict()


@router.get("/export/pdf")
async def export_pdf(state: EngineState = Depends(get_state)):
    try:
        artifact = await state.pipeline.export_pdf(state.store.current())
    except ExportDependencyError as e:
        logger.error(f"PDF export aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return download_response(artifact)


@router.get("/export/docx")
async def export_docx(state: EngineState = Depends(get_state)):
    try:
        artifact = await state.pipeline.export_docx(state.store.current())
    except ExportDependencyError as e:
        logger.error(f"DOCX export aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return download_response(artifact)
