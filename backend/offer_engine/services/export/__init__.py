"""Offer Engine - Export

Rasterized (PDF) and structured (DOCX) exports of the rendered letter.
"""
from .pipeline import (
    ExportPipeline,
    ExportArtifact,
    create_export_pipeline,
    export_filename,
    build_document_shell,
    rasterize_svg_images,
    PDF_CONTENT_TYPE,
    DOCX_CONTENT_TYPE,
)
from .raster import PageGeometry, PlaywrightRasterizer, Rasterizer, paginate, capture_to_pdf
from .docx_converter import DocumentConverter, DocxOptions, HtmlDocxConverter, convert_html_to_docx

__all__ = [
    "ExportPipeline", "ExportArtifact", "create_export_pipeline", "export_filename",
    "build_document_shell", "rasterize_svg_images", "PDF_CONTENT_TYPE", "DOCX_CONTENT_TYPE",
    "PageGeometry", "PlaywrightRasterizer", "Rasterizer", "paginate", "capture_to_pdf",
    "DocumentConverter", "DocxOptions", "HtmlDocxConverter", "convert_html_to_docx",
]
