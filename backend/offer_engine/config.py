"""
Offer Engine - Configuration

Environment-driven settings, read once at import time.
"""
import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("OFFER_ENGINE_LOG_LEVEL", "INFO")

    # Generative assist (Gemini). Empty key disables the assist endpoint.
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    asset_fetch_timeout: float = float(os.getenv("ASSET_FETCH_TIMEOUT", "15"))

    # Rasterized export page geometry
    export_page_format: str = os.getenv("EXPORT_PAGE_FORMAT", "letter")
    export_orientation: str = os.getenv("EXPORT_ORIENTATION", "portrait")
    export_margin_in: float = float(os.getenv("EXPORT_MARGIN_IN", "0.5"))
    export_scale: int = int(os.getenv("EXPORT_SCALE", "2"))
    export_image_quality: float = float(os.getenv("EXPORT_IMAGE_QUALITY", "0.98"))

    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*"))
    )


settings = Settings()
