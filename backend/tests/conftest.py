"""Shared fixtures: tiny images and a mock image host."""

import io

import httpx
import pytest
from PIL import Image


def make_png(width=4, height=4, color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class ImageHost:
    """httpx mock transport serving a handful of fixed URLs; records every request."""

    def __init__(self):
        self.png = make_png()
        self.requests = []
        self.routes = {
            "https://img.test/logo.png": (200, "image/png", self.png),
            "https://img.test/signature.png": (200, "image/png", self.png),
            "https://img.test/missing.png": (404, "text/plain", b"not found"),
            "https://img.test/page.html": (200, "text/html", b"<html></html>"),
            "https://img.test/empty.png": (200, "image/png", b""),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url == "https://img.test/down.png":
            raise httpx.ConnectError("connection refused", request=request)
        status, content_type, body = self.routes.get(url, (404, "text/plain", b""))
        return httpx.Response(status, headers={"content-type": content_type}, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def image_host():
    return ImageHost()


@pytest.fixture
def png_factory():
    return make_png


class FakeRasterizer:
    """Stands in for the headless browser: returns a plain PNG of the requested width."""

    def __init__(self, height_css_px=300):
        self.height_css_px = height_css_px
        self.calls = []

    async def capture(self, html_document, width_px, scale):
        self.calls.append((html_document, width_px, scale))
        return make_png(width_px * scale, self.height_css_px * scale, color=(255, 255, 255))


@pytest.fixture
def fake_rasterizer():
    return FakeRasterizer()
