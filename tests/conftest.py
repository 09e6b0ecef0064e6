"""Test fixtures: asset trees on disk, fake upstream and ASGI test clients."""

from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from retroasset.config import Settings
from retroasset.main import create_app


@pytest.fixture
def rom_root(tmp_path: Path) -> Path:
    """R/snes/{a.zip,b.zip}, R/genesis/{c.zip}."""
    root = tmp_path / "cores"
    (root / "snes").mkdir(parents=True)
    (root / "genesis").mkdir()
    (root / "snes" / "a.zip").write_bytes(b"PK\x03\x04snes-a")
    (root / "snes" / "b.zip").write_bytes(b"PK\x03\x04snes-b")
    (root / "genesis" / "c.zip").write_bytes(b"PK\x03\x04genesis-c")
    return root


@pytest.fixture
def system_root(tmp_path: Path) -> Path:
    root = tmp_path / "system"
    (root / "psx").mkdir(parents=True)
    (root / "bios.bin").write_bytes(b"\x00BIOS\xff")
    (root / "psx" / "scph1001.bin").write_bytes(b"PSXBIOS")
    return root


@pytest.fixture
def frontend_root(tmp_path: Path) -> Path:
    root = tmp_path / "frontend"
    (root / "bundle").mkdir(parents=True)
    (root / "index.html").write_text("<html>retroarch</html>")
    (root / "bundle" / "retroarch.js").write_text("console.log('ra');")
    return root


class BodyStream(httpx.AsyncByteStream):
    """Unread response body, so the proxy can stream it with aiter_raw()."""

    def __init__(self, body: bytes):
        self._body = body

    async def __aiter__(self):
        yield self._body


def streamed_response(status_code: int, body: bytes = b"", headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status_code, headers=headers, stream=BodyStream(body))


@pytest.fixture
def respond():
    """Builds upstream responses whose body has not been read yet."""
    return streamed_response


class Upstream:
    """Records requests sent to the fake remote origin."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return streamed_response(
            200,
            b"remote:" + request.url.raw_path,
            headers={"Content-Type": "application/octet-stream", "X-Upstream": "buildbot"},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


async def _client_for(settings: Settings, upstream: Upstream):
    app = create_app(settings, transport=upstream.transport)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    for proxy in app.state.proxies:
        await proxy.aclose()


@pytest_asyncio.fixture
async def local_client(rom_root: Path, system_root: Path, frontend_root: Path, upstream: Upstream):
    """Every category served from disk."""
    settings = Settings(
        frontend_path=str(frontend_root),
        system_path=str(system_root),
        rom_path=str(rom_root),
    )
    async for c in _client_for(settings, upstream):
        yield c


@pytest_asyncio.fixture
async def proxy_client(upstream: Upstream):
    """No local paths: every category proxied to the fake origin."""
    settings = Settings(frontend_path="", system_path="", rom_path="")
    async for c in _client_for(settings, upstream):
        yield c
