"""Single-target reverse proxy to the remote asset origin."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from fastapi import Request
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

logger = logging.getLogger(__name__)

# RFC 7230 6.1, never forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _forwardable(
    raw: list[tuple[bytes, bytes]],
    *,
    drop: frozenset[str] = frozenset(),
) -> list[tuple[bytes, bytes]]:
    """Copy raw headers except hop-by-hop ones and any named in Connection."""
    listed = {
        token.strip().lower()
        for name, value in raw
        if name.lower() == b"connection"
        for token in value.decode("latin-1").split(",")
    }
    skip = HOP_BY_HOP_HEADERS | drop | listed
    return [(name, value) for name, value in raw if name.decode("latin-1").lower() not in skip]


class ReverseProxy:
    """Forwards requests to ``target`` and streams the answer back.

    The outbound Host header is always the target's host: the origin serves
    several virtual hosts and routes on it. One attempt per request, no
    caching; transport failures become 502.
    """

    def __init__(
        self,
        target: str,
        *,
        prefix: str = "/",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.target = httpx.URL(target)
        self.prefix = prefix
        self.host = self.target.netloc.decode("ascii")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    def __repr__(self) -> str:
        return f"ReverseProxy({self.prefix!r} -> {str(self.target)!r})"

    def url_for(self, path: str, query: bytes = b"") -> httpx.URL:
        """Target URL for ``path``, which must still be percent-encoded."""
        base = self.target.path
        if not base.endswith("/"):
            base += "/"
        url = self.target.copy_with(path=base + path.lstrip("/"))
        if query:
            url = url.copy_with(query=query)
        return url

    def remainder(self, request: Request) -> str:
        """Request path after the prefix, exactly as the client encoded it."""
        raw_path = request.scope.get("raw_path")
        if raw_path:
            path = raw_path.partition(b"?")[0].decode("latin-1")
        else:
            path = quote(request.scope["path"])
        if path.startswith(self.prefix):
            return path[len(self.prefix):]
        return path.lstrip("/")

    def outbound_headers(self, request: Request) -> httpx.Headers:
        headers = httpx.Headers(_forwardable(
            request.headers.raw,
            drop=frozenset({"host", "content-length"}),
        ))
        headers["host"] = self.host
        if request.client is not None:
            prior = headers.get("x-forwarded-for")
            headers["x-forwarded-for"] = f"{prior}, {request.client.host}" if prior else request.client.host
        return headers

    async def forward(self, request: Request) -> Response:
        """Proxy one inbound request received under ``prefix``."""
        url = self.url_for(self.remainder(request), request.scope.get("query_string", b""))
        body = await request.body()
        outbound = self._client.build_request(
            request.method,
            url,
            headers=self.outbound_headers(request),
            content=body or None,
        )
        try:
            upstream = await self._client.send(outbound, stream=True)
        except httpx.HTTPError as exc:
            logger.warning("Upstream %s %s failed: %s", request.method, url, exc)
            return Response(status_code=502, content="Bad Gateway", media_type="text/plain")

        logger.debug("Proxied %s %s -> %d", request.method, url, upstream.status_code)
        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        # raw copy keeps repeated headers (Set-Cookie) intact
        response.raw_headers.extend(
            (name.lower(), value) for name, value in _forwardable(upstream.headers.raw)
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()
