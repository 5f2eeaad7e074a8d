# -*- coding: utf-8 -*-
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response

from body_reader import read_json_body
from config import Settings, load_settings
from errors import BodyTooLargeError, ProxyError
from proxy import CORS_HEADERS, ProxyForwarder, image_forwarder, json_utf8, text_forwarder
from static_files import StaticFileError, StaticFileResolver

ROOT_DIR = Path(__file__).resolve().parent

logger = logging.getLogger("ark_proxy")

# =============================================================================
# Logging
# =============================================================================

def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

# =============================================================================
# HTTP client
# =============================================================================

def get_http_client(app: FastAPI) -> httpx.AsyncClient:
    client: Optional[httpx.AsyncClient] = getattr(app.state, "http_client", None)
    if client is None:
        client = httpx.AsyncClient(timeout=app.state.settings.http_timeout, follow_redirects=True)
        app.state.http_client = client
    return client

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if not settings.proxy_enabled:
        logger.warning("ARK_API_KEY is not set; /api/text and /api/image will answer 500")
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
    try:
        yield
    finally:
        client = app.state.http_client
        app.state.http_client = None
        if client:
            await client.aclose()

# =============================================================================
# App factory
# =============================================================================

def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(
        title="Ark Proxy",
        description="Static file server and credential-injecting proxy for Ark text/image generation",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.http_client = None
    app.state.text_forwarder = text_forwarder(settings)
    app.state.image_forwarder = image_forwarder(settings)
    app.state.static_resolver = StaticFileResolver(settings.static_root, settings.index_file)

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        response = json_utf8(exc.to_payload(), status_code=exc.status_code)
        if isinstance(exc, BodyTooLargeError):
            # drop the connection instead of draining the rest of the body
            response.headers["Connection"] = "close"
        return response

    async def _proxy(request: Request, forwarder: ProxyForwarder) -> JSONResponse:
        # credential gate first, before any body byte is read
        forwarder.check_credential()
        body = await read_json_body(request)
        result = await forwarder.forward(get_http_client(request.app), body)
        return forwarder.render(result)

    @app.options("/api/text")
    @app.options("/api/image")
    async def proxy_preflight() -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    @app.post("/api/text")
    async def text_proxy(request: Request):
        return await _proxy(request, request.app.state.text_forwarder)

    @app.post("/api/image")
    async def image_proxy(request: Request):
        return await _proxy(request, request.app.state.image_forwarder)

    @app.get("/{request_path:path}")
    async def serve_static(request_path: str, request: Request):
        resolver: StaticFileResolver = request.app.state.static_resolver
        try:
            static_file = resolver.resolve("/" + request_path)
        except StaticFileError as e:
            return PlainTextResponse(e.message, status_code=e.status_code, media_type="text/plain; charset=utf-8")
        return FileResponse(static_file.path, media_type=static_file.media_type)

    return app

# =============================================================================
# Entry point
# =============================================================================

settings = load_settings(ROOT_DIR)
configure_logging(settings.debug)
app = create_app(settings)

def main() -> None:
    logger.info("Server running at http://localhost:%d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")

if __name__ == "__main__":
    main()

# =============================================================================
# Run tips
# =============================================================================
# With uvicorn directly:
# uvicorn app:app --host 0.0.0.0 --port 3000 --reload
