from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("policycatalog.api")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id and the registry generation to every response.

    Headers:
      - X-Request-ID
      - X-Registry-Generation (when the app carries a registry)

    A client-supplied X-Request-ID is accepted only if it is short;
    otherwise a fresh one is generated.
    """

    def __init__(self, app, *, header_name: str = "X-Request-ID", max_len: int = 128):
        super().__init__(app)
        self._header_name = header_name
        self._max_len = max_len

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get(self._header_name)
        if not rid or len(rid) > self._max_len:
            rid = uuid4().hex
        request.state.request_id = rid

        registry = getattr(request.app.state, "registry", None)
        generation = registry.generation if registry is not None else None
        request.state.registry_generation = generation

        response: Response = await call_next(request)
        response.headers[self._header_name] = rid
        if generation is not None:
            response.headers["X-Registry-Generation"] = str(generation)
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Structured access logging; request bodies are never logged."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            log.info(
                "api_request",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "registry_generation": getattr(request.state, "registry_generation", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )
