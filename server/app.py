# server/app.py
"""
Composite Gateway (FastAPI Server)

FEATURES:
✅ POST /api/composite: run a chain of downstream calls in one request
✅ Authorization header passthrough to downstream calls
✅ Request correlation IDs (X-Request-ID) in logs and responses
✅ Payload size cap
✅ Liveness / readiness probes
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from server.config import Settings
from composite.downstream import HttpxDownstreamClient
from composite.models import CompositeRequest
from composite.orchestrator import CompositeService, redact_sensitive

# ==================== Configuration ====================

settings = Settings()

_request_id: ContextVar[str] = ContextVar("request_id", default="-")
_old_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    record.request_id = _request_id.get()
    return record


logging.setLogRecordFactory(_record_factory)
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
)
logger = logging.getLogger("server")

# ==================== State ====================

_downstream: Optional[HttpxDownstreamClient] = None
_service: Optional[CompositeService] = None

# ==================== Lifecycle ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared downstream client; close it on shutdown"""
    global _downstream, _service

    _downstream = HttpxDownstreamClient(
        base_url=settings.base_url,
        timeout_sec=settings.timeout_sec,
        verify_ssl=settings.verify_ssl,
        follow_redirects=settings.follow_redirects,
        max_connections=settings.max_connections,
    )
    _service = CompositeService(_downstream)
    logger.info(f"Composite gateway started (timeout={settings.timeout_sec}s, base_url={settings.base_url or '-'})")

    try:
        yield
    finally:
        await _downstream.aclose()
        _downstream = None
        _service = None
        logger.info("Composite gateway stopped")


app = FastAPI(
    title="Composite Gateway",
    version="1.0.0",
    description="Runs ordered chains of HTTP calls, threading extracted values between them",
    lifespan=lifespan,
)

# ==================== Middleware ====================

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request context with correlation IDs"""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        token = _request_id.set(rid)

        logger.info(f"req start {request.method} {request.url.path}")

        try:
            resp = await call_next(request)
            resp.headers["X-Request-ID"] = rid
            logger.info(f"req end status={resp.status_code}")
            return resp
        finally:
            _request_id.reset(token)


class BodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized payloads"""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        body = await request.body()
        if len(body) > self.max_bytes:
            return JSONResponse(
                {"detail": f"Payload too large (max {self.max_bytes} bytes)"},
                status_code=413
            )
        return await call_next(request)


app.add_middleware(BodyLimitMiddleware, max_bytes=settings.max_body_bytes)
app.add_middleware(RequestContextMiddleware)

# ==================== Dependencies ====================

def get_composite_service() -> CompositeService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Composite service not ready")
    return _service

# ==================== Health Checks ====================

@app.get("/health/live")
def liveness_probe():
    """Kubernetes liveness probe"""
    return {"status": "ok"}


@app.get("/health/ready")
def readiness_probe():
    """Kubernetes readiness probe"""
    ready = _service is not None
    return {
        "status": "ready" if ready else "not_ready",
        "checks": {"downstream_client": "ok" if ready else "not_initialized"},
    }

# ==================== API Endpoints ====================

@app.post("/api/composite")
async def composite_endpoint(
    values: CompositeRequest,
    request: Request,
    service: CompositeService = Depends(get_composite_service),
):
    """Run a composite request; status and body mirror the run's outcome"""
    client_host = request.client.host if request.client else "unknown"
    logger.info(
        f"POST request to \"{request.url.path}\" from \"{client_host}\" with values: "
        f"{json.dumps(redact_sensitive(values.model_dump(exclude_none=True)), default=str)}"
    )

    result = await service.run(values, authorization=request.headers.get("Authorization"))

    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type="text/plain" if values.debug else "application/json",
    )
