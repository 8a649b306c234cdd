"""Uvicorn entrypoint for the composite gateway.
- /api/composite : Accepts a composite request and runs its steps in order
- /health/*      : Liveness / readiness probes
"""
import uvicorn

from server.app import app, settings

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
