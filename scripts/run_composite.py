#!/usr/bin/env python3
"""
Composite Runner (command line)

Runs a composite request JSON file without starting the HTTP server and
prints the resulting status and body.

Usage:
    python -m scripts.run_composite request.json
    python -m scripts.run_composite request.json --debug --auth "Bearer abc123"
    cat request.json | python -m scripts.run_composite -
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from composite.downstream import HttpxDownstreamClient
from composite.models import CompositeRequest
from composite.orchestrator import CompositeService
from server.config import Settings

logger = logging.getLogger("run_composite")


def _load_request(source: str, force_debug: bool) -> CompositeRequest:
    raw = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    data = json.loads(raw)
    if force_debug:
        data["debug"] = True
    return CompositeRequest.model_validate(data)


async def _run(request: CompositeRequest, settings: Settings, authorization: str | None) -> int:
    async with HttpxDownstreamClient(
        base_url=settings.base_url,
        timeout_sec=settings.timeout_sec,
        verify_ssl=settings.verify_ssl,
        follow_redirects=settings.follow_redirects,
        max_connections=settings.max_connections,
    ) as client:
        result = await CompositeService(client).run(request, authorization=authorization)

    print(f"Status: {result.status_code}")
    print(result.content, end="")
    return 0 if 200 <= result.status_code < 300 else 1


def _build_cli() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="run_composite",
        description="Run a composite request file against live downstream services",
    )
    p.add_argument("source", help="Path to a composite request JSON file, or '-' for stdin")
    p.add_argument("--debug", action="store_true", help="Include the step trace in the output")
    p.add_argument("--auth", dest="authorization", help="Authorization header to forward, e.g. 'Bearer xyz'")
    p.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return p


if __name__ == "__main__":
    load_dotenv()

    args = _build_cli().parse_args()
    settings = Settings()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        request = _load_request(args.source, args.debug)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read composite request: {e}")
        sys.exit(2)

    sys.exit(asyncio.run(_run(request, settings, args.authorization)))
