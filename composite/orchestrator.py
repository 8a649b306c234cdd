# composite/orchestrator.py
"""
Composite Request Orchestrator

Runs the steps of a composite request strictly in order:
✅ {name} templating of method, endpoint and body from earlier results
✅ Authorization passthrough to every downstream call
✅ JSONPath extraction of declared return values
✅ foreach iteration over list-valued variables
✅ Fail-fast: the first failing step ends the run
✅ Optional debug trace in the response

All per-call state lives in a RunContext that is created by run() and passed
down explicitly, so one CompositeService can serve concurrent calls.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from composite.downstream import DownstreamClient, forwarded_authorization
from composite.errors import ExtractionFailed, FailureKind, StepResult
from composite.extraction import parse_body, select
from composite.models import ApiRequest, CompositeRequest, DownstreamResponse, OutboundRequest, StringResponse
from composite.response_builder import CompositeResponseBuilder
from composite.templating import render, render_parameters
from composite.variables import Scalar, VariableStore, from_matches, merge_returned_value

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = {
    "authorization", "x-api-key", "api_key", "apikey", "token",
    "access_token", "password", "secret", "cookie", "jwt",
}

_NOT_PARSED = object()


def redact_sensitive(data: Any) -> Any:
    """Recursively redact sensitive values before logging"""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in _SENSITIVE_KEYS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


@dataclass
class RunContext:
    """Mutable state of exactly one composite run."""
    request: CompositeRequest
    variables: VariableStore = field(default_factory=VariableStore)
    builder: CompositeResponseBuilder = field(default_factory=CompositeResponseBuilder)
    authorization: Optional[str] = None
    current: Optional[OutboundRequest] = None

    @classmethod
    def create(cls, request: CompositeRequest, authorization: Optional[str] = None) -> "RunContext":
        return cls(
            request=request,
            builder=CompositeResponseBuilder(show_debug=bool(request.debug)),
            authorization=forwarded_authorization(authorization),
        )

    def describe_current(self) -> str:
        return self.current.describe() if self.current else '"-" "-"'


class CompositeService:
    """
    Executes composite requests against an injected downstream client.

    The service holds no per-run state; every call to run() gets its own
    RunContext.
    """

    def __init__(self, client: DownstreamClient):
        self.client = client

    # ==================== Public API ====================

    async def run(self, request: CompositeRequest, authorization: Optional[str] = None) -> StringResponse:
        ctx = RunContext.create(request, authorization)

        try:
            status_code = await self._run_steps(ctx)
        except Exception as e:
            logger.exception(f"Error while processing request {ctx.describe_current()}: {e}")
            ctx.builder.append_debug_line(f"[FATAL ERROR] {ctx.describe_current()} thrown an exception: {e}")
            status_code = FailureKind.UNHANDLED.status_code

        return self._finish(ctx, status_code)

    # ==================== Steps ====================

    async def _run_steps(self, ctx: RunContext) -> int:
        """Run every step in order; returns the status of the whole run."""
        steps = ctx.request.requests
        if not steps:
            logger.warning("Composite request rejected: no requests")
            ctx.builder.append_debug_line("[ERROR] Composite request contains no requests")
            return 400

        for index, step in enumerate(steps, start=1):
            result = await self._run_step(ctx, index, step)
            if not result.ok:
                failure = result.failure
                logger.warning(f"Composite run stopped at request #{index}: {failure.kind.value} ({failure.message})")
                return failure.status_code

        return 200

    async def _run_step(self, ctx: RunContext, index: int, step: ApiRequest) -> StepResult:
        if not step.method or not step.endpoint:
            msg = f"Request #{index} is missing a method or an endpoint"
            logger.error(msg)
            ctx.builder.append_debug_line(f"[ERROR] {msg}")
            return StepResult.fail(FailureKind.VALIDATION, msg)

        name = step.foreach
        if not name or name not in ctx.variables:
            return await self._execute(ctx, step)

        aggregate = ctx.variables.get(name)
        elements = aggregate.elements()
        logger.info(f"foreach '{name}': {len(elements)} iteration(s)")

        try:
            for element in elements:
                ctx.variables.bind(name, Scalar(element))
                result = await self._execute(ctx, step)
                if not result.ok:
                    return result
        finally:
            ctx.variables.bind(name, aggregate)

        return StepResult.success()

    async def _execute(self, ctx: RunContext, step: ApiRequest) -> StepResult:
        """One downstream call: render, send, classify, extract."""
        store = ctx.variables.encoded()
        params = render_parameters(step.parameters, store)

        outbound = OutboundRequest(
            method=render(step.method, store, params).upper(),
            url=render(step.endpoint, store, params),
            json_body=params,
            authorization=ctx.authorization,
        )
        ctx.current = outbound

        logger.info(
            f"{outbound.method} request to \"{outbound.url}\" with values: "
            f"{json.dumps(redact_sensitive(params), default=str)}"
        )

        response = await self.client.send(outbound)
        outcome = f"{response.status_code} {response.reason_phrase}".strip()

        if not response.is_success:
            logger.error(f"Response returned from \"{outbound.url}\" with status code {response.status_code}")
            ctx.builder.append_debug_line(f"[ERROR] {outbound.describe()} ended up with {outcome}!")
            return StepResult.fail(
                FailureKind.DOWNSTREAM,
                f"{outbound.method} {outbound.url} returned {response.status_code}",
                downstream_status=response.status_code,
            )

        logger.info(f"Response returned from \"{outbound.url}\" with status code {response.status_code}")
        ctx.builder.append_debug_line(f"[SUCCESS] {outbound.describe()} ended up with {outcome}")

        if not step.returns:
            return StepResult.success()

        return self._bind_returns(ctx, step, params, response)

    def _bind_returns(
        self,
        ctx: RunContext,
        step: ApiRequest,
        params: Optional[Dict[str, Any]],
        response: DownstreamResponse,
    ) -> StepResult:
        document: Any = _NOT_PARSED

        for name, expression in step.returns.items():
            path = render(expression, ctx.variables.encoded(), params)
            try:
                if document is _NOT_PARSED:
                    document = parse_body(response.text)
                matches = select(document, path)
            except ExtractionFailed as e:
                logger.error(f"Returned parameter: {path} not found! ({e})")
                ctx.builder.append_debug_line(
                    f"[ERROR] {ctx.describe_current()} Could not find {path} Reason: {e}"
                )
                return StepResult.fail(FailureKind.EXTRACTION, f"could not evaluate {path}: {e}")

            if not matches:
                logger.debug(f"Returned parameter {name}: no match for {path}")
                continue

            value = merge_returned_value(ctx.variables.get(name), from_matches(matches), bool(step.foreach))
            ctx.variables.bind(name, value)
            ctx.builder.append_debug_line(f"[INFO] Returned parameter: {name} = {value.encode()}")

        return StepResult.success()

    # ==================== Output ====================

    def _finish(self, ctx: RunContext, status_code: int) -> StringResponse:
        ctx.builder.append_response_object(ctx.request.response, ctx.variables.encoded())
        return StringResponse(status_code=status_code, content=str(ctx.builder))
