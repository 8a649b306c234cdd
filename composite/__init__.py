# composite/__init__.py
"""
Composite request engine.

One inbound call, an ordered chain of downstream HTTP calls, values threaded
between them through {name} templates.
"""

from composite.downstream import DownstreamClient, HttpxDownstreamClient
from composite.errors import FailureKind, StepFailure, StepResult
from composite.models import ApiRequest, CompositeRequest, StringResponse
from composite.orchestrator import CompositeService, RunContext

__all__ = [
    "ApiRequest",
    "CompositeRequest",
    "CompositeService",
    "DownstreamClient",
    "FailureKind",
    "HttpxDownstreamClient",
    "RunContext",
    "StepFailure",
    "StepResult",
    "StringResponse",
]
