# composite/models.py
"""
Composite request data shapes.

Inbound shapes are pydantic models so the HTTP layer can bind them directly.
Step fields are optional at the schema level: a step missing its method or
endpoint is reported by the orchestrator (400 + trace), not by pydantic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


# ==================== Inbound ====================

class ApiRequest(BaseModel):
    """One step of a composite request."""
    method: Optional[str] = Field(None, description="HTTP method; may contain {tokens}")
    endpoint: Optional[str] = Field(None, description="Absolute or base-relative URL template")
    parameters: Optional[Dict[str, Any]] = Field(
        None, description="Static values; also sent as the JSON body when present"
    )
    returns: Optional[Dict[str, str]] = Field(
        None,
        validation_alias=AliasChoices("returns", "variables"),
        description="variable name -> JSONPath expression",
    )
    foreach: Optional[str] = Field(None, description="Variable whose bound array drives iteration")

    @field_validator("foreach")
    @classmethod
    def _strip_braces(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if v.startswith("{") and v.endswith("}"):
            v = v[1:-1].strip()
        return v or None


class CompositeRequest(BaseModel):
    """Ordered steps, optional response template, debug flag."""
    requests: Optional[List[ApiRequest]] = None
    response: Optional[Any] = Field(None, description="Response template (string or JSON value)")
    debug: bool = False


# ==================== Outbound / Results ====================

@dataclass
class OutboundRequest:
    """Fully rendered downstream call."""
    method: str
    url: str
    json_body: Any = None
    authorization: Optional[str] = None

    def describe(self) -> str:
        return f'"{self.method}" "{self.url}"'


@dataclass
class DownstreamResponse:
    """What the orchestrator needs back from a downstream call."""
    status_code: int
    text: str = ""
    reason_phrase: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class StringResponse:
    """Final result of a run."""
    status_code: int
    content: str
