# composite/errors.py
"""
Failure taxonomy for composite runs.

Step outcomes are values, not exceptions: every step produces a StepResult
that is either ok or carries a StepFailure. The orchestrator threads these
back to the top-level loop, which stops at the first failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureKind(Enum):
    """Classification of a failed step."""
    VALIDATION = "VALIDATION"
    EXTRACTION = "EXTRACTION"
    DOWNSTREAM = "DOWNSTREAM"
    UNHANDLED = "UNHANDLED"

    @property
    def status_code(self) -> int:
        """HTTP status the whole composite response carries for this failure."""
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND = {
    FailureKind.VALIDATION: 400,
    FailureKind.EXTRACTION: 400,
    FailureKind.DOWNSTREAM: 500,
    FailureKind.UNHANDLED: 500,
}


@dataclass(frozen=True)
class StepFailure:
    """Why a step stopped the run."""
    kind: FailureKind
    message: str
    downstream_status: Optional[int] = None

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class StepResult:
    """Outcome of executing one step (or one foreach iteration)."""
    failure: Optional[StepFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls) -> "StepResult":
        return cls()

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: str,
        downstream_status: Optional[int] = None,
    ) -> "StepResult":
        return cls(failure=StepFailure(kind, message, downstream_status))


class ExtractionFailed(Exception):
    """A JSONPath expression could not be evaluated (not the same as zero matches)."""
    pass
