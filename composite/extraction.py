# composite/extraction.py
"""JSONPath selection over parsed response bodies."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, List

from jsonpath_ng.ext import parse as jsonpath_parse

from composite.errors import ExtractionFailed


def normalize_expression(expression: str) -> str:
    """Root bare expressions: 'id' -> '$.id', '[0].id' -> '$[0].id'"""
    expr = (expression or "").strip()
    if not expr:
        raise ExtractionFailed("empty JSONPath expression")
    if expr.startswith("$"):
        return expr
    if expr.startswith("["):
        return "$" + expr
    return "$." + expr


@lru_cache(maxsize=256)
def _compile(expression: str):
    return jsonpath_parse(expression)


def select(document: Any, expression: str) -> List[Any]:
    """
    Evaluate expression against document.

    Returns matched values in document order; an empty list means no match.
    Raises ExtractionFailed when the expression itself cannot be evaluated.
    """
    normalized = normalize_expression(expression)
    try:
        compiled = _compile(normalized)
        return [match.value for match in compiled.find(document)]
    except Exception as e:
        raise ExtractionFailed(f"{type(e).__name__}: {e}") from e


def parse_body(text: str) -> Any:
    """Parse a downstream body as JSON; non-JSON bodies cannot be queried."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise ExtractionFailed(f"response body is not valid JSON: {e}") from e
