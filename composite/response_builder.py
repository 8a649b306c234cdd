# composite/response_builder.py
"""Debug trace + final payload rendering for a composite run."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional


class CompositeResponseBuilder:
    """
    Collects the optional debug trace and renders the response body.

    Trace lines are only kept when show_debug is set. The body is either the
    caller's response template with variables substituted, or a JSON object
    of every bound variable.
    """

    def __init__(self, show_debug: bool = False):
        self.show_debug = show_debug
        self._lines: List[str] = []

    def append_debug_line(self, text: str) -> None:
        if self.show_debug:
            self._lines.append(text)

    def append_response_object(
        self,
        template: Any,
        variables: Optional[Dict[str, str]] = None,
    ) -> None:
        variables = variables or {}
        self.append_debug_line("[RESPONSE]")

        if template is None:
            self._lines.append(_dump_variables(variables))
            return

        rendered = template if isinstance(template, str) else json.dumps(template, indent=2, ensure_ascii=False)
        for name, value in variables.items():
            rendered = (
                rendered.replace(f'"{{{name}}}"', value)  # quoted form first
                .replace(f"{{{name}}}", value)
            )
        self._lines.append(rendered)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def __str__(self) -> str:
        return "".join(line + "\n" for line in self._lines)


def _dump_variables(variables: Dict[str, str]) -> str:
    parsed: Dict[str, Any] = {}
    for name, value in variables.items():
        try:
            decoded = json.loads(value)
        except (TypeError, ValueError):
            decoded = None
        parsed[name] = value if decoded is None else decoded
    return json.dumps(parsed, indent=2, ensure_ascii=False)
