# composite/templating.py
"""
{name} placeholder substitution.

Scopes are plain name -> string mappings applied left to right. Tokens that
no scope knows about are left in place, so optional placeholders never raise.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional


def render(template: str, *scopes: Optional[Mapping[str, Any]]) -> str:
    """Replace {name} tokens from each scope in turn."""
    if template is None:
        return template

    out = str(template)
    for scope in scopes:
        if not scope:
            continue
        for name, value in scope.items():
            out = out.replace("{" + str(name) + "}", _as_text(value))
    return out


def render_value(value: Any, *scopes: Optional[Mapping[str, Any]]) -> Any:
    """Render strings inside nested dicts/lists; dict keys are rendered too."""
    if value is None:
        return None

    if isinstance(value, str):
        return render(value, *scopes)

    if isinstance(value, dict):
        return {render(str(k), *scopes): render_value(v, *scopes) for k, v in value.items()}

    if isinstance(value, list):
        return [render_value(v, *scopes) for v in value]

    return value


def render_parameters(
    parameters: Optional[Dict[str, Any]],
    variables: Mapping[str, str],
) -> Optional[Dict[str, Any]]:
    """Render a step's static parameters against the variable scope (single pass)."""
    if parameters is None:
        return None
    return render_value(parameters, variables)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
