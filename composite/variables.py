# composite/variables.py
"""
Variable Store: run-scoped bindings threaded between steps.

Values are tagged (Scalar or ListValue). Both have a single external wire
form, the string that gets substituted into templates:

- Scalar("42")            -> 42
- ListValue(["1", "2"])   -> ["1", "2"]

Lists are encoded as real JSON arrays, so quotes inside items are escaped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Scalar:
    """Single string value."""
    text: str

    def encode(self) -> str:
        return self.text

    def elements(self) -> List[str]:
        """Items to iterate when this value drives a foreach."""
        return decode_array(self.text)


@dataclass(frozen=True)
class ListValue:
    """Ordered list of string values."""
    items: Tuple[str, ...]

    def encode(self) -> str:
        return encode_array(self.items)

    def elements(self) -> List[str]:
        return list(self.items)

    def appended(self, item: str) -> "ListValue":
        return ListValue(self.items + (item,))


VariableValue = Union[Scalar, ListValue]


# ==================== Wire Encoding ====================

def json_text(value: Any) -> str:
    """String form of a JSON value as it is bound to a variable."""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False)


def encode_array(items: Union[List[str], Tuple[str, ...]]) -> str:
    """Encode items as a JSON array of strings: ["a", "b"]"""
    return json.dumps(list(items), ensure_ascii=False)


def decode_array(text: str) -> List[str]:
    """
    Decode a JSON array into its items as strings.

    Anything that is not a JSON array decodes to a single-element list
    holding the literal text.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return [text]

    if not isinstance(parsed, list):
        return [text]

    return [json_text(item) for item in parsed]


def from_matches(matches: List[Any]) -> VariableValue:
    """Bind one match as a Scalar, several as a ListValue (document order)."""
    if len(matches) == 1:
        return Scalar(json_text(matches[0]))
    return ListValue(tuple(json_text(m) for m in matches))


# ==================== Binding Policy ====================

def merge_returned_value(
    existing: Optional[VariableValue],
    returned: VariableValue,
    step_has_foreach: bool,
) -> VariableValue:
    """
    Decide the new binding for a variable a step just returned.

    A single returned value is appended to an existing binding only when the
    current step iterates (non-empty foreach), whatever produced the existing
    binding. Every other case overwrites.
    """
    if existing is None or not step_has_foreach or not isinstance(returned, Scalar):
        return returned

    if isinstance(existing, ListValue):
        return existing.appended(returned.text)

    # array-shaped text splices; anything else becomes the first item
    if _is_json_array(existing.text):
        return ListValue(tuple(decode_array(existing.text)) + (returned.text,))

    return ListValue((existing.text, returned.text))


def _is_json_array(text: str) -> bool:
    try:
        return isinstance(json.loads(text), list)
    except (TypeError, ValueError):
        return False


# ==================== Store ====================

class VariableStore:
    """Insertion-ordered name -> VariableValue mapping for one run."""

    def __init__(self):
        self._values: Dict[str, VariableValue] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def get(self, name: str) -> Optional[VariableValue]:
        return self._values.get(name)

    def bind(self, name: str, value: VariableValue) -> None:
        self._values[name] = value

    def encoded(self) -> Dict[str, str]:
        """Wire form of every binding, in binding order."""
        return {name: value.encode() for name, value in self._values.items()}
