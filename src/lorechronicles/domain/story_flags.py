"""Typed story flag map stored on a session.

Keys live in two namespaces:

* plain keys (``"met_ferryman"``) are story flags set by authored or
  interpreted effects;
* ``free_text:<node_id>`` keys hold the player's recorded free-text answer
  for that node.

Values are limited to ``bool``, ``int`` and ``str`` so the map survives a
JSON round trip unchanged.
"""
from __future__ import annotations

from typing import Dict, Iterator, Mapping, Union

FlagValue = Union[bool, int, str]

FREE_TEXT_PREFIX = "free_text:"


def free_text_key(node_id: str) -> str:
    return f"{FREE_TEXT_PREFIX}{node_id}"


class StoryFlags(Mapping[str, FlagValue]):
    """Read-only mapping; updates go through :meth:`merged`."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, object] | None = None) -> None:
        self._values: Dict[str, FlagValue] = {}
        for key, value in (values or {}).items():
            self._values[_require_key(key)] = _require_value(key, value)

    def __getitem__(self, key: str) -> FlagValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StoryFlags):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"StoryFlags({self._values!r})"

    def merged(self, updates: Mapping[str, object]) -> "StoryFlags":
        """Shallow-merge ``updates`` over the current values."""
        combined: Dict[str, object] = dict(self._values)
        combined.update(updates)
        return StoryFlags(combined)

    def free_text_responses(self) -> Dict[str, str]:
        """Return recorded free-text answers keyed by node id."""
        return {
            key[len(FREE_TEXT_PREFIX):]: str(value)
            for key, value in self._values.items()
            if key.startswith(FREE_TEXT_PREFIX)
        }

    def as_dict(self) -> Dict[str, FlagValue]:
        return dict(self._values)


def _require_key(key: object) -> str:
    if not isinstance(key, str) or not key.strip():
        raise ValueError("Story flag keys must be non-empty strings.")
    return key


def _require_value(key: str, value: object) -> FlagValue:
    if not isinstance(value, (bool, int, str)):
        raise ValueError(f"Story flag '{key}' must be a bool, int or string.")
    return value
