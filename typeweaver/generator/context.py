"""Structured variable bindings for the extended template processor.

Values are limited to strings, numbers, booleans, lists of values and nested
contexts. Dotted paths (``struct.fields.0.name``) resolve by key and index
traversal only.
"""

from collections.abc import Iterator, Mapping
from typing import Any, Union

ContextValue = Union[str, int, float, bool, list["ContextValue"], "RenderContext"]


def _convert(value: Any) -> ContextValue:
    if isinstance(value, RenderContext):
        return value
    if isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, Mapping):
        return RenderContext.from_mapping(value)
    if isinstance(value, list | tuple):
        return [_convert(v) for v in value]
    raise TypeError(f"Unsupported context value of type {type(value).__name__}")


class RenderContext(Mapping[str, ContextValue]):
    """Ordered, immutable mapping of template variables."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, ContextValue] | None = None):
        self._values: dict[str, ContextValue] = dict(values or {})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None = None, **kwargs: Any) -> "RenderContext":
        """Build a context from plain Python data, converting nested dicts and lists."""
        merged = {**(data or {}), **kwargs}
        return cls({str(k): _convert(v) for k, v in merged.items()})

    def child(self, **bindings: Any) -> "RenderContext":
        """Return a new context with ``bindings`` added on top of this one."""
        values = dict(self._values)
        values.update({k: _convert(v) for k, v in bindings.items()})
        return RenderContext(values)

    def lookup(self, path: str) -> ContextValue | None:
        """Resolve a dotted path; None if any step is missing."""
        current: ContextValue | None = self
        for part in path.split("."):
            if isinstance(current, RenderContext):
                if part not in current._values:
                    return None
                current = current._values[part]
            elif isinstance(current, list) and part.isdigit():
                index = int(part)
                if index >= len(current):
                    return None
                current = current[index]
            else:
                return None
        return current

    def __getitem__(self, key: str) -> ContextValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"RenderContext({self._values!r})"


def render_value(value: ContextValue | None) -> str:
    """Text form of a context value as substituted into templates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ", ".join(render_value(v) for v in value)
    if isinstance(value, RenderContext):
        return ", ".join(f"{k}={render_value(v)}" for k, v in value.items())
    return str(value)


def is_truthy(value: ContextValue | None) -> bool:
    """Truthiness used by template conditions."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0")
    return len(value) > 0
