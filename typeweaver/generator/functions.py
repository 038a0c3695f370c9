"""Functions callable from templates with ``{{CALL:name(args)}}``."""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from .util import to_camel_case, to_pascal_case, to_snake_case

TemplateFunction = Callable[..., str]


def _number(text: str) -> int | float:
    value = float(text)
    return int(value) if value.is_integer() else value


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _add(*args: str) -> str:
    return _format_number(sum(_number(a) for a in args))


def _sub(a: str, b: str) -> str:
    return _format_number(_number(a) - _number(b))


def _mul(*args: str) -> str:
    result: int | float = 1
    for a in args:
        result *= _number(a)
    return _format_number(result)


def _div(a: str, b: str) -> str:
    return _format_number(_number(a) / _number(b))


def _mod(a: str, b: str) -> str:
    return _format_number(_number(a) % _number(b))


def _timestamp(fmt: str = "") -> str:
    now = datetime.now(UTC)
    return now.strftime(fmt) if fmt else now.isoformat(timespec="seconds")


def _coalesce(*args: str) -> str:
    return next((a for a in args if a.strip()), "")


def _default(value: str = "", fallback: str = "") -> str:
    return value if value.strip() else fallback


class FunctionRegistry:
    """Name -> function table used to dispatch template calls."""

    def __init__(self, functions: dict[str, TemplateFunction] | None = None):
        self._functions: dict[str, TemplateFunction] = dict(functions or {})

    def register(self, name: str, function: TemplateFunction) -> None:
        self._functions[name] = function

    def get(self, name: str) -> TemplateFunction | None:
        return self._functions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def names(self) -> list[str]:
        return sorted(self._functions)


def default_functions() -> FunctionRegistry:
    """Registry with the built-in string, arithmetic and generator functions."""
    return FunctionRegistry(
        {
            "upper": lambda s="": s.upper(),
            "lower": lambda s="": s.lower(),
            "capitalize": lambda s="": s[:1].upper() + s[1:],
            "snake_case": lambda s="": to_snake_case(s),
            "camel_case": lambda s="": to_camel_case(s),
            "pascal_case": lambda s="": to_pascal_case(s),
            "trim": lambda s="": s.strip(),
            "replace": lambda s, old, new="": s.replace(old, new),
            "add": _add,
            "sub": _sub,
            "mul": _mul,
            "div": _div,
            "mod": _mod,
            "timestamp": _timestamp,
            "uuid": lambda: str(uuid.uuid4()),
            "coalesce": _coalesce,
            "first_non_empty": _coalesce,
            "default": _default,
        }
    )
