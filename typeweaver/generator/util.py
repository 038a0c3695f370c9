"""Identifier helpers shared by the generators and template functions."""

import re
from dataclasses import dataclass

from .types import AssemblyError

_LOWER_UPPER_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WORD_SPLIT = re.compile(r"[_\-\s]+")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class RenderedFile:
    """A generated text file, ``path`` relative to the output directory."""

    path: str
    content: str


def to_snake_case(name: str) -> str:
    """Convert camelCase to snake_case: ``employeeId`` -> ``employee_id``."""
    return _LOWER_UPPER_BOUNDARY.sub(r"\1_\2", name).lower()


def to_camel_case(name: str) -> str:
    """Convert snake_case (or kebab/space separated words) to camelCase."""
    words = [w for w in _WORD_SPLIT.split(name) if w]
    if not words:
        return ""
    return words[0][:1].lower() + words[0][1:] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def to_pascal_case(name: str) -> str:
    """Convert snake_case (or kebab/space separated words) to PascalCase."""
    return "".join(w[:1].upper() + w[1:] for w in _WORD_SPLIT.split(name) if w)


def guard_name(*parts: str) -> str:
    """Include guard from path parts: ``("a.b", "Person")`` -> ``A_B_PERSON_H``."""
    joined = "_".join(p for p in parts if p)
    return re.sub(r"[^A-Za-z0-9]+", "_", joined).upper() + "_H"


def check_identifier(name: str | None, what: str) -> str:
    """Return ``name`` if it is a valid identifier, else raise AssemblyError."""
    if not name or not _IDENTIFIER.fullmatch(name):
        raise AssemblyError(f"Invalid {what} name {name!r}")
    return name
