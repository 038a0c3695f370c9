"""Numbering rules shared by the schema text and the binary descriptor.

Keeping them in one place guarantees both outputs number enumerators and
message fields identically.
"""

from dataclasses import dataclass

from .types import (
    AssemblyError,
    EntityKind,
    EntityLink,
    EnumDefinition,
    Field,
    StructDefinition,
    TypeReference,
)
from .util import check_identifier

BASE_FIELD_NAME = "base"


@dataclass(frozen=True)
class EnumeratorValue:
    """An enumerator with its final numeric value."""

    name: str
    value: int
    comment: str | None = None
    synthesized: bool = False


@dataclass(frozen=True)
class NumberedField:
    """A message field with its final field number.

    ``field`` is None for the synthesized base-struct reference.
    """

    number: int
    name: str
    type: TypeReference
    repeated: bool
    comment: str | None = None
    field: Field | None = None


def unspecified_name(enum: EnumDefinition) -> str:
    return f"{enum.name.upper()}_UNSPECIFIED"


def enumerator_values(enum: EnumDefinition) -> list[EnumeratorValue]:
    """Apply the zero-default convention to an enum's enumerators.

    If no enumerator is explicitly 0, ``<ENUM>_UNSPECIFIED = 0`` is prepended
    and enumerators without a value take their position + 1; otherwise they
    take their position.
    """
    has_zero = any(e.value == 0 for e in enum.enumerators)
    offset = 0 if has_zero else 1

    values: list[EnumeratorValue] = []
    if not has_zero:
        values.append(EnumeratorValue(unspecified_name(enum), 0, synthesized=True))

    for index, enumerator in enumerate(enum.enumerators):
        value = enumerator.value if enumerator.value is not None else index + offset
        values.append(EnumeratorValue(enumerator.name, value, enumerator.comment))
    return values


def base_reference(struct: StructDefinition) -> TypeReference | None:
    if not struct.base:
        return None
    return TypeReference(raw_text=struct.base, entity=EntityLink(struct.base, EntityKind.STRUCT))


def check_field(f: Field) -> None:
    """Raise AssemblyError for a field that cannot be emitted."""
    check_identifier(f.name, "field")
    if f.array_size is not None and f.array_size < 0:
        raise AssemblyError(f"Invalid array size {f.array_size}")


def numbered_fields(
    struct: StructDefinition, skipped: list[str] | None = None
) -> list[NumberedField]:
    """Number a struct's fields from 1, reserving 1 for the base struct if any.

    Malformed fields (invalid name, negative array size) are left out and
    the remaining fields are numbered without gaps. A message for each
    skipped field is appended to ``skipped`` when given.
    """
    numbered: list[NumberedField] = []
    base = base_reference(struct)
    if base is not None:
        numbered.append(NumberedField(1, BASE_FIELD_NAME, base, repeated=False))

    for f in struct.fields:
        try:
            check_field(f)
        except AssemblyError as e:
            if skipped is not None:
                skipped.append(f"Skipping field {struct.name}.{f.name}: {e}")
            continue
        numbered.append(
            NumberedField(
                number=len(numbered) + 1,
                name=f.name,
                type=f.type,
                repeated=f.array_size is not None,
                comment=f.comment,
                field=f,
            )
        )
    return numbered
