"""Type definitions for the linked data-type model consumed by the generators."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any

from dataclasses_json import DataClassJsonMixin, config


class GeneratorError(RuntimeError):
    """Base class for errors raised by the generators."""


class ModelError(GeneratorError):
    """Raised when a model cannot be built from its serialized form."""


class AssemblyError(GeneratorError):
    """Raised when an entity or field is too malformed to render."""


class PrimitiveCategory(StrEnum):
    """How a primitive type stores its value."""

    VALUE = auto()
    STRING = auto()
    FIXED = auto()


class EntityKind(StrEnum):
    """Discriminator for the entity variants."""

    STRUCT = auto()
    ENUM = auto()
    ARRAY = auto()
    ALIAS = auto()


@dataclass
class PrimitiveTypeDefinition(DataClassJsonMixin):
    """A primitive type declared in the model's primitive catalog."""

    name: str
    category: PrimitiveCategory = PrimitiveCategory.VALUE
    bit_length: int | None = None
    encoding: str | None = None


@dataclass
class EntityLink(DataClassJsonMixin):
    """The linked side of a reference to a user-defined entity."""

    name: str
    kind: EntityKind = EntityKind.STRUCT


@dataclass
class TypeReference(DataClassJsonMixin):
    """A usage-site mention of a type.

    The upstream parser always fills in ``raw_text``, even when linking failed,
    so that resolution can recover from a missing link:

    - primitive set: linked to a primitive of the catalog
    - entity set: linked to a struct/enum/array/alias
    - neither: unresolved, only ``raw_text`` (and maybe ``bit_length``) is known
    """

    raw_text: str
    primitive: PrimitiveTypeDefinition | None = None
    entity: EntityLink | None = None
    bit_length: int | None = None


@dataclass
class Field(DataClassJsonMixin):
    """A member of a struct.

    For arrays:
    - array_size=N: fixed-size array of N elements
    - array_size=None: not an array
    """

    name: str
    type: TypeReference
    array_size: int | None = None
    comment: str | None = None


@dataclass
class Enumerator(DataClassJsonMixin):
    """A single enum value, optionally with an explicit number."""

    name: str
    value: int | None = None
    comment: str | None = None


@dataclass
class StructDefinition(DataClassJsonMixin):
    """A struct type definition, optionally extending a base struct."""

    name: str
    fields: list[Field] = field(default_factory=list)
    base: str | None = None
    comment: str | None = None
    kind: EntityKind = field(default=EntityKind.STRUCT, repr=False)


@dataclass
class EnumDefinition(DataClassJsonMixin):
    """An enum type definition."""

    name: str
    enumerators: list[Enumerator] = field(default_factory=list)
    comment: str | None = None
    kind: EntityKind = field(default=EntityKind.ENUM, repr=False)


@dataclass
class ArrayDefinition(DataClassJsonMixin):
    """A named array of an element type."""

    name: str
    element: TypeReference
    comment: str | None = None
    kind: EntityKind = field(default=EntityKind.ARRAY, repr=False)


@dataclass
class AliasDefinition(DataClassJsonMixin):
    """A named alias for another type."""

    name: str
    aliased: TypeReference
    comment: str | None = None
    kind: EntityKind = field(default=EntityKind.ALIAS, repr=False)


Entity = StructDefinition | EnumDefinition | ArrayDefinition | AliasDefinition

_ENTITY_CLASSES: dict[EntityKind, type[DataClassJsonMixin]] = {
    EntityKind.STRUCT: StructDefinition,
    EntityKind.ENUM: EnumDefinition,
    EntityKind.ARRAY: ArrayDefinition,
    EntityKind.ALIAS: AliasDefinition,
}


def _decode_entity(data: Any) -> Entity:
    if isinstance(data, StructDefinition | EnumDefinition | ArrayDefinition | AliasDefinition):
        return data
    if not isinstance(data, dict):
        raise ModelError(f"Entity must be an object, got {type(data).__name__}")
    try:
        kind = EntityKind(data["kind"])
    except (KeyError, ValueError) as e:
        raise ModelError(f"Entity {data.get('name', '?')!r} has no valid kind") from e
    return _ENTITY_CLASSES[kind].from_dict(data)  # type: ignore[return-value]


def _decode_entities(data: Any) -> list[Entity]:
    return [_decode_entity(item) for item in data or []]


@dataclass
class Package(DataClassJsonMixin):
    """A named group of entities. Purely a namespacing construct."""

    name: str
    entities: list[Entity] = field(
        default_factory=list, metadata=config(decoder=_decode_entities)
    )


@dataclass
class Model(DataClassJsonMixin):
    """A complete, linked model: primitive catalog, root entities and packages."""

    name: str = "types"
    primitives: list[PrimitiveTypeDefinition] = field(default_factory=list)
    entities: list[Entity] = field(
        default_factory=list, metadata=config(decoder=_decode_entities)
    )
    packages: list[Package] = field(default_factory=list)

    def iter_entities(self) -> Iterator[tuple[Package | None, Entity]]:
        """Yield every entity with its owning package, root entities first."""
        for entity in self.entities:
            yield None, entity
        for package in self.packages:
            for entity in package.entities:
                yield package, entity

    def locate(self, name: str) -> str | None:
        """Return the name of the package declaring ``name`` (None for root or unknown)."""
        for package, entity in self.iter_entities():
            if entity.name == name:
                return package.name if package else None
        return None

    def find(self, name: str) -> Entity | None:
        """Return the entity declared as ``name``, searching root first."""
        for _package, entity in self.iter_entities():
            if entity.name == name:
                return entity
        return None


def load_model(data: dict[str, Any]) -> Model:
    """Build a model from its JSON-compatible dict form."""
    if not isinstance(data, dict):
        raise ModelError("Model must be a JSON object")
    try:
        return Model.from_dict(data)
    except ModelError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ModelError(f"Invalid model: {e}") from e


def referenced_names(entity: Entity) -> list[str]:
    """Names of other types an entity refers to, in first-use order.

    Linked entity references contribute their name; unlinked references
    contribute their raw text, which callers check against the model.
    """
    names: list[str] = []
    refs: list[TypeReference] = []
    match entity:
        case StructDefinition(base=base, fields=fields):
            if base:
                names.append(base)
            refs = [f.type for f in fields]
        case ArrayDefinition(element=element):
            refs = [element]
        case AliasDefinition(aliased=aliased):
            refs = [aliased]
        case _:
            pass

    for ref in refs:
        if ref.entity is not None:
            names.append(ref.entity.name)
        elif ref.primitive is None and ref.raw_text:
            names.append(ref.raw_text.strip())
    return list(dict.fromkeys(n for n in names if n and n != entity.name))
