"""Resilient mapping from type references to output-language type tokens.

Resolution never fails: a reference that can't be classified degrades to a
forward-referenced user type (capitalized names) or a fixed default, so that a
single bad reference never stops a generation pass.
"""

import re
from dataclasses import dataclass
from enum import IntEnum, StrEnum, auto

from .log import get_logger
from .types import EntityKind, PrimitiveCategory, PrimitiveTypeDefinition, TypeReference

logger = get_logger("resolver")


class Notation(StrEnum):
    """Target notation for type tokens."""

    CPP = auto()
    SCHEMA = auto()


class Confidence(StrEnum):
    """How a token was obtained."""

    LINKED = auto()  # Reference was linked to a primitive or entity
    RECOVERED = auto()  # Unlinked, but the raw text named a known primitive
    ASSUMED = auto()  # Unlinked capitalized name, assumed to be a forward reference
    DEFAULT = auto()  # Nothing matched, fixed default substituted


class WireType(IntEnum):
    """Descriptor-level field types (values match FieldDescriptorProto.Type)."""

    DOUBLE = 1
    FLOAT = 2
    INT64 = 3
    UINT64 = 4
    INT32 = 5
    BOOL = 8
    STRING = 9
    MESSAGE = 11
    BYTES = 12
    UINT32 = 13
    ENUM = 14


# Alternate spellings accepted for the canonical primitive names
PRIMITIVE_ALIASES = {
    "boolean": "bool",
    "int": "int32",
    "uint": "uint32",
    "long": "int64",
    "ulong": "uint64",
    "short": "int16",
    "ushort": "uint16",
    "float": "float32",
    "double": "float64",
    "str": "string",
    "uint8_t": "uint8",
    "uint16_t": "uint16",
    "uint32_t": "uint32",
    "uint64_t": "uint64",
    "int8_t": "int8",
    "int16_t": "int16",
    "int32_t": "int32",
    "int64_t": "int64",
}

CPP_TYPE_MAP = {
    "bool": "bool",
    "int8": "int8_t",
    "int16": "int16_t",
    "int32": "int32_t",
    "int64": "int64_t",
    "uint8": "uint8_t",
    "uint16": "uint16_t",
    "uint32": "uint32_t",
    "uint64": "uint64_t",
    "float32": "float",
    "float64": "double",
    "string": "std::string",
    "byte": "uint8_t",
    "char": "char",
}

SCHEMA_TYPE_MAP = {
    "bool": "bool",
    "int8": "int32",
    "int16": "int32",
    "int32": "int32",
    "int64": "int64",
    "uint8": "uint32",
    "uint16": "uint32",
    "uint32": "uint32",
    "uint64": "uint64",
    "float32": "float",
    "float64": "double",
    "string": "string",
    "byte": "uint32",
    "char": "int32",
}

WIRE_TYPE_MAP = {
    "bool": WireType.BOOL,
    "int8": WireType.INT32,
    "int16": WireType.INT32,
    "int32": WireType.INT32,
    "int64": WireType.INT64,
    "uint8": WireType.UINT32,
    "uint16": WireType.UINT32,
    "uint32": WireType.UINT32,
    "uint64": WireType.UINT64,
    "float32": WireType.FLOAT,
    "float64": WireType.DOUBLE,
    "string": WireType.STRING,
    "byte": WireType.UINT32,
    "char": WireType.INT32,
}

UNSIGNED_WIDTHS = (8, 16, 32, 64)

DEFAULT_TOKENS = {
    Notation.CPP: "uint32_t",
    Notation.SCHEMA: "int32",
}

_TYPE_MAPS = {
    Notation.CPP: CPP_TYPE_MAP,
    Notation.SCHEMA: SCHEMA_TYPE_MAP,
}

# Trailing "{bits=12}" / "[4]" style annotations captured with the raw text
_MODIFIER_BLOCK = re.compile(r"\s*(\{[^{}]*\}|\[[^\[\]]*\])\s*$")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:(?:\.|::)[A-Za-z_][A-Za-z0-9_]*)*")


@dataclass(frozen=True)
class Resolution:
    """A resolved type token and how confident the resolver is in it."""

    token: str
    confidence: Confidence

    @property
    def is_fallback(self) -> bool:
        return self.confidence == Confidence.DEFAULT


@dataclass(frozen=True)
class WireResolution:
    """A resolved wire type, with the referenced type name for messages and enums."""

    wire_type: WireType
    type_name: str | None
    confidence: Confidence


def normalize_primitive_name(name: str) -> str:
    """Lowercase a primitive name and map alternate spellings to the canonical one."""
    lowered = name.strip().lower()
    return PRIMITIVE_ALIASES.get(lowered, lowered)


def strip_modifiers(raw_text: str) -> str:
    """Remove trailing modifier blocks: ``"uint16 {bits=12}"`` -> ``"uint16"``."""
    text = raw_text.strip()
    while True:
        stripped = _MODIFIER_BLOCK.sub("", text)
        if stripped == text:
            return text
        text = stripped


def unsigned_width_name(bit_length: int) -> str:
    """Smallest unsigned integer primitive that holds ``bit_length`` bits."""
    for width in UNSIGNED_WIDTHS:
        if bit_length <= width:
            return f"uint{width}"
    return "uint64"


def _is_forward_reference(name: str) -> bool:
    last = re.split(r"\.|::", name)[-1] if name else ""
    return bool(_IDENTIFIER.fullmatch(name)) and last[:1].isupper()


class TypeResolver:
    """Resolve type references for one target notation."""

    def __init__(self, notation: Notation = Notation.CPP):
        self.notation = notation
        self._types = _TYPE_MAPS[notation]

    @property
    def default_token(self) -> str:
        return DEFAULT_TOKENS[self.notation]

    def resolve(self, ref: TypeReference) -> str:
        """Map a reference to a non-empty type token."""
        return self.resolution(ref).token

    def resolution(self, ref: TypeReference) -> Resolution:
        """Map a reference to a type token, reporting how it was obtained."""
        if ref.primitive is not None:
            token = self._primitive_token(ref.primitive, ref.bit_length)
            if token is not None:
                return Resolution(token, Confidence.LINKED)
            if _is_forward_reference(ref.primitive.name):
                return Resolution(ref.primitive.name, Confidence.ASSUMED)
            logger.debug("Unknown primitive %r, using default", ref.primitive.name)
            return Resolution(self.default_token, Confidence.DEFAULT)

        if ref.entity is not None and ref.entity.name:
            return Resolution(ref.entity.name, Confidence.LINKED)

        name = strip_modifiers(ref.raw_text or "")
        token = self._name_token(name, ref.bit_length)
        if token is not None:
            return Resolution(token, Confidence.RECOVERED)

        if _is_forward_reference(name):
            logger.debug("Unlinked type %r assumed to be a forward reference", name)
            return Resolution(name, Confidence.ASSUMED)

        logger.debug("Unresolvable type %r, using default %s", ref.raw_text, self.default_token)
        return Resolution(self.default_token, Confidence.DEFAULT)

    def resolve_wire_type(self, ref: TypeReference) -> WireType:
        """Map a reference to its descriptor wire type."""
        return self.wire_resolution(ref).wire_type

    def wire_resolution(self, ref: TypeReference) -> WireResolution:
        """Map a reference to its wire type and, for messages and enums, the type name."""
        if ref.primitive is not None:
            primitive = ref.primitive
            if primitive.category == PrimitiveCategory.STRING:
                return WireResolution(WireType.STRING, None, Confidence.LINKED)
            name = self._canonical_name(primitive.name, primitive.bit_length or ref.bit_length)
            if name is not None:
                return WireResolution(WIRE_TYPE_MAP[name], None, Confidence.LINKED)
            confidence = (
                Confidence.ASSUMED if _is_forward_reference(primitive.name) else Confidence.DEFAULT
            )
            return WireResolution(WireType.MESSAGE, primitive.name, confidence)

        if ref.entity is not None and ref.entity.name:
            wire_type = WireType.ENUM if ref.entity.kind == EntityKind.ENUM else WireType.MESSAGE
            return WireResolution(wire_type, ref.entity.name, Confidence.LINKED)

        name = strip_modifiers(ref.raw_text or "")
        canonical = self._canonical_name(name, ref.bit_length)
        if canonical is not None:
            return WireResolution(WIRE_TYPE_MAP[canonical], None, Confidence.RECOVERED)

        if _is_forward_reference(name):
            return WireResolution(WireType.MESSAGE, name, Confidence.ASSUMED)

        logger.debug("Unclassified wire type for %r, using embedded message", ref.raw_text)
        return WireResolution(WireType.MESSAGE, name or None, Confidence.DEFAULT)

    def _primitive_token(self, primitive: PrimitiveTypeDefinition, hint: int | None) -> str | None:
        if primitive.category == PrimitiveCategory.STRING:
            return self._types["string"]
        return self._name_token(primitive.name, primitive.bit_length or hint)

    def _name_token(self, name: str, bit_length: int | None) -> str | None:
        canonical = self._canonical_name(name, bit_length)
        return self._types[canonical] if canonical is not None else None

    def _canonical_name(self, name: str, bit_length: int | None) -> str | None:
        normalized = normalize_primitive_name(name)
        if normalized in self._types:
            return normalized
        if bit_length is not None and bit_length > 0:
            return unsigned_width_name(bit_length)
        return None
