"""Binary schema descriptor generation.

The descriptor graph mirrors the schema text (one file per grouping, one
message per struct/array/alias, one enum per enum) and serializes to a
``google.protobuf.FileDescriptorSet`` that can be loaded for reflection
without parsing any text.
"""

from dataclasses import dataclass, field
from enum import IntEnum

from google.protobuf import descriptor_pb2

from .context import RenderContext
from .log import get_logger
from .numbering import enumerator_values, numbered_fields
from .processor import TemplateProcessor
from .resolver import Notation, TypeResolver, WireType
from .schema import schema_file_name
from .types import (
    AliasDefinition,
    ArrayDefinition,
    AssemblyError,
    Entity,
    EnumDefinition,
    Model,
    Package,
    StructDefinition,
    TypeReference,
    referenced_names,
)
from .util import check_identifier, to_snake_case

logger = get_logger("descriptor")


class Label(IntEnum):
    """Field cardinality (values match FieldDescriptorProto.Label)."""

    SINGULAR = 1
    REPEATED = 3


@dataclass
class FieldNode:
    name: str
    number: int
    label: Label
    wire_type: WireType
    type_name: str | None = None


@dataclass
class MessageNode:
    name: str
    fields: list[FieldNode] = field(default_factory=list)


@dataclass
class EnumValueNode:
    name: str
    number: int


@dataclass
class EnumNode:
    name: str
    values: list[EnumValueNode] = field(default_factory=list)


@dataclass
class FileNode:
    name: str
    package: str | None = None
    dependencies: list[str] = field(default_factory=list)
    messages: list[MessageNode] = field(default_factory=list)
    enums: list[EnumNode] = field(default_factory=list)


@dataclass
class DescriptorSet:
    """In-memory descriptor graph for one generation pass."""

    files: list[FileNode] = field(default_factory=list)

    def file(self, name: str) -> FileNode | None:
        return next((f for f in self.files if f.name == name), None)

    def message(self, name: str) -> MessageNode | None:
        return next((m for f in self.files for m in f.messages if m.name == name), None)

    def enum(self, name: str) -> EnumNode | None:
        return next((e for f in self.files for e in f.enums if e.name == name), None)

    def to_proto(self) -> descriptor_pb2.FileDescriptorSet:
        """Convert the graph to protobuf descriptor messages."""
        descriptor_set = descriptor_pb2.FileDescriptorSet()
        for node in self.files:
            file_proto = descriptor_set.file.add()
            file_proto.name = node.name
            file_proto.syntax = "proto3"
            if node.package:
                file_proto.package = node.package
            file_proto.dependency.extend(node.dependencies)

            for message in node.messages:
                message_proto = file_proto.message_type.add()
                message_proto.name = message.name
                for f in message.fields:
                    field_proto = message_proto.field.add()
                    field_proto.name = f.name
                    field_proto.number = f.number
                    field_proto.label = int(f.label)
                    field_proto.type = int(f.wire_type)
                    if f.type_name:
                        field_proto.type_name = f.type_name

            for enum in node.enums:
                enum_proto = file_proto.enum_type.add()
                enum_proto.name = enum.name
                for value in enum.values:
                    value_proto = enum_proto.value.add()
                    value_proto.name = value.name
                    value_proto.number = value.number

        return descriptor_set

    def serialize(self) -> bytes:
        """Canonical binary form of the descriptor set."""
        return self.to_proto().SerializeToString(deterministic=True)


class DescriptorBuilder:
    """Build a descriptor graph from a model."""

    def __init__(self, resolver: TypeResolver | None = None):
        self.resolver = resolver or TypeResolver(Notation.SCHEMA)
        self.warnings: list[str] = []

    def build(self, model: Model) -> DescriptorSet:
        """Build one file node for the root model and one per package."""
        files = [self._build_file(model, None)]
        files.extend(self._build_file(model, package) for package in model.packages)
        return DescriptorSet(files)

    def _build_file(self, model: Model, package: Package | None) -> FileNode:
        entities = package.entities if package else model.entities
        own = package.name if package else None
        node = FileNode(schema_file_name(model, package), own)

        for entity in entities:
            try:
                self._add_entity(model, node, entity)
            except AssemblyError as e:
                message = f"Skipping {entity.kind} {entity.name} in descriptor: {e}"
                logger.warning(message)
                self.warnings.append(message)

            for dependency in referenced_names(entity):
                if model.find(dependency) is None:
                    continue
                owner = model.locate(dependency)
                dependency_file = schema_file_name(model, owner)
                if owner != own and dependency_file not in node.dependencies:
                    node.dependencies.append(dependency_file)

        return node

    def _add_entity(self, model: Model, node: FileNode, entity: Entity) -> None:
        name = check_identifier(entity.name, "type")
        match entity:
            case StructDefinition():
                message = MessageNode(name)
                skipped: list[str] = []
                for numbered in numbered_fields(entity, skipped):
                    field_name = to_snake_case(numbered.name)
                    label = Label.REPEATED if numbered.repeated else Label.SINGULAR
                    message.fields.append(
                        self._field(model, field_name, numbered.number, label, numbered.type)
                    )
                for warning in skipped:
                    message_text = f"{warning} (descriptor)"
                    logger.warning(message_text)
                    self.warnings.append(message_text)
                node.messages.append(message)
            case EnumDefinition():
                values = [
                    EnumValueNode(check_identifier(v.name, "enumerator"), v.value)
                    for v in enumerator_values(entity)
                ]
                node.enums.append(EnumNode(name, values))
            case ArrayDefinition():
                wrapper = self._field(model, "values", 1, Label.REPEATED, entity.element)
                node.messages.append(MessageNode(name, [wrapper]))
            case AliasDefinition():
                wrapper = self._field(model, "value", 1, Label.SINGULAR, entity.aliased)
                node.messages.append(MessageNode(name, [wrapper]))
            case _:
                raise AssemblyError(f"Unknown entity type {type(entity).__name__}")

    def _field(
        self, model: Model, name: str, number: int, label: Label, ref: TypeReference
    ) -> FieldNode:
        resolution = self.resolver.wire_resolution(ref)
        wire_type = resolution.wire_type
        type_name = None
        if wire_type in (WireType.MESSAGE, WireType.ENUM):
            target = model.find(resolution.type_name) if resolution.type_name else None
            if isinstance(target, EnumDefinition):
                wire_type = WireType.ENUM
            elif target is not None:
                wire_type = WireType.MESSAGE
            type_name = self._type_name(model, resolution.type_name)
        return FieldNode(name, number, label, wire_type, type_name)

    def _type_name(self, model: Model, name: str | None) -> str | None:
        if not name:
            return None
        if model.find(name) is None:
            return name
        owner = model.locate(name)
        return f".{owner}.{name}" if owner else f".{name}"


INFO_TEMPLATE = "info/descriptor.txt.tmpl"


def render_info(
    processor: TemplateProcessor,
    descriptor_set: DescriptorSet,
    name: str,
    data: bytes,
    channel: str = "primary",
    path: str | None = None,
) -> str:
    """Render the companion info document for a serialized descriptor set."""
    context = RenderContext.from_mapping(
        name=name,
        size=len(data),
        channel=channel,
        path=path or "",
        files=[
            {
                "name": f.name,
                "package": f.package or "",
                "messages": [{"name": m.name, "field_count": len(m.fields)} for m in f.messages],
                "enums": [{"name": e.name, "value_count": len(e.values)} for e in f.enums],
            }
            for f in descriptor_set.files
        ],
    )
    return processor.render(INFO_TEMPLATE, context)
