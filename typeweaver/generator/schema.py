"""Protobuf-style schema text generator for typeweaver models."""

import re

from .log import get_logger
from .numbering import NumberedField, enumerator_values, numbered_fields
from .processor import TemplateProcessor
from .resolver import Notation, TypeResolver
from .types import (
    AliasDefinition,
    ArrayDefinition,
    AssemblyError,
    Entity,
    EnumDefinition,
    Model,
    Package,
    StructDefinition,
    referenced_names,
)
from .util import RenderedFile, check_identifier, to_snake_case

logger = get_logger("schema")

_BARE_OPTION_VALUE = re.compile(r"[A-Z_][A-Z0-9_]*|true|false|-?\d+(\.\d+)?")


def line_comment(comment: str | None, indent: str = "") -> str:
    """Render a documentation comment as ``//`` lines."""
    if not comment or not comment.strip():
        return ""
    lines = comment.strip().splitlines()
    return "".join(f"{indent}// {line.strip()}".rstrip() + "\n" for line in lines)


def schema_file_name(model: Model, package: Package | str | None) -> str:
    """Schema file for a grouping: ``<package>.proto``, or ``<model>.proto`` for root."""
    name = package.name if isinstance(package, Package) else package
    return f"{name}.proto" if name else f"{model.name}.proto"


def _option_value(value: str) -> str:
    if _BARE_OPTION_VALUE.fullmatch(value):
        return value
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class SchemaAssembler:
    """Render model groupings (root and packages) as schema text files."""

    def __init__(
        self,
        processor: TemplateProcessor,
        model: Model,
        options: dict[str, str] | None = None,
        schema_dir: str = "proto",
    ):
        self.processor = processor
        self.templates = processor.loader
        self.model = model
        self.options = options or {}
        self.schema_dir = schema_dir.strip("/")
        self.resolver = TypeResolver(Notation.SCHEMA)
        self.warnings: list[str] = []

    def imports(self, package: Package | None) -> list[str]:
        """Schema files that a grouping depends on, in first-use order."""
        entities = package.entities if package else self.model.entities
        own = package.name if package else None
        files: list[str] = []
        for entity in entities:
            for dependency in referenced_names(entity):
                if self.model.find(dependency) is None:
                    continue
                owner = self.model.locate(dependency)
                if owner != own:
                    files.append(schema_file_name(self.model, owner))
        return list(dict.fromkeys(files))

    def render_file(self, package: Package | None) -> RenderedFile:
        """Render the schema file for the root model (package None) or one package."""
        entities = package.entities if package else self.model.entities

        blocks: list[str] = []
        for entity in entities:
            try:
                blocks.append(self.render_entity(entity))
            except AssemblyError as e:
                message = f"Skipping {entity.kind} {entity.name}: {e}"
                logger.warning(message)
                self.warnings.append(message)

        imports = "".join(f'import "{name}";\n' for name in self.imports(package))
        options = "".join(
            f"option {key} = {_option_value(str(value))};\n" for key, value in self.options.items()
        )

        content = self.templates.process(
            "schema/file.proto.tmpl",
            {
                "PACKAGE": f"package {package.name};\n\n" if package else "",
                "IMPORTS": imports + "\n" if imports else "",
                "OPTIONS": options + "\n" if options else "",
                "CONTENT": "\n".join(blocks),
            },
        )
        return RenderedFile(f"{self.schema_dir}/{schema_file_name(self.model, package)}", content)

    def render_entity(self, entity: Entity) -> str:
        """Render the schema block for one entity."""
        check_identifier(entity.name, "type")
        match entity:
            case StructDefinition():
                return self._render_message(entity)
            case EnumDefinition():
                return self._render_enum(entity)
            case ArrayDefinition():
                return self.templates.process(
                    "schema/array.proto.tmpl",
                    {
                        "COMMENT": line_comment(entity.comment),
                        "MESSAGE_NAME": entity.name,
                        "FIELD_TYPE": self.resolver.resolve(entity.element),
                    },
                )
            case AliasDefinition():
                return self.templates.process(
                    "schema/alias.proto.tmpl",
                    {
                        "COMMENT": line_comment(entity.comment),
                        "MESSAGE_NAME": entity.name,
                        "FIELD_TYPE": self.resolver.resolve(entity.aliased),
                    },
                )
            case _:
                raise AssemblyError(f"Unknown entity type {type(entity).__name__}")

    def _render_message(self, struct: StructDefinition) -> str:
        skipped: list[str] = []
        fields = "".join(self._render_field(n) for n in numbered_fields(struct, skipped))
        for message in skipped:
            logger.warning(message)
        self.warnings.extend(skipped)

        return self.templates.process(
            "schema/message.proto.tmpl",
            {
                "COMMENT": line_comment(struct.comment),
                "MESSAGE_NAME": struct.name,
                "FIELDS": fields,
            },
        )

    def _render_field(self, numbered: NumberedField) -> str:
        return self.templates.process(
            "schema/field.proto.tmpl",
            {
                "COMMENT": line_comment(numbered.comment, "  "),
                "REPEATED": "repeated " if numbered.repeated else "",
                "FIELD_TYPE": self.resolver.resolve(numbered.type),
                "FIELD_NAME": to_snake_case(numbered.name),
                "FIELD_NUMBER": numbered.number,
            },
        )

    def _render_enum(self, enum: EnumDefinition) -> str:
        enumerators = ""
        for value in enumerator_values(enum):
            enumerators += self.templates.process(
                "schema/enumerator.proto.tmpl",
                {
                    "COMMENT": line_comment(value.comment, "  "),
                    "FIELD_NAME": check_identifier(value.name, "enumerator"),
                    "FIELD_NUMBER": value.value,
                },
            )

        return self.templates.process(
            "schema/enum.proto.tmpl",
            {
                "COMMENT": line_comment(enum.comment),
                "ENUM_NAME": enum.name,
                "ENUMERATORS": enumerators,
            },
        )
