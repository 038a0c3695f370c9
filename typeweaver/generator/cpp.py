"""C++ header generator for typeweaver models."""

from .log import get_logger
from .numbering import check_field, enumerator_values
from .processor import TemplateProcessor
from .resolver import Notation, TypeResolver
from .types import (
    AliasDefinition,
    ArrayDefinition,
    AssemblyError,
    Entity,
    EnumDefinition,
    Field,
    Model,
    Package,
    StructDefinition,
    TypeReference,
    referenced_names,
)
from .util import RenderedFile, check_identifier, guard_name

logger = get_logger("cpp")


def doc_block(comment: str | None, indent: str = "") -> str:
    """Render a documentation comment as a ``/** ... */`` block."""
    if not comment or not comment.strip():
        return ""
    lines = [line.strip() for line in comment.strip().splitlines()]
    if len(lines) == 1:
        return f"{indent}/** {lines[0]} */\n"
    body = "".join(f"{indent} * {line}".rstrip() + "\n" for line in lines)
    return f"{indent}/**\n{body}{indent} */\n"


def namespace_of(package: Package | str | None) -> str | None:
    """C++ namespace for a package: ``com.example`` -> ``com::example``."""
    name = package.name if isinstance(package, Package) else package
    if not name:
        return None
    return "::".join(part for part in name.split(".") if part)


class CppAssembler:
    """Render entities of a model as C++ headers."""

    def __init__(self, processor: TemplateProcessor, model: Model, include_dir: str = "include"):
        self.processor = processor
        self.templates = processor.loader
        self.model = model
        self.include_dir = include_dir.strip("/")
        self.resolver = TypeResolver(Notation.CPP)
        self.warnings: list[str] = []

    def header_name(self, name: str, package: Package | str | None) -> str:
        """Header path relative to the include directory, e.g. ``com/example/Person.h``."""
        package_name = package.name if isinstance(package, Package) else package
        if not package_name:
            return f"{name}.h"
        subdir = "/".join(part for part in package_name.split(".") if part)
        return f"{subdir}/{name}.h"

    def render_header(self, entity: Entity, package: Package | None) -> RenderedFile:
        """Render the complete header file for one entity."""
        name = check_identifier(entity.name, "type")
        content = self.render_entity(entity)

        includes = ""
        for dependency in referenced_names(entity):
            if self.model.find(dependency) is None:
                continue
            include = self.header_name(dependency, self.model.locate(dependency))
            includes += f'#include "{include}"\n'

        namespace = namespace_of(package)
        header = self.templates.process(
            "cpp/header.h.tmpl",
            {
                "GUARD_NAME": guard_name(package.name if package else "", name),
                "INCLUDES": includes,
                "NAMESPACE_BEGIN": f"namespace {namespace} {{\n\n" if namespace else "",
                "CONTENT": content,
                "NAMESPACE_END": f"\n}} // namespace {namespace}\n" if namespace else "",
            },
        )
        return RenderedFile(f"{self.include_dir}/{self.header_name(name, package)}", header)

    def render_entity(self, entity: Entity) -> str:
        """Render the declaration of one entity (without the header around it)."""
        match entity:
            case StructDefinition():
                return self._render_struct(entity)
            case EnumDefinition():
                return self._render_enum(entity)
            case ArrayDefinition():
                return self._render_line("cpp/array.h.tmpl", entity, entity.element)
            case AliasDefinition():
                return self._render_line("cpp/alias.h.tmpl", entity, entity.aliased)
            case _:
                raise AssemblyError(f"Unknown entity type {type(entity).__name__}")

    def render_aggregate(self, headers: list[str], name: str = "AllTypes.h") -> RenderedFile:
        """Render a header that includes every generated header."""
        content = self.processor.render(
            "cpp/all_types.h.tmpl",
            {"guard": guard_name(name.rsplit(".", 1)[0]), "headers": headers},
        )
        return RenderedFile(f"{self.include_dir}/{name}", content)

    def _render_struct(self, struct: StructDefinition) -> str:
        fields = ""
        for f in struct.fields:
            try:
                fields += self._render_field(f)
            except AssemblyError as e:
                message = f"Skipping field {struct.name}.{f.name}: {e}"
                logger.warning(message)
                self.warnings.append(message)

        base = ""
        if struct.base:
            base = f" : public {check_identifier(struct.base, 'base')}"

        return self.templates.process(
            "cpp/struct.h.tmpl",
            {
                "COMMENT": doc_block(struct.comment),
                "STRUCT_NAME": struct.name,
                "BASE_CLASS": base,
                "FIELDS": fields,
            },
        )

    def _render_field(self, f: Field) -> str:
        check_field(f)
        field_type = self.resolver.resolve(f.type)
        array_decl = ""

        if f.array_size is not None:
            if f.array_size == 0:
                # Size 0 means variable length
                field_type = f"std::vector<{field_type}>"
            else:
                array_decl = f"[{f.array_size}]"

        return self.templates.process(
            "cpp/field.h.tmpl",
            {
                "COMMENT": doc_block(f.comment, "    "),
                "FIELD_TYPE": field_type,
                "FIELD_NAME": f.name,
                "ARRAY_DECL": array_decl,
            },
        )

    def _render_enum(self, enum: EnumDefinition) -> str:
        enumerators = ""
        for value in enumerator_values(enum):
            enumerators += self.templates.process(
                "cpp/enumerator.h.tmpl",
                {
                    "COMMENT": doc_block(value.comment, "    "),
                    "FIELD_NAME": check_identifier(value.name, "enumerator"),
                    "FIELD_NUMBER": value.value,
                },
            )

        return self.templates.process(
            "cpp/enum.h.tmpl",
            {
                "COMMENT": doc_block(enum.comment),
                "ENUM_NAME": enum.name,
                "ENUMERATORS": enumerators,
            },
        )

    def _render_line(
        self, template: str, entity: ArrayDefinition | AliasDefinition, ref: TypeReference
    ) -> str:
        return self.templates.process(
            template,
            {
                "COMMENT": doc_block(entity.comment),
                "TYPE_NAME": entity.name,
                "FIELD_TYPE": self.resolver.resolve(ref),
            },
        )
