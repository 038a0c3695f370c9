"""Generation pass: model in, C++ headers, schema text and descriptor out."""

from dataclasses import dataclass, field
from pathlib import Path

from .config import GeneratorConfig
from .cpp import CppAssembler
from .descriptor import DescriptorBuilder, DescriptorSet, render_info
from .functions import default_functions
from .log import get_logger
from .processor import TemplateProcessor
from .resolver import Notation, TypeResolver
from .schema import SchemaAssembler
from .templates import TemplateLoader
from .types import (
    AliasDefinition,
    ArrayDefinition,
    AssemblyError,
    EnumDefinition,
    Model,
    StructDefinition,
)
from .util import RenderedFile
from .writer import ArtifactStore, ArtifactWriter, WriteOutcome

logger = get_logger("engine")

ROOT_SCOPE = "(root)"


@dataclass
class ScopeStatistics:
    """Entity counts for the root model or one package."""

    structs: int = 0
    enums: int = 0
    arrays: int = 0
    aliases: int = 0
    fields: int = 0
    enumerators: int = 0

    @property
    def entities(self) -> int:
        return self.structs + self.enums + self.arrays + self.aliases


@dataclass
class ModelStatistics:
    name: str
    primitives: int
    scopes: dict[str, ScopeStatistics] = field(default_factory=dict)

    @property
    def total(self) -> ScopeStatistics:
        total = ScopeStatistics()
        for scope in self.scopes.values():
            total.structs += scope.structs
            total.enums += scope.enums
            total.arrays += scope.arrays
            total.aliases += scope.aliases
            total.fields += scope.fields
            total.enumerators += scope.enumerators
        return total


@dataclass
class GenerationResult:
    """Everything one generation pass produced."""

    files: list[RenderedFile] = field(default_factory=list)
    descriptor: bytes | None = None
    descriptor_set: DescriptorSet | None = None
    outcome: WriteOutcome | None = None
    warnings: list[str] = field(default_factory=list)
    unwritten: list[str] = field(default_factory=list)


def statistics(model: Model) -> ModelStatistics:
    """Count entities per scope (root first, then packages in declaration order)."""
    stats = ModelStatistics(model.name, len(model.primitives))
    for package, entity in model.iter_entities():
        scope = stats.scopes.setdefault(package.name if package else ROOT_SCOPE, ScopeStatistics())
        match entity:
            case StructDefinition():
                scope.structs += 1
                scope.fields += len(entity.fields)
            case EnumDefinition():
                scope.enums += 1
                scope.enumerators += len(entity.enumerators)
            case ArrayDefinition():
                scope.arrays += 1
            case AliasDefinition():
                scope.aliases += 1
    return stats


class Engine:
    """Run generation passes with one template cache and artifact store."""

    def __init__(self, config: GeneratorConfig | None = None):
        self.config = config or GeneratorConfig()
        self.loader = TemplateLoader(self.config.template_base_path, self.config.template_roots)
        self.processor = TemplateProcessor(self.loader, default_functions())
        self.store = ArtifactStore()

    def statistics(self, model: Model) -> ModelStatistics:
        return statistics(model)

    def generate(
        self, model: Model, output_dir: str | Path | None = None, *, write: bool = True
    ) -> GenerationResult:
        """Render every enabled output for ``model``.

        Text files are written under ``output_dir`` (default from the config)
        when ``write`` is set. The binary descriptor always goes through the
        artifact writer when ``write`` is set and is kept in the store.
        """
        config = self.config
        out = Path(output_dir if output_dir is not None else config.output_dir)
        result = GenerationResult()

        if config.generate_cpp:
            self._generate_cpp(model, result)
        if config.generate_schema:
            self._generate_schema(model, result)

        if write:
            for rendered in result.files:
                self._write_text(out, rendered, result)

        if config.generate_descriptor:
            self._generate_descriptor(model, out, write, result)

        logger.info(
            "Generated %d files for %s with %d warnings",
            len(result.files),
            model.name,
            len(result.warnings),
        )
        return result

    def _generate_cpp(self, model: Model, result: GenerationResult) -> None:
        assembler = CppAssembler(self.processor, model, self.config.include_dir)
        headers: list[str] = []
        for package, entity in model.iter_entities():
            try:
                rendered = assembler.render_header(entity, package)
            except AssemblyError as e:
                message = f"Skipping header for {entity.kind} {entity.name}: {e}"
                logger.warning(message)
                result.warnings.append(message)
                continue
            result.files.append(rendered)
            headers.append(assembler.header_name(entity.name, package))

        if self.config.aggregate_header and headers:
            result.files.append(assembler.render_aggregate(headers, self.config.aggregate_header))
        result.warnings.extend(assembler.warnings)

    def _generate_schema(self, model: Model, result: GenerationResult) -> None:
        assembler = SchemaAssembler(
            self.processor, model, self.config.schema_options, self.config.schema_dir
        )
        for package in [None, *model.packages]:
            result.files.append(assembler.render_file(package))
        result.warnings.extend(assembler.warnings)

    def _generate_descriptor(
        self, model: Model, out: Path, write: bool, result: GenerationResult
    ) -> None:
        builder = DescriptorBuilder(TypeResolver(Notation.SCHEMA))
        descriptor_set = builder.build(model)
        data = descriptor_set.serialize()
        result.warnings.extend(builder.warnings)
        result.descriptor = data
        result.descriptor_set = descriptor_set

        name = self.config.descriptor_name or f"{model.name}.desc"
        logical_name = f"{self.config.schema_dir.strip('/')}/{name}"
        self.store.put(logical_name, data)
        if not write:
            return

        def text_sink(text_name: str, text: str) -> Path:
            rendered = RenderedFile(text_name, text)
            result.files.append(rendered)
            if not self._write_text(out, rendered, result):
                raise OSError(f"Could not write {out / text_name}")
            return out / text_name

        writer = ArtifactWriter(out, self.config.alternate_output_roots, self.store, text_sink)
        result.outcome = writer.write(logical_name, data)
        path = str(result.outcome.path) if result.outcome.path else None

        info = RenderedFile(
            f"{logical_name}.txt",
            render_info(self.processor, descriptor_set, name, data, result.outcome.channel, path),
        )
        result.files.append(info)
        self._write_text(out, info, result)

    def _write_text(self, out: Path, rendered: RenderedFile, result: GenerationResult) -> bool:
        path = out / rendered.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(rendered.content, encoding="utf-8")
        except OSError as e:
            message = f"Could not write {path}: {e}"
            logger.warning(message)
            result.warnings.append(message)
            result.unwritten.append(rendered.path)
            return False
        logger.debug("Wrote %s", path)
        return True
