"""Generator configuration."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from dataclasses_json import DataClassJsonMixin

from .types import GeneratorError


@dataclass
class GeneratorConfig(DataClassJsonMixin):
    """Settings for one generation pass.

    Paths inside the output directory (``include_dir``, ``schema_dir``) are
    relative. ``template_roots`` are searched after the bundled templates.
    """

    output_dir: str = "generated"
    include_dir: str = "include"
    schema_dir: str = "proto"
    descriptor_name: str | None = None
    aggregate_header: str = "AllTypes.h"
    template_base_path: str = "templates"
    template_roots: list[str] = field(default_factory=list)
    alternate_output_roots: list[str] = field(default_factory=list)
    generate_cpp: bool = True
    generate_schema: bool = True
    generate_descriptor: bool = True
    schema_options: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> "GeneratorConfig":
        """Read a config from a JSON file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise GeneratorError(f"Cannot read config {path}: {e}") from e
        if not isinstance(data, dict):
            raise GeneratorError(f"Config {path} must be a JSON object")
        return cls.from_dict(data)
