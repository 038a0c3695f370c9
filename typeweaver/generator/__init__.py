"""Typeweaver C++ header and schema generator."""

from .config import GeneratorConfig as GeneratorConfig
from .descriptor import DescriptorBuilder as DescriptorBuilder
from .descriptor import DescriptorSet as DescriptorSet
from .engine import Engine as Engine
from .engine import GenerationResult as GenerationResult
from .engine import statistics as statistics
from .resolver import Notation as Notation
from .resolver import TypeResolver as TypeResolver
from .types import *
from .util import to_snake_case as to_snake_case
from .writer import ArtifactWriter as ArtifactWriter
from .writer import decode_base64_artifact as decode_base64_artifact
