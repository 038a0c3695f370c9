"""typeweaver - C++ header, schema and descriptor generator for data-type models."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("typeweaver")
except PackageNotFoundError:
    __version__ = "(local)"
