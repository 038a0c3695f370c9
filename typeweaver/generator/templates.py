"""Template loading and plain ``{{NAME}}`` placeholder substitution."""

import threading
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path

from .log import get_logger

logger = get_logger("templates")

DEFAULT_BASE_PATH = "templates"
BUNDLE_PACKAGE = "typeweaver.generator"


def substitute(text: str, bindings: Mapping[str, object]) -> str:
    """Replace ``{{NAME}}`` with the bound value for every binding.

    Placeholders without a binding are left intact.
    """
    for name, value in bindings.items():
        text = text.replace("{{" + name + "}}", str(value))
    return text


class TemplateLoader:
    """Load templates by logical path and cache them.

    Lookup order: cache, the bundled templates shipped inside the package,
    each filesystem root in order, then the same again with the base path
    prefixed when ``path`` doesn't already start with it. A template that can't
    be found loads as empty text.
    """

    def __init__(
        self,
        base_path: str = DEFAULT_BASE_PATH,
        roots: Iterable[str | Path] = (),
        bundle: str | None = BUNDLE_PACKAGE,
    ):
        self._base_path = base_path.strip("/")
        self.roots = [Path(root) for root in roots]
        self.bundle = bundle
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def base_path(self) -> str:
        return self._base_path

    @base_path.setter
    def base_path(self, value: str) -> None:
        with self._lock:
            self._base_path = value.strip("/")
            self._cache.clear()

    def clear(self) -> None:
        """Drop every cached template."""
        with self._lock:
            self._cache.clear()

    def is_cached(self, path: str) -> bool:
        with self._lock:
            return path in self._cache

    def load(self, path: str) -> str:
        """Return the text of the template at ``path`` ("" if it doesn't exist)."""
        with self._lock:
            cached = self._cache.get(path)
        if cached is not None:
            return cached

        text = self._find(path)
        if text is None and self._base_path and not path.startswith(self._base_path + "/"):
            text = self._find(f"{self._base_path}/{path}")

        if text is None:
            logger.warning("Template not found: %s", path)
            return ""

        with self._lock:
            self._cache[path] = text
        return text

    def process(self, path: str, bindings: Mapping[str, object]) -> str:
        """Load the template at ``path`` and substitute ``bindings`` into it."""
        return substitute(self.load(path), bindings)

    def _find(self, path: str) -> str | None:
        text = self._from_bundle(path)
        if text is not None:
            return text

        for root in self.roots:
            candidate = root / path
            try:
                if candidate.is_file():
                    logger.debug("Loaded template %s from %s", path, root)
                    return candidate.read_text(encoding="utf-8")
            except OSError as e:
                logger.debug("Unreadable template candidate %s: %s", candidate, e)
        return None

    def _from_bundle(self, path: str) -> str | None:
        if not self.bundle:
            return None
        try:
            resource = resources.files(self.bundle).joinpath(path)
            if resource.is_file():
                return resource.read_text(encoding="utf-8")
        except (OSError, ModuleNotFoundError) as e:
            logger.debug("Template %s not in bundle %s: %s", path, self.bundle, e)
        return None
