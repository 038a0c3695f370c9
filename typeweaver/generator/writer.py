"""Layered writer for binary artifacts.

Binary output goes to the primary directory first, then to each alternate
root in turn. When no filesystem location accepts the bytes they are
base64-encoded and handed to a text sink, so the artifact is never lost.
"""

import base64
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import Path

from .log import get_logger

logger = get_logger("writer")

BASE64_LINE_LENGTH = 76

TextSink = Callable[[str, str], Path]


class WriteChannel(StrEnum):
    """Where an artifact ended up."""

    PRIMARY = auto()
    ALTERNATE = auto()
    BASE64 = auto()


@dataclass(frozen=True)
class WriteOutcome:
    channel: WriteChannel
    path: Path | None = None
    text: str | None = None


class ArtifactStore:
    """Thread-safe mapping of logical artifact names to their bytes."""

    def __init__(self) -> None:
        self._artifacts: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, name: str, data: bytes) -> None:
        with self._lock:
            self._artifacts[name] = bytes(data)

    def get(self, name: str) -> bytes | None:
        with self._lock:
            return self._artifacts.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._artifacts)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._artifacts

    def __len__(self) -> int:
        with self._lock:
            return len(self._artifacts)


def encode_base64_artifact(name: str, data: bytes) -> str:
    """Base64 text for ``data`` with ``#`` comment lines explaining how to decode it."""
    encoded = base64.b64encode(data).decode("ascii")
    step = BASE64_LINE_LENGTH
    lines = [encoded[i : i + step] for i in range(0, len(encoded), step)]
    header = [
        f"# Base64 encoded binary artifact: {name} ({len(data)} bytes)",
        "# The binary file could not be written. Decode it with one of:",
        f"#   grep -v '^#' {name}.b64 | base64 --decode > {name}",
        f"#   python -c \"import base64, sys; "
        f"sys.stdout.buffer.write(base64.b64decode(''.join("
        f"l for l in open('{name}.b64') if not l.startswith('#'))))\" > {name}",
        f"#   certutil -decode {name}.b64 {name}",
    ]
    return "\n".join(header + lines) + "\n"


def decode_base64_artifact(text: str) -> bytes:
    """Recover the bytes from text produced by ``encode_base64_artifact``."""
    payload = "".join(
        line.strip() for line in text.splitlines() if line.strip() and not line.startswith("#")
    )
    return base64.b64decode(payload)


def write_binary(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` unbuffered, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    view = memoryview(data)
    with open(path, "wb", buffering=0) as f:
        while view:
            written = f.write(view)
            if not written:
                raise OSError(f"Short write to {path}")
            view = view[written:]


def _write_text_file(directory: Path) -> TextSink:
    def sink(name: str, text: str) -> Path:
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return sink


class ArtifactWriter:
    """Write binary artifacts with alternate-location and base64 fallbacks."""

    def __init__(
        self,
        primary_dir: str | Path,
        alternate_roots: Iterable[str | Path] = (),
        store: ArtifactStore | None = None,
        text_sink: TextSink | None = None,
    ):
        self.primary_dir = Path(primary_dir)
        self.alternate_roots = [Path(root) for root in alternate_roots]
        self.store = store if store is not None else ArtifactStore()
        self.text_sink = text_sink or _write_text_file(self.primary_dir)

    def write(self, name: str, data: bytes) -> WriteOutcome:
        """Write ``data`` as ``name`` through the first channel that accepts it."""
        self.store.put(name, data)

        path = self.primary_dir / name
        try:
            write_binary(path, data)
            logger.info("Wrote %s (%d bytes)", path, len(data))
            return WriteOutcome(WriteChannel.PRIMARY, path)
        except OSError as e:
            logger.warning("Could not write %s: %s", path, e)

        for root in self.alternate_roots:
            path = root / name
            try:
                write_binary(path, data)
                logger.warning("Wrote %s to alternate location %s", name, path)
                return WriteOutcome(WriteChannel.ALTERNATE, path)
            except OSError as e:
                logger.warning("Could not write %s: %s", path, e)

        text = encode_base64_artifact(name, data)
        text_name = f"{name}.b64"
        try:
            path = self.text_sink(text_name, text)
        except OSError as e:
            logger.error("Could not write base64 text %s: %s", text_name, e)
            return WriteOutcome(WriteChannel.BASE64, None, text)
        logger.warning("Binary %s written as base64 text %s", name, path)
        return WriteOutcome(WriteChannel.BASE64, path, text)
