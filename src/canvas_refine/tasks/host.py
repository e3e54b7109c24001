"""
Seams towards the host editor.

The host exports a flattened canvas and accepts a new layer. Both sides are
modelled as small async protocols; the implementations here cover raw bytes
(HTTP uploads), files on disk, and in-memory capture.
"""

import re
from pathlib import Path
from typing import Protocol

import structlog

from canvas_refine.tasks.exceptions import NoDocumentError

logger = structlog.get_logger(__name__)


class DocumentSource(Protocol):
    """Produces the flattened canvas as image bytes."""

    async def export_flattened(self) -> bytes:
        ...


class LayerSink(Protocol):
    """Inserts image bytes as a new named layer."""

    async def insert_layer(self, data: bytes, name: str) -> None:
        ...


class BytesDocument:
    """Document already flattened by the caller (e.g., an uploaded PNG)."""

    def __init__(self, data: bytes):
        self._data = data

    async def export_flattened(self) -> bytes:
        if not self._data:
            raise NoDocumentError("No open document.")
        return self._data


class FileDocument:
    """Document exported to an image file by the host."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def export_flattened(self) -> bytes:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError as e:
            raise NoDocumentError(f"No open document at {self.path}") from e
        if not data:
            raise NoDocumentError(f"Document at {self.path} is empty")
        return data


class MemoryLayerSink:
    """Keeps inserted layers in memory, newest last."""

    def __init__(self) -> None:
        self.layers: list[tuple[str, bytes]] = []

    async def insert_layer(self, data: bytes, name: str) -> None:
        self.layers.append((name, data))
        logger.debug("Layer captured", name=name, size=len(data))

    @property
    def last(self) -> tuple[str, bytes] | None:
        return self.layers[-1] if self.layers else None


class FileLayerSink:
    """Writes each inserted layer as <name>.png into a directory."""

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        stem = self._UNSAFE_CHARS.sub("_", name).strip("._") or "layer"
        return self.directory / f"{stem}.png"

    async def insert_layer(self, data: bytes, name: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        path.write_bytes(data)
        logger.info("Layer written", name=name, path=str(path), size=len(data))
