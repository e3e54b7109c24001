"""
Work folder holding the exported input image and the generated output.

The output path is the well-known location the retry engine writes the
artifact to. Writes go through a temporary file and an atomic rename, so a
reader polling for the output never sees a partially written image.
"""

import os
from pathlib import Path

import structlog

from canvas_refine.config import Settings

logger = structlog.get_logger(__name__)


class Workspace:
    """
    File-system work folder for one refine pipeline.

    Attributes:
        root: Directory holding input/output files
        input_path: Path of the exported canvas image
        output_path: Path of the generated image
    """

    def __init__(
        self,
        root: Path,
        input_filename: str = "input.png",
        output_filename: str = "output.png",
    ):
        self.root = Path(root).expanduser()
        self.input_path = self.root / input_filename
        self.output_path = self.root / output_filename

    @classmethod
    def from_settings(cls, settings: Settings) -> "Workspace":
        return cls(
            root=settings.WORK_DIR,
            input_filename=settings.INPUT_FILENAME,
            output_filename=settings.OUTPUT_FILENAME,
        )

    def ensure(self) -> Path:
        """Create the work folder if needed and return it."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def write_input(self, data: bytes) -> Path:
        self._write_atomic(self.input_path, data)
        logger.debug("Input image written", path=str(self.input_path), size=len(data))
        return self.input_path

    def read_input(self) -> bytes:
        return self.input_path.read_bytes()

    def write_output(self, data: bytes) -> Path:
        self._write_atomic(self.output_path, data)
        logger.info("Output image written", path=str(self.output_path), size=len(data))
        return self.output_path

    def read_output(self) -> bytes:
        return self.output_path.read_bytes()

    def output_exists(self) -> bool:
        """True once a non-empty output image is present."""
        try:
            return self.output_path.stat().st_size > 0
        except FileNotFoundError:
            return False

    def clear_output(self) -> None:
        """Remove a previous output so completion cannot be observed early."""
        self.output_path.unlink(missing_ok=True)

    def is_writable(self) -> bool:
        """Best-effort check used by the health endpoint."""
        try:
            self.ensure()
        except OSError:
            return False
        return os.access(self.root, os.W_OK)

    def _write_atomic(self, path: Path, data: bytes) -> None:
        self.ensure()
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)

    def __repr__(self) -> str:
        return f"Workspace(root={self.root})"
