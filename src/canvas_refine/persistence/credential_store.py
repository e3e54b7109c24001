"""
Single-secret credential store backed by a small file in the work folder.

An OPENAI_API_KEY setting, when present, takes precedence over the stored key.
"""

import os
from pathlib import Path

import structlog

from canvas_refine.config import Settings

logger = structlog.get_logger(__name__)


class CredentialStore:
    """Persist and read the image API key across restarts."""

    def __init__(self, path: Path, env_key: str | None = None):
        self.path = Path(path).expanduser()
        self.env_key = env_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        return cls(
            path=Path(settings.WORK_DIR) / settings.API_KEY_FILENAME,
            env_key=settings.OPENAI_API_KEY,
        )

    def save(self, api_key: str) -> None:
        """Store the key, trimmed. The file is readable by the owner only.

        The key goes to a fresh sibling file created with mode 0600, which is
        then renamed over the target. The key is never on disk under a wider
        mode, and readers never see a partial file.
        """
        key = api_key.strip()
        if not key:
            raise ValueError("API key must not be empty")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        # O_EXCL: the 0600 mode is only applied when the file is created
        tmp_path.unlink(missing_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(key)
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("API key saved", path=str(self.path))

    def load(self) -> str:
        """Return the effective key, or an empty string when none is available."""
        if self.env_key and self.env_key.strip():
            return self.env_key.strip()
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return ""

    def is_configured(self) -> bool:
        return bool(self.load())
