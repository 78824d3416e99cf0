"""Loading and saving the configuration document."""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
from pathlib import Path

from git_swap.exceptions import PersistenceError
from git_swap.models import AppConfig

logger = logging.getLogger("git-swap.persistence")


class ConfigStore:
    """JSON-backed store for the AppConfig document.

    Reads the primary path first and falls back to a legacy path. A document
    found only at the legacy path is written back to the primary path once.
    """

    def __init__(self, primary_path: Path, legacy_path: Path | None = None):
        self.primary_path = primary_path
        self.legacy_path = legacy_path

    def load(self) -> AppConfig:
        """Load the document, or return an empty config if none exists.

        Raises:
            PersistenceError: If a file exists but cannot be read or parsed.
        """
        paths = [self.primary_path]
        if self.legacy_path is not None:
            paths.append(self.legacy_path)

        for path in paths:
            config = self._read(path)
            if config is None:
                continue
            if path == self.legacy_path:
                self._migrate(config)
            return config

        return AppConfig()

    def _read(self, path: Path) -> AppConfig | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read config {path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Invalid config in {path}: expected an object")
        return AppConfig.from_dict(data)

    def _migrate(self, config: AppConfig) -> None:
        try:
            self.save(config)
            logger.info(f"Migrated config from {self.legacy_path} to {self.primary_path}")
        except PersistenceError as e:
            logger.warning(f"Config migration failed: {e}")

    def save(self, config: AppConfig) -> None:
        """Write the document as indented JSON with a trailing newline.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        content = config.to_json() + "\n"
        path = self.primary_path
        temp_path = path.with_suffix(f".{os.getpid()}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(content, encoding="utf-8")
            if sys.platform != "win32":
                os.chmod(temp_path, 0o600)
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise PersistenceError(f"Failed to write config {path}: {e}") from e
        logger.debug(f"Saved config to {path}")
