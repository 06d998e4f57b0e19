"""Persistent operator settings: the authentication secret and last pager address."""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MAX_SETTINGS_FILE_SIZE = 1024 * 64

KEY_PASSWORD = "password"
KEY_PAGER_ADDR = "pager_addr"


class SettingsStore:
    """JSON file holding values that survive restarts.

    The stored secret is only a hint for the next handshake; it is written
    when the operator authenticates and never from server data.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize settings store.

        Args:
            path: Location of the settings file (created on first write)
        """
        self.path = Path(path).expanduser()
        self._pager_addr: int | None = None

    def _load(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}

        try:
            file_size = self.path.stat().st_size
            if file_size > MAX_SETTINGS_FILE_SIZE:
                logger.error(
                    "Settings file too large: %d bytes (max %d)",
                    file_size,
                    MAX_SETTINGS_FILE_SIZE,
                )
                return {}

            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load settings from %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Settings file has invalid format, ignoring")
            return {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            # O_CREAT mode only applies to new files
            try:
                self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)
            except OSError as e:
                logger.warning("Could not set secure permissions on settings file: %s", e)
            json.dump(data, f, indent=2)

    def _set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        try:
            self._save(data)
            logger.debug("Saved %s to %s", key, self.path)
        except OSError as e:
            logger.exception("Failed to save settings to %s: %s", self.path, e)

    def read(self) -> str | None:
        """Return the stored authentication secret, if any."""
        value = self._load().get(KEY_PASSWORD)
        return value if isinstance(value, str) else None

    def write(self, secret: str) -> None:
        """Persist the authentication secret."""
        self._set(KEY_PASSWORD, secret)

    def read_pager_address(self) -> int:
        """Return the last submitted pager address, or 0.

        The file is read once; later calls answer from memory.
        """
        if self._pager_addr is None:
            value = self._load().get(KEY_PAGER_ADDR)
            try:
                self._pager_addr = int(value)
            except (TypeError, ValueError):
                self._pager_addr = 0
        return self._pager_addr

    def write_pager_address(self, address: int) -> None:
        self._pager_addr = int(address)
        self._set(KEY_PAGER_ADDR, self._pager_addr)
