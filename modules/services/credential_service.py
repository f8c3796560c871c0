"""API key persistence."""

from __future__ import annotations

import logging
from typing import Optional

from modules.storage.local_storage import LocalStorage

logger = logging.getLogger(__name__)


class CredentialStore:
    """Hold the Replicate API key; user edits are persisted immediately."""

    def __init__(self, storage: LocalStorage, key: str, default: Optional[str] = None) -> None:
        self.storage = storage
        self.key = key
        self.default = default or ""
        self._value = self.default

    def load(self) -> str:
        """Seed the in-memory value: stored override first, then the default."""
        stored = self.storage.get_item(self.key)
        if stored is not None:
            self._value = stored
            logger.info("Loaded API key from local storage")
        else:
            self._value = self.default
        return self._value

    def get(self) -> str:
        return self._value

    def set(self, value: Optional[str]) -> None:
        """Overwrite the key in memory and on disk."""
        value = value or ""
        self.storage.set_item(self.key, value)
        self._value = value

    def has_credential(self) -> bool:
        return bool(self._value.strip())
