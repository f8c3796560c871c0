"""File-backed key-value storage, one file per key."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """Durable string storage scoped to a single data directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value or None when the key was never written."""
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to read storage key %s: %s", key, exc)
            return None

    def set_item(self, key: str, value: str) -> None:
        """Replace the value stored under ``key``."""
        path = self._path_for(key)
        self.root.mkdir(parents=True, exist_ok=True)
        # 先写临时文件再替换，崩溃时保留上一次成功写入的内容
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", dir=str(self.root))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def remove_item(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""
        path = self._path_for(key)
        if path.exists():
            path.unlink()
