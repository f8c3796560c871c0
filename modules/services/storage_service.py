"""File storage helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from modules.errors import DownloadFailed

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "generated_image.webp"


class StorageService:
    """Save generated images to a local directory."""

    def __init__(
        self,
        output_dir: Path,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 60.0,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.session = session or requests.Session()
        self.timeout = timeout

    def _unique_path(self, filename: str) -> Path:
        candidate = self.output_dir / filename
        if not candidate.exists():
            return candidate
        stem, suffix = candidate.stem, candidate.suffix
        index = 1
        while True:
            candidate = self.output_dir / f"{stem}_{index}{suffix}"
            if not candidate.exists():
                return candidate
            index += 1

    def save_image(self, url: str, filename: Optional[str] = None) -> Path:
        """Download ``url`` and return the path of the written file."""
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Download failed for %s: %s", url, exc)
            raise DownloadFailed(url, exc) from exc

        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self._unique_path(filename or DEFAULT_FILENAME)
        try:
            target.write_bytes(response.content)
        except OSError as exc:
            raise DownloadFailed(url, exc) from exc
        logger.info("Saved image to %s", target)
        return target
