"""Generation history tracking.

The gallery is an append-only list of prompt/image pairs stored as a JSON
array of ``{"prompt": ..., "url": ...}`` objects.  A record is identified by
its position in that list, oldest first.  Every mutation rewrites the whole
list; there is no incremental format.

Unreadable history is never an error: a missing key, invalid JSON or a
non-list payload loads as an empty gallery, and individual entries that are
not well-formed records are skipped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, List, Optional, Tuple

from modules.errors import InvalidPosition
from modules.storage.local_storage import LocalStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GenerationRecord:
    """A prompt and the image URL the provider returned for it."""

    prompt: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["GenerationRecord"]:
        """Build a record from stored data, or None if the entry is malformed."""
        if not isinstance(data, dict):
            return None
        prompt = data.get("prompt")
        url = data.get("url")
        if not isinstance(prompt, str) or not isinstance(url, str):
            return None
        return cls(prompt=prompt, url=url)


class GalleryStore:
    """JSON-backed history store."""

    def __init__(self, storage: LocalStorage, key: str) -> None:
        self.storage = storage
        self.key = key
        self._records: List[GenerationRecord] = []

    def load(self) -> List[GenerationRecord]:
        """Read the persisted gallery into memory."""
        self._records = self._read()
        logger.info("Loaded %d gallery record(s)", len(self._records))
        return list(self._records)

    def records(self) -> Tuple[GenerationRecord, ...]:
        """Return a snapshot of the in-memory gallery."""
        return tuple(self._records)

    def append(self, record: GenerationRecord) -> List[GenerationRecord]:
        """Append a record and persist the full gallery."""
        updated = [*self._records, record]
        self._write(updated)
        self._records = updated
        return list(updated)

    def remove_at(self, position: int) -> List[GenerationRecord]:
        """Remove the record at ``position`` and persist the full gallery."""
        if position < 0 or position >= len(self._records):
            raise InvalidPosition(position, len(self._records))
        updated = self._records[:position] + self._records[position + 1 :]
        self._write(updated)
        self._records = updated
        return list(updated)

    # Internal helpers ---------------------------------------------------------
    def _read(self) -> List[GenerationRecord]:
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Stored gallery is not valid JSON, starting empty: %s", exc)
            return []
        if not isinstance(data, list):
            logger.warning("Stored gallery is not a list, starting empty")
            return []

        records: List[GenerationRecord] = []
        for entry in data:
            record = GenerationRecord.from_dict(entry)
            if record is None:
                logger.warning("Skipping malformed gallery entry: %r", entry)
                continue
            records.append(record)
        return records

    def _write(self, records: List[GenerationRecord]) -> None:
        payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False)
        self.storage.set_item(self.key, payload)
