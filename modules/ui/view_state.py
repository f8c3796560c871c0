"""In-memory gallery view state.

Gallery captions always show a truncated prompt; "show more" opens a
separate detail view with the full prompt and the image.  None of this is
persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from modules.errors import InvalidPosition
from modules.services.history_service import GenerationRecord


@dataclass(frozen=True, slots=True)
class GalleryViewState:
    detail_position: Optional[int] = None
    settings_open: bool = False

    @property
    def detail_open(self) -> bool:
        return self.detail_position is not None


def truncate_prompt(text: str, limit: int = 50) -> str:
    """Shorten a prompt for display; the stored value is never changed."""
    if limit <= 0 or len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def newest_first(records: Sequence[GenerationRecord]) -> List[Tuple[int, GenerationRecord]]:
    """Pair each record with its storage position, newest first."""
    return [(position, records[position]) for position in range(len(records) - 1, -1, -1)]


def position_from_display_index(index: int, length: int) -> int:
    """Map an index in the newest-first listing back to a storage position."""
    if index < 0 or index >= length:
        raise InvalidPosition(index, length)
    return length - 1 - index


def open_detail(
    state: GalleryViewState, position: int, records: Sequence[GenerationRecord]
) -> GalleryViewState:
    if position < 0 or position >= len(records):
        raise InvalidPosition(position, len(records))
    return replace(state, detail_position=position)


def close_detail(state: GalleryViewState) -> GalleryViewState:
    return replace(state, detail_position=None)


def detail_record(
    state: GalleryViewState, records: Sequence[GenerationRecord]
) -> Optional[GenerationRecord]:
    """Return the record shown in the detail view, if it still exists."""
    position = state.detail_position
    if position is None or position >= len(records):
        return None
    return records[position]


def open_settings(state: GalleryViewState) -> GalleryViewState:
    return replace(state, settings_open=True)


def close_settings(state: GalleryViewState) -> GalleryViewState:
    return replace(state, settings_open=False)


def toggle_settings(state: GalleryViewState) -> GalleryViewState:
    return replace(state, settings_open=not state.settings_open)
