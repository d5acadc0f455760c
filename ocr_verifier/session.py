"""Review session state shared by the reviewer UI and the command line."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from . import verification
from .annotations import DEFAULT_EXPORT_NAME, ExportEmptyCollection, format_annotations, write_annotations
from .collector import AcquisitionCancelled, ByteSource, FolderReader, FolderScan, PathSource, open_folder
from .query import FilterState, next_index, previous_index, view
from .reconcile import DEFAULT_PREVIEW_SIZE, Item, PreviewHandle, reconcile, release_previews

log = logging.getLogger(__name__)


def _default_export_name() -> str:
    return os.environ.get("OCR_VERIFIER_EXPORT_NAME", DEFAULT_EXPORT_NAME)


@dataclass
class SessionConfig:
    """Configuration options for :class:`ReviewSession`."""

    export_name: str = field(default_factory=_default_export_name)
    preview_size: Tuple[int, int] = DEFAULT_PREVIEW_SIZE
    comparison_file: Optional[Path] = None


class ReviewSession:
    """Own the item collection, filters and selection for one dataset."""

    def __init__(self, config: Optional[SessionConfig] = None) -> None:
        self.config = config or SessionConfig()
        self.items: List[Item] = []
        self.filters = FilterState()
        self.folder_name = ""
        self.selected_index = -1
        self.annotation_candidates: List[str] = []

    # ------------------------------------------------------------------
    # Dataset lifecycle
    # ------------------------------------------------------------------
    def open(self, primary: Optional[FolderReader], fallback: FolderReader) -> bool:
        """Acquire a folder and load it; ``False`` when the operator cancelled.

        :class:`~ocr_verifier.collector.AcquisitionFailed` propagates and
        leaves the current dataset untouched.
        """

        try:
            scan = open_folder(primary, fallback)
        except AcquisitionCancelled:
            log.info("Folder selection cancelled; keeping %s.", self.folder_name or "empty session")
            return False
        self.load(scan)
        return True

    def load(self, scan: FolderScan, *, comparison_file: Optional[ByteSource] = None) -> None:
        """Replace the current dataset with the contents of ``scan``."""

        if comparison_file is None and self.config.comparison_file is not None:
            comparison_file = PathSource(Path(self.config.comparison_file))

        size = self.config.preview_size
        items = reconcile(
            scan.images,
            scan.annotation_file,
            comparison_file=comparison_file,
            preview_factory=lambda source: PreviewHandle.from_source(source, max_size=size),
        )
        previous = self.items
        self.items = items
        self.folder_name = scan.folder_name
        self.annotation_candidates = list(scan.annotation_candidates)
        self.filters = FilterState()
        self.selected_index = 0 if items else -1
        released = release_previews(previous)
        if released:
            log.debug("Released %d preview(s) from the previous dataset.", released)
        if len(scan.annotation_candidates) > 1 and scan.annotation_file is not None:
            log.info(
                "Several annotation files found (%s); using %s.",
                ", ".join(scan.annotation_candidates),
                scan.annotation_file.name,
            )
        log.info("Loaded %d item(s) from %s", len(items), scan.folder_name)

    def close(self) -> None:
        release_previews(self.items)
        self.items = []
        self.selected_index = -1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def visible_indices(self) -> List[int]:
        return view(self.items, self.filters)

    @property
    def selected(self) -> Optional[Item]:
        if 0 <= self.selected_index < len(self.items):
            return self.items[self.selected_index]
        return None

    @property
    def verified_count(self) -> int:
        return sum(1 for item in self.items if item.is_verified)

    def select(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise IndexError(index)
        self.selected_index = index

    def select_next(self) -> int:
        self.selected_index = next_index(self.visible_indices(), self.selected_index)
        return self.selected_index

    def select_previous(self) -> int:
        self.selected_index = previous_index(self.visible_indices(), self.selected_index)
        return self.selected_index

    # ------------------------------------------------------------------
    # Updates keyed by item id
    # ------------------------------------------------------------------
    def item(self, item_id: str) -> Item:
        for candidate in self.items:
            if candidate.id == item_id:
                return candidate
        raise KeyError(item_id)

    def _apply(self, item_id: str, transition: Callable[[Item], Item]) -> Item:
        return transition(self.item(item_id))

    def edit(self, item_id: str, text: str) -> Item:
        return self._apply(item_id, lambda item: verification.edit(item, text))

    def verify(self, item_id: str, text: Optional[str] = None) -> Item:
        return self._apply(item_id, lambda item: verification.verify(item, text))

    def unverify(self, item_id: str) -> Item:
        return self._apply(item_id, verification.unverify)

    def clear(self, item_id: str) -> Item:
        return self._apply(item_id, verification.clear)

    def adopt_original(self, item_id: str) -> Item:
        return self._apply(item_id, verification.adopt_original)

    def adopt_comparison(self, item_id: str) -> Item:
        return self._apply(item_id, verification.adopt_comparison)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_text(self) -> str:
        return format_annotations((item.filename, item.text) for item in self.items)

    def export(self, directory: Path) -> Optional[Path]:
        """Write the collection to ``directory``; ``None`` when there is nothing to export."""

        target = Path(directory) / self.config.export_name
        try:
            return write_annotations(((item.filename, item.text) for item in self.items), target)
        except ExportEmptyCollection:
            log.info("Export skipped: no items loaded.")
            return None


__all__ = ["ReviewSession", "SessionConfig"]
