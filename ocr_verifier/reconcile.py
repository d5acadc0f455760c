"""Join annotation records with the images found in a dataset folder."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .annotations import Record, decode_annotations
from .collector import ByteSource

log = logging.getLogger(__name__)

DEFAULT_PREVIEW_SIZE: Tuple[int, int] = (640, 240)


class ItemKind(str, Enum):
    MATCHED = "matched"
    MISSING_IMAGE = "missing-image"
    ORPHAN = "orphan"


class PreviewHandle:
    """Decoded preview of an item image.

    The handle keeps the encoded bytes and an open :class:`PIL.Image.Image`
    until :meth:`release` is called. Released handles refuse to render.
    """

    def __init__(self, data: bytes, *, max_size: Tuple[int, int] = DEFAULT_PREVIEW_SIZE) -> None:
        self._data: Optional[bytes] = data
        self._image: Optional[Image.Image] = Image.open(io.BytesIO(data))
        self._max_size = max_size

    @classmethod
    def from_source(
        cls, source: ByteSource, *, max_size: Tuple[int, int] = DEFAULT_PREVIEW_SIZE
    ) -> "PreviewHandle":
        return cls(source.read(), max_size=max_size)

    @property
    def released(self) -> bool:
        return self._image is None

    @property
    def size(self) -> Tuple[int, int]:
        if self._image is None:
            raise RuntimeError("Preview has been released.")
        return self._image.size

    def render(self, max_size: Optional[Tuple[int, int]] = None) -> Image.Image:
        """Return an RGB thumbnail no larger than ``max_size``."""

        if self._image is None:
            raise RuntimeError("Preview has been released.")
        thumbnail = self._image.convert("RGB")
        thumbnail.thumbnail(max_size or self._max_size, Image.LANCZOS)
        return thumbnail

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
        self._image = None
        self._data = None


PreviewFactory = Callable[[ByteSource], PreviewHandle]


@dataclass(eq=False)
class Item:
    """One reviewable (image, label) unit.

    ``original_text`` and ``comparison_text`` are fixed at ingestion; only
    ``text`` and ``is_verified`` change during a session.
    """

    id: str
    filename: str
    text: str
    original_text: str
    kind: ItemKind
    comparison_text: Optional[str] = None
    is_verified: bool = False
    image_ref: Optional[ByteSource] = None
    preview: Optional[PreviewHandle] = None

    def release_preview(self) -> None:
        if self.preview is not None:
            self.preview.release()
            self.preview = None


def _make_preview(source: ByteSource, factory: PreviewFactory, key: str) -> Optional[PreviewHandle]:
    try:
        return factory(source)
    except (OSError, UnidentifiedImageError) as exc:
        log.warning("Could not open preview for %s: %s", key, exc)
        return None


def read_records(source: Optional[ByteSource]) -> List[Record]:
    """Parse ``source`` as an annotation file; unreadable files yield no records."""

    if source is None:
        return []
    try:
        data = source.read()
    except OSError as exc:
        log.warning("Could not read annotation file %s: %s", source.name, exc)
        return []
    return decode_annotations(data)


def comparison_labels(records: Iterable[Record]) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for filename, label in records:
        labels.setdefault(filename, label)
    return labels


def reconcile(
    images: Mapping[str, ByteSource],
    annotation_file: Optional[ByteSource],
    *,
    comparison_file: Optional[ByteSource] = None,
    preview_factory: PreviewFactory = PreviewHandle.from_source,
) -> List[Item]:
    """Build the item collection for a dataset.

    Annotation records become items in file order, each consuming the image
    with the same key if it is still available. Images left over afterwards
    become orphan items with an empty label. ``images`` itself is not
    modified.
    """

    remaining: Dict[str, ByteSource] = dict(images)
    records = read_records(annotation_file)
    comparisons = comparison_labels(read_records(comparison_file))

    items: List[Item] = []
    for index, (filename, label) in enumerate(records):
        image_ref = remaining.pop(filename, None)
        items.append(
            Item(
                id=f"item-{index}",
                filename=filename,
                text=label,
                original_text=label,
                kind=ItemKind.MATCHED if image_ref is not None else ItemKind.MISSING_IMAGE,
                comparison_text=comparisons.get(filename),
                image_ref=image_ref,
                preview=_make_preview(image_ref, preview_factory, filename) if image_ref is not None else None,
            )
        )

    for index, (filename, image_ref) in enumerate(remaining.items()):
        items.append(
            Item(
                id=f"orphan-{index}",
                filename=filename,
                text="",
                original_text="",
                kind=ItemKind.ORPHAN,
                comparison_text=comparisons.get(filename),
                image_ref=image_ref,
                preview=_make_preview(image_ref, preview_factory, filename),
            )
        )

    counts = summarize(items)
    log.info(
        "Reconciled %d item(s): %d matched, %d missing image, %d orphan",
        len(items),
        counts[ItemKind.MATCHED],
        counts[ItemKind.MISSING_IMAGE],
        counts[ItemKind.ORPHAN],
    )
    return items


def summarize(items: Iterable[Item]) -> Dict[ItemKind, int]:
    counts = {kind: 0 for kind in ItemKind}
    for item in items:
        counts[item.kind] += 1
    return counts


def release_previews(items: Iterable[Item]) -> int:
    """Release every preview owned by ``items`` and return how many were open."""

    released = 0
    for item in items:
        if item.preview is not None:
            item.release_preview()
            released += 1
    return released


__all__ = [
    "DEFAULT_PREVIEW_SIZE",
    "Item",
    "ItemKind",
    "PreviewFactory",
    "PreviewHandle",
    "comparison_labels",
    "read_records",
    "reconcile",
    "release_previews",
    "summarize",
]
