"""Filtered and sorted views over an item collection."""
from __future__ import annotations

import locale
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .reconcile import Item


class SortOption(str, Enum):
    FILENAME_ASC = "filename_asc"
    FILENAME_DESC = "filename_desc"
    FILETEXT_ASC = "filetext_asc"
    FILETEXT_DESC = "filetext_desc"
    STATUS_VERIFIED = "status_verified"
    STATUS_UNVERIFIED = "status_unverified"


SORT_LABELS: Dict[SortOption, str] = {
    SortOption.FILENAME_ASC: "File Name (A-Z)",
    SortOption.FILENAME_DESC: "File Name (Z-A)",
    SortOption.FILETEXT_ASC: "File Text (A-Z)",
    SortOption.FILETEXT_DESC: "File Text (Z-A)",
    SortOption.STATUS_VERIFIED: "Verified First",
    SortOption.STATUS_UNVERIFIED: "Unverified First",
}


@dataclass
class FilterState:
    search: str = ""
    sort: str = SortOption.FILENAME_ASC.value
    show_only_unverified: bool = False
    show_only_diffs: bool = False


def collation_key(value: str) -> Tuple[str, str]:
    """Sort key approximating a locale aware, case-insensitive comparison."""

    return locale.strxfrm(value.casefold()), locale.strxfrm(value)


def has_diff(item: Item) -> bool:
    return item.comparison_text is not None and item.text != item.comparison_text


def matches(item: Item, filters: FilterState) -> bool:
    if filters.show_only_unverified and item.is_verified:
        return False
    if filters.show_only_diffs and not has_diff(item):
        return False
    if not filters.search:
        return True
    needle = filters.search.lower()
    return needle in item.filename.lower() or needle in item.text.lower()


_SORT_KEYS: Dict[SortOption, Tuple[Callable[[Item], object], bool]] = {
    SortOption.FILENAME_ASC: (lambda item: collation_key(item.filename), False),
    SortOption.FILENAME_DESC: (lambda item: collation_key(item.filename), True),
    SortOption.FILETEXT_ASC: (lambda item: collation_key(item.text), False),
    SortOption.FILETEXT_DESC: (lambda item: collation_key(item.text), True),
    SortOption.STATUS_VERIFIED: (lambda item: not item.is_verified, False),
    SortOption.STATUS_UNVERIFIED: (lambda item: item.is_verified, False),
}


def _sort_option(value: str) -> Optional[SortOption]:
    try:
        return SortOption(value)
    except ValueError:
        return None


def view(items: Sequence[Item], filters: FilterState) -> List[int]:
    """Return indices into ``items`` selected and ordered by ``filters``.

    Sorting is stable, so status sorts keep the collection order within each
    group. Unknown sort keys leave the filtered order unchanged.
    """

    indices = [index for index, item in enumerate(items) if matches(item, filters)]
    option = _sort_option(filters.sort)
    if option is None:
        return indices
    key, reverse = _SORT_KEYS[option]
    indices.sort(key=lambda index: key(items[index]), reverse=reverse)
    return indices


def next_index(ordered: Sequence[int], selected: int) -> int:
    """Return the index after ``selected`` in ``ordered``, clamped at the end."""

    if not ordered:
        return selected
    if selected not in ordered:
        return ordered[0]
    position = ordered.index(selected)
    return ordered[min(position + 1, len(ordered) - 1)]


def previous_index(ordered: Sequence[int], selected: int) -> int:
    if not ordered:
        return selected
    if selected not in ordered:
        return ordered[0]
    position = ordered.index(selected)
    return ordered[max(position - 1, 0)]


__all__ = [
    "FilterState",
    "SORT_LABELS",
    "SortOption",
    "collation_key",
    "has_diff",
    "matches",
    "next_index",
    "previous_index",
    "view",
]
