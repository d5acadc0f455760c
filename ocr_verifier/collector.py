"""Folder acquisition for label review datasets.

Two readers produce the same :class:`FolderScan`:

* :class:`DirectoryTreeReader` walks a picked directory. ``.txt`` files at the
  root are annotation candidates and images inside each immediate
  subdirectory are keyed as ``"<subdirectory>/<filename>"``.
* :class:`FlatListReader` consumes a flat list of files that carry a path
  relative to a synthetic root (a ZIP archive, or a recursive listing). The
  first path segment is dropped to obtain the dataset relative key.

:func:`open_folder` tries the structured reader first and falls back to the
flat reader when the structured one is unavailable or fails. Cancelling the
structured picker never triggers the fallback.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})
ANNOTATION_SUFFIX = ".txt"
PREFERRED_ANNOTATION_MARKERS = ("train", "gt")
DEFAULT_FOLDER_NAME = "Upload Folder"


class AcquisitionError(RuntimeError):
    """Base class for folder acquisition failures."""


class AcquisitionCancelled(AcquisitionError):
    """The operator dismissed the folder picker."""


class AcquisitionUnsupported(AcquisitionError):
    """The requested acquisition capability is not available."""


class AcquisitionFailed(AcquisitionError):
    """The selected folder could not be read."""


class ByteSource(Protocol):
    """Lazily readable file content."""

    name: str

    def read(self) -> bytes:
        ...


@dataclass(frozen=True)
class PathSource:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def read(self) -> bytes:
        return self.path.read_bytes()


@dataclass(frozen=True)
class MemorySource:
    name: str
    data: bytes = field(repr=False)

    def read(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class FlatEntry:
    """File reported by a flat listing, with its root relative path."""

    relative_path: str
    source: ByteSource
    mime_type: Optional[str] = None


@dataclass
class FolderScan:
    """Normalised result of reading a dataset folder."""

    folder_name: str
    images: Dict[str, ByteSource] = field(default_factory=dict)
    annotation_file: Optional[ByteSource] = None
    annotation_candidates: List[str] = field(default_factory=list)


class FolderReader(Protocol):
    def read_folder(self) -> FolderScan:
        ...


def is_image_name(name: str) -> bool:
    return Path(name).suffix.lower() in IMAGE_EXTENSIONS


def is_annotation_name(name: str) -> bool:
    return name.lower().endswith(ANNOTATION_SUFFIX)


def is_preferred_annotation(name: str) -> bool:
    return any(marker in name for marker in PREFERRED_ANNOTATION_MARKERS)


class AnnotationChooser:
    """Pick one annotation file among the candidates offered in order.

    Every candidate whose name contains ``train`` or ``gt`` replaces the
    current choice, so the last preferred one wins. When none does, the first
    candidate offered is kept. The result depends on the order in which the
    reader enumerates files.
    """

    def __init__(self) -> None:
        self.candidates: List[str] = []
        self._chosen: Optional[ByteSource] = None

    def offer(self, name: str, source: ByteSource) -> None:
        self.candidates.append(name)
        if self._chosen is None or is_preferred_annotation(name):
            self._chosen = source

    @property
    def chosen(self) -> Optional[ByteSource]:
        return self._chosen


def _readable(path: Path) -> bool:
    try:
        return path.is_file() and os.access(path, os.R_OK)
    except OSError:
        return False


# ----------------------------------------------------------------------
# Structured directory reads
# ----------------------------------------------------------------------


def scan_directory(root: Path) -> FolderScan:
    """Read ``root`` and one level of subdirectories below it."""

    root = Path(root)
    if not root.is_dir():
        raise AcquisitionFailed(f"Not a directory: {root}")
    try:
        entries = sorted(root.iterdir(), key=lambda path: path.name)
    except OSError as exc:
        raise AcquisitionFailed(f"Could not read {root}: {exc}") from exc

    chooser = AnnotationChooser()
    images: Dict[str, ByteSource] = {}
    for entry in entries:
        if entry.is_dir():
            try:
                children = sorted(entry.iterdir(), key=lambda path: path.name)
            except OSError as exc:
                log.warning("Skipping unreadable directory %s: %s", entry, exc)
                continue
            for child in children:
                if not is_image_name(child.name):
                    continue
                if not _readable(child):
                    log.warning("Skipping unreadable image %s", child)
                    continue
                images[f"{entry.name}/{child.name}"] = PathSource(child)
        elif is_annotation_name(entry.name):
            if not _readable(entry):
                log.warning("Skipping unreadable annotation file %s", entry)
                continue
            chooser.offer(entry.name, PathSource(entry))

    return FolderScan(
        folder_name=root.name,
        images=images,
        annotation_file=chooser.chosen,
        annotation_candidates=chooser.candidates,
    )


class DirectoryTreeReader:
    """Structured reader over a directory chosen by ``pick_directory``.

    The picker returns ``None`` when the operator cancels and may raise
    :class:`AcquisitionUnsupported` when no directory picker is available.
    """

    def __init__(self, pick_directory: Callable[[], Optional[Path]]) -> None:
        self._pick_directory = pick_directory

    def read_folder(self) -> FolderScan:
        root = self._pick_directory()
        if root is None:
            raise AcquisitionCancelled("Folder selection cancelled.")
        log.info("Reading dataset folder %s", root)
        return scan_directory(Path(root))


# ----------------------------------------------------------------------
# Flat listings
# ----------------------------------------------------------------------


def _dataset_key(relative_path: str) -> str:
    parts = relative_path.replace("\\", "/").split("/")
    if len(parts) > 1:
        return "/".join(parts[1:])
    return parts[-1]


def _is_image_entry(entry: FlatEntry, name: str) -> bool:
    mime_type = entry.mime_type or mimetypes.guess_type(name)[0] or ""
    return mime_type.startswith("image/") or is_image_name(name)


def scan_flat_entries(entries: Sequence[FlatEntry]) -> FolderScan:
    """Normalise a flat listing into a :class:`FolderScan`.

    An empty listing counts as a cancelled selection.
    """

    entries = list(entries)
    if not entries:
        raise AcquisitionCancelled("No files were selected.")

    first = entries[0].relative_path.replace("\\", "/")
    folder_name = first.split("/")[0] if "/" in first else DEFAULT_FOLDER_NAME

    chooser = AnnotationChooser()
    images: Dict[str, ByteSource] = {}
    for entry in entries:
        key = _dataset_key(entry.relative_path)
        name = key.rsplit("/", 1)[-1]
        if is_annotation_name(name):
            if "/" not in key:
                chooser.offer(name, entry.source)
        elif _is_image_entry(entry, name):
            images[key] = entry.source

    return FolderScan(
        folder_name=folder_name or DEFAULT_FOLDER_NAME,
        images=images,
        annotation_file=chooser.chosen,
        annotation_candidates=chooser.candidates,
    )


class FlatListReader:
    """Flat reader over the entries returned by ``pick_entries``.

    The picker returns ``None`` (or nothing) when the operator cancels.
    """

    def __init__(self, pick_entries: Callable[[], Optional[Sequence[FlatEntry]]]) -> None:
        self._pick_entries = pick_entries

    def read_folder(self) -> FolderScan:
        entries = self._pick_entries()
        if not entries:
            raise AcquisitionCancelled("No files were selected.")
        log.info("Reading %d file(s) from flat listing", len(entries))
        return scan_flat_entries(entries)


def entries_from_archive(path: Path) -> List[FlatEntry]:
    """List the files of a ZIP archive as :class:`FlatEntry` objects.

    Archives whose members do not share a single top-level directory are
    rooted under the archive stem so that every path carries a root segment.
    """

    path = Path(path)
    try:
        with zipfile.ZipFile(path) as archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            names = [info.filename.replace("\\", "/") for info in members]
            tops = {name.split("/")[0] for name in names}
            rooted = len(tops) == 1 and all("/" in name for name in names)
            entries: List[FlatEntry] = []
            for info, name in zip(members, names):
                try:
                    data = archive.read(info)
                except (zipfile.BadZipFile, OSError) as exc:
                    log.warning("Skipping unreadable archive member %s: %s", name, exc)
                    continue
                relative = name if rooted else f"{path.stem}/{name}"
                basename = name.rsplit("/", 1)[-1]
                entries.append(
                    FlatEntry(
                        relative_path=relative,
                        source=MemorySource(basename, data),
                        mime_type=mimetypes.guess_type(basename)[0],
                    )
                )
    except (zipfile.BadZipFile, OSError) as exc:
        raise AcquisitionFailed(f"Could not read archive {path}: {exc}") from exc
    return entries


def entries_from_tree(root: Path) -> List[FlatEntry]:
    """List every readable file below ``root`` with ``<root>/...`` paths."""

    root = Path(root)
    if not root.is_dir():
        raise AcquisitionFailed(f"Not a directory: {root}")
    entries: List[FlatEntry] = []
    try:
        paths = sorted(root.rglob("*"))
    except OSError as exc:
        raise AcquisitionFailed(f"Could not list {root}: {exc}") from exc
    for path in paths:
        if not _readable(path):
            continue
        relative = f"{root.name}/{path.relative_to(root).as_posix()}"
        entries.append(
            FlatEntry(
                relative_path=relative,
                source=PathSource(path),
                mime_type=mimetypes.guess_type(path.name)[0],
            )
        )
    return entries


def open_folder(primary: Optional[FolderReader], fallback: FolderReader) -> FolderScan:
    """Acquire a dataset folder, preferring ``primary`` when available."""

    if primary is None:
        log.info("Structured folder access unavailable; using flat file listing.")
        return fallback.read_folder()
    try:
        return primary.read_folder()
    except AcquisitionCancelled:
        raise
    except AcquisitionError as exc:
        log.warning("Structured folder read failed (%s); falling back to flat file listing.", exc)
    return fallback.read_folder()


def folder_readers(source: Path) -> tuple[Optional[FolderReader], FolderReader]:
    """Return the ``(primary, fallback)`` readers for a path given on the command line."""

    source = Path(source)
    if source.is_file() and zipfile.is_zipfile(source):
        return None, FlatListReader(lambda: entries_from_archive(source))
    return (
        DirectoryTreeReader(lambda: source),
        FlatListReader(lambda: entries_from_tree(source)),
    )


__all__ = [
    "AcquisitionCancelled",
    "AcquisitionError",
    "AcquisitionFailed",
    "AcquisitionUnsupported",
    "AnnotationChooser",
    "ByteSource",
    "DirectoryTreeReader",
    "FlatEntry",
    "FlatListReader",
    "FolderReader",
    "FolderScan",
    "IMAGE_EXTENSIONS",
    "MemorySource",
    "PathSource",
    "entries_from_archive",
    "entries_from_tree",
    "folder_readers",
    "is_image_name",
    "open_folder",
    "scan_directory",
    "scan_flat_entries",
]
