"""Tkinter reviewer for correcting OCR labels."""
from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox
from typing import List, Optional

from PIL import ImageTk

from .collector import (
    AcquisitionFailed,
    AcquisitionUnsupported,
    DirectoryTreeReader,
    FlatEntry,
    FlatListReader,
    entries_from_archive,
)
from .query import SORT_LABELS, SortOption
from .reconcile import Item
from .session import ReviewSession
from .verification import has_conflict

log = logging.getLogger(__name__)


def _ask_directory() -> Optional[Path]:
    try:
        chosen = filedialog.askdirectory(title="Open dataset folder", mustexist=True)
    except tk.TclError as exc:
        raise AcquisitionUnsupported(str(exc)) from exc
    return Path(chosen) if chosen else None


def _ask_archive() -> Optional[List[FlatEntry]]:
    chosen = filedialog.askopenfilename(
        title="Open dataset archive",
        filetypes=[("ZIP archives", "*.zip"), ("All files", "*.*")],
    )
    if not chosen:
        return None
    return entries_from_archive(Path(chosen))


class TkReviewer:
    """Sidebar list plus editor, bound to a :class:`ReviewSession`."""

    def __init__(self, session: ReviewSession, *, export_dir: Path = Path(".")) -> None:
        self.session = session
        self._export_dir = export_dir
        self._root = tk.Tk()
        self._root.title("OCR Verifier")
        self._root.protocol("WM_DELETE_WINDOW", self.destroy)

        self._search_var = tk.StringVar(value="")
        self._sort_var = tk.StringVar(value=SORT_LABELS[SortOption.FILENAME_ASC])
        self._unverified_var = tk.BooleanVar(value=False)
        self._diffs_var = tk.BooleanVar(value=False)
        self._header_var = tk.StringVar(value="")
        self._count_var = tk.StringVar(value="")
        self._status_var = tk.StringVar(value="")

        sidebar = tk.Frame(self._root, padx=8, pady=8)
        sidebar.pack(side="left", fill="y")
        search = tk.Entry(sidebar, textvariable=self._search_var)
        search.pack(fill="x")
        self._search_var.trace_add("write", lambda *_args: self._on_filters_changed())
        tk.OptionMenu(
            sidebar,
            self._sort_var,
            *SORT_LABELS.values(),
            command=lambda _value: self._on_filters_changed(),
        ).pack(fill="x", pady=(6, 0))
        tk.Checkbutton(
            sidebar, text="Only unverified", variable=self._unverified_var, command=self._on_filters_changed
        ).pack(anchor="w")
        tk.Checkbutton(
            sidebar, text="Only diffs", variable=self._diffs_var, command=self._on_filters_changed
        ).pack(anchor="w")
        tk.Label(sidebar, textvariable=self._count_var, anchor="w", fg="#555").pack(fill="x")
        self._listbox = tk.Listbox(sidebar, width=40, exportselection=False)
        self._listbox.pack(fill="y", expand=True)
        self._listbox.bind("<<ListboxSelect>>", self._on_list_select)

        main = tk.Frame(self._root, padx=12, pady=8)
        main.pack(side="left", fill="both", expand=True)
        header = tk.Frame(main)
        header.pack(fill="x")
        tk.Label(header, textvariable=self._header_var, anchor="w").pack(side="left")
        tk.Button(header, text="Export TXT", command=self._export).pack(side="right")
        tk.Button(header, text="Switch Folder", command=self.open_folder).pack(side="right", padx=8)

        self._canvas = tk.Canvas(main, width=640, height=240, bg="#111")
        self._canvas.pack(fill="x", pady=(8, 8))
        tk.Label(main, textvariable=self._status_var, anchor="w").pack(fill="x")

        self._conflict = tk.Frame(main)
        self._adopt_original_btn = tk.Button(self._conflict, command=self._adopt_original)
        self._adopt_comparison_btn = tk.Button(self._conflict, command=self._adopt_comparison)
        tk.Label(self._conflict, text="CONFLICT DETECTED", fg="#b45309").pack(side="left")
        self._adopt_original_btn.pack(side="left", padx=8)
        self._adopt_comparison_btn.pack(side="left")

        self._text = tk.Text(main, height=4, wrap="word")
        self._text.pack(fill="x", pady=(8, 4))
        self._text.bind("<KeyRelease>", self._on_text_changed)
        self._text.bind("<Control-Return>", self._on_verify_key)
        # Labels are single-line records.
        self._text.bind("<Return>", lambda _e: "break")
        self._text.bind("<KP_Enter>", lambda _e: "break")
        self._text.bind("<Control-Right>", lambda _e: self._navigate(forward=True))
        self._text.bind("<Control-Left>", lambda _e: self._navigate(forward=False))

        buttons = tk.Frame(main)
        buttons.pack(fill="x")
        tk.Button(buttons, text="Mark as verified", command=self._verify).pack(side="left")
        tk.Button(buttons, text="Clear", command=self._clear).pack(side="left", padx=8)
        tk.Button(buttons, text="Un-verify", command=self._unverify).pack(side="left")

        self._photo: Optional[ImageTk.PhotoImage] = None
        self._visible: List[int] = []

    def run(self) -> None:
        if not self.session.items:
            self.open_folder()
        self.refresh()
        self._root.mainloop()

    def destroy(self) -> None:
        self.session.close()
        try:
            self._root.destroy()
        except tk.TclError:
            pass

    # ------------------------------------------------------------------
    # Dataset actions
    # ------------------------------------------------------------------
    def open_folder(self) -> None:
        try:
            opened = self.session.open(DirectoryTreeReader(_ask_directory), FlatListReader(_ask_archive))
        except AcquisitionFailed as exc:
            log.exception("Could not open dataset")
            messagebox.showerror("Error reading files", str(exc))
            return
        if opened:
            self._sort_var.set(SORT_LABELS[SortOption.FILENAME_ASC])
            self._search_var.set("")
            self._unverified_var.set(False)
            self._diffs_var.set(False)
            self.refresh()

    def _export(self) -> None:
        path = self.session.export(self._export_dir)
        if path is not None:
            messagebox.showinfo("Export", f"Saved {path}")

    # ------------------------------------------------------------------
    # UI helpers
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        self._visible = self.session.visible_indices()
        self._listbox.delete(0, tk.END)
        for index in self._visible:
            item = self.session.items[index]
            mark = "[x]" if item.is_verified else "[ ]"
            self._listbox.insert(tk.END, f"{mark} {item.filename}  {item.text}")
        if self.session.selected_index in self._visible:
            position = self._visible.index(self.session.selected_index)
            self._listbox.selection_clear(0, tk.END)
            self._listbox.selection_set(position)
            self._listbox.see(position)
        self._count_var.set(
            f"{len(self._visible)} items found  |  {self.session.verified_count} verified"
        )
        self._header_var.set(
            f"{self.session.folder_name}  {self.session.verified_count} / {len(self.session.items)} Verified"
        )
        self._show_item(self.session.selected)

    def _show_item(self, item: Optional[Item], *, focus: bool = False) -> None:
        self._canvas.delete("all")
        self._text.delete("1.0", tk.END)
        if item is None:
            self._status_var.set("Select an item from the list to start verification.")
            self._conflict.pack_forget()
            return
        self._text.insert("1.0", item.text)
        position = self.session.items.index(item) + 1
        state = "verified" if item.is_verified else "unverified"
        self._status_var.set(f"{position} / {len(self.session.items)}  |  {item.filename}  |  {state}")
        if item.preview is not None:
            self._photo = ImageTk.PhotoImage(item.preview.render())
            self._canvas.create_image(0, 0, image=self._photo, anchor="nw")
        else:
            self._photo = None
            self._canvas.create_text(12, 12, text="Image not found", fill="#ccc", anchor="nw")
        if has_conflict(item):
            self._adopt_original_btn.configure(text=item.original_text)
            self._adopt_comparison_btn.configure(text=item.comparison_text or "")
            self._conflict.pack(fill="x", before=self._text)
        else:
            self._conflict.pack_forget()
        if focus:
            self._text.focus_set()

    def _current_text(self) -> str:
        return self._text.get("1.0", "end-1c")

    def _on_filters_changed(self) -> None:
        labels = {label: option.value for option, label in SORT_LABELS.items()}
        filters = self.session.filters
        filters.search = self._search_var.get()
        filters.sort = labels.get(self._sort_var.get(), filters.sort)
        filters.show_only_unverified = self._unverified_var.get()
        filters.show_only_diffs = self._diffs_var.get()
        self.refresh()

    def _on_list_select(self, _event) -> None:
        selection = self._listbox.curselection()
        if not selection:
            return
        self.session.select(self._visible[selection[0]])
        self._show_item(self.session.selected, focus=True)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _on_text_changed(self, _event) -> None:
        item = self.session.selected
        if item is None:
            return
        was_verified = item.is_verified
        self.session.edit(item.id, self._current_text())
        if was_verified != item.is_verified:
            self.refresh()

    def _on_verify_key(self, _event) -> str:
        self._verify()
        return "break"

    def _verify(self) -> None:
        item = self.session.selected
        if item is None:
            return
        self.session.verify(item.id, self._current_text())
        self.session.select_next()
        self.refresh()

    def _unverify(self) -> None:
        item = self.session.selected
        if item is not None:
            self.session.unverify(item.id)
            self.refresh()

    def _clear(self) -> None:
        item = self.session.selected
        if item is not None:
            self.session.clear(item.id)
            self.refresh()

    def _adopt_original(self) -> None:
        item = self.session.selected
        if item is not None:
            self.session.adopt_original(item.id)
            self.refresh()

    def _adopt_comparison(self) -> None:
        item = self.session.selected
        if item is not None:
            self.session.adopt_comparison(item.id)
            self.refresh()

    def _navigate(self, *, forward: bool) -> str:
        if forward:
            self.session.select_next()
        else:
            self.session.select_previous()
        self.refresh()
        return "break"


__all__ = ["TkReviewer"]
