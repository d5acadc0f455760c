from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def png_bytes(size: tuple[int, int] = (24, 8), color: str = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_dataset(tmp_path):
    """Create ``<tmp>/<name>/`` with an annotation file and image crops."""

    def _make(
        annotation: str | None,
        images: list[str],
        *,
        name: str = "dataset",
        annotation_name: str = "rec_gt_train.txt",
    ) -> Path:
        root = tmp_path / name
        root.mkdir()
        if annotation is not None:
            (root / annotation_name).write_text(annotation, encoding="utf8")
        for key in images:
            target = root / key
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(png_bytes())
        return root

    return _make
