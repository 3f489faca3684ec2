"""
Shared fixtures for the lyricbook tests.

FakeMetrics gives every character the same width (font_size * 0.25 mm), so
positions in layout tests can be worked out by hand:
  body  (12 pt): 3 mm per character, 56 characters fit in 170 mm
  title (20 pt): 5 mm per character, 34 characters fit in 170 mm
"""

import io
from pathlib import Path
from typing import List

import pytest
from PIL import Image

from layout_engine import Document, Padding, PageGeometry


class FakeMetrics:
    def measure_text_width(self, text: str, font_size: float, font_name: str) -> float:
        return len(text) * font_size * 0.25

    def wrap_to_width(self, text: str, max_width: float, font_size: float, font_name: str) -> List[str]:
        words = text.split()
        if not words:
            return [""]
        lines: List[str] = []
        cur: List[str] = []
        for w in words:
            tentative = " ".join(cur + [w])
            if not cur or self.measure_text_width(tentative, font_size, font_name) <= max_width:
                cur.append(w)
            else:
                lines.append(" ".join(cur))
                cur = [w]
        lines.append(" ".join(cur))
        return lines


@pytest.fixture
def metrics() -> FakeMetrics:
    return FakeMetrics()


@pytest.fixture
def a4() -> PageGeometry:
    return PageGeometry(210.0, 297.0, Padding(20.0, 20.0, 20.0, 20.0))


def make_doc(title: str = "A", body: str = "B", doc_id: str = "", tags=()) -> Document:
    return Document(id=doc_id or title.lower() or "doc", title=title, body=body, tags=frozenset(tags))


def image_bytes(fmt: str = "JPEG", size=(40, 60), color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def library(tmp_path: Path) -> Path:
    """An empty library root."""
    root = tmp_path / "library"
    root.mkdir()
    return root
