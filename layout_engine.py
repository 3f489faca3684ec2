#!/usr/bin/env python3
"""
Lyricbook layout engine.

Turns an ordered list of song documents plus page geometry into a RenderPlan:
an ordered sequence of pages, each an ordered sequence of draw operations.

The engine performs no I/O and holds no state between calls. Text measurement
is injected (see TextMetrics) so any backend can supply its own font metrics;
pdf_writer.ReportlabMetrics is the one used for real PDF output.

Coordinates are millimetres measured from the top-left corner of the page.
Text y positions are baselines.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional, Protocol, Sequence, Tuple, Union

BACKGROUND_FITS = ("stretch", "cover", "contain", "tile")

_DATA_URL_RE = re.compile(r"^data:[^;,]*(;base64)?,", re.IGNORECASE)


class InvalidGeometryError(ValueError):
    """Raised when the page geometry leaves no usable area."""


# -----------------------------
# Inputs
# -----------------------------
@dataclass(frozen=True)
class Document:
    """One song entry, ready for layout (lyrics already decoded)."""

    id: str
    title: str
    body: str
    tags: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Padding:
    top: float = 20.0
    right: float = 20.0
    bottom: float = 20.0
    left: float = 20.0


@dataclass(frozen=True)
class PageGeometry:
    page_width: float = 210.0
    page_height: float = 297.0
    padding: Padding = field(default_factory=Padding)

    @property
    def usable_width(self) -> float:
        return self.page_width - self.padding.left - self.padding.right

    @property
    def usable_height(self) -> float:
        return self.page_height - self.padding.top - self.padding.bottom

    @property
    def bottom_limit(self) -> float:
        """Lowest baseline (from the top) allowed before a page break."""
        return self.page_height - self.padding.bottom

    def validate(self) -> None:
        if self.page_width <= 0 or self.page_height <= 0:
            raise InvalidGeometryError(
                f"Page size must be positive, got {self.page_width} x {self.page_height} mm"
            )
        p = self.padding
        for side, value in (("top", p.top), ("right", p.right), ("bottom", p.bottom), ("left", p.left)):
            if value < 0:
                raise InvalidGeometryError(f"Padding {side} must be >= 0, got {value}")
        if self.usable_width <= 0:
            raise InvalidGeometryError(
                f"Left + right padding ({p.left} + {p.right} mm) leaves no usable width "
                f"on a {self.page_width} mm wide page"
            )
        if self.usable_height <= 0:
            raise InvalidGeometryError(
                f"Top + bottom padding ({p.top} + {p.bottom} mm) leaves no usable height "
                f"on a {self.page_height} mm tall page"
            )


@dataclass(frozen=True)
class Background:
    """
    Opaque background image payload, drawn full-bleed on every page.

    `fit` and `opacity` are rendering hints for the backend; the engine never
    looks inside `data`.
    """

    data: bytes
    fit: str = "stretch"
    opacity: float = 1.0

    def __post_init__(self) -> None:
        if self.fit not in BACKGROUND_FITS:
            raise ValueError(f"Unknown background fit {self.fit!r}; use one of {', '.join(BACKGROUND_FITS)}")
        if not 0.0 <= self.opacity <= 1.0:
            raise ValueError(f"Background opacity must be within 0..1, got {self.opacity}")

    @classmethod
    def from_base64(cls, payload: str, *, fit: str = "stretch", opacity: float = 1.0) -> "Background":
        """
        Build a Background from plain base64 or a ``data:image/...;base64,`` URL.

        Raises ValueError if the payload is not valid base64.
        """
        text = (payload or "").strip()
        text = _DATA_URL_RE.sub("", text, count=1)
        if not text:
            raise ValueError("Background payload is empty")
        try:
            data = base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Background payload is not valid base64: {e}") from e
        return cls(data=data, fit=fit, opacity=opacity)


class TextMetrics(Protocol):
    """Width measurement supplied by the rendering backend. Widths are in mm."""

    def measure_text_width(self, text: str, font_size: float, font_name: str) -> float:
        ...

    def wrap_to_width(self, text: str, max_width: float, font_size: float, font_name: str) -> List[str]:
        ...


@dataclass(frozen=True)
class LayoutConfig:
    """Fixed typographic constants (sizes in pt, distances in mm)."""

    title_font: str = "Helvetica-Bold"
    title_size: float = 20.0
    title_line_advance: float = 10.0
    title_gap: float = 10.0

    body_font: str = "Helvetica"
    body_size: float = 12.0
    body_line_advance: float = 7.0
    wrap_advance: float = 5.0

    divider_gap_before: float = 15.0
    divider_gap_after: float = 25.0
    divider_color: Tuple[int, int, int] = (200, 200, 200)
    trailing_gap: float = 15.0

    logo_width: float = 80.0
    logo_height: float = 75.0
    logo_raise: float = 10.0


# -----------------------------
# Output
# -----------------------------
@dataclass(frozen=True)
class DrawBackground:
    background: Background


@dataclass(frozen=True)
class PlaceLogo:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PlaceText:
    text: str
    x: float
    y: float
    font_name: str
    font_size: float


@dataclass(frozen=True)
class DrawLine:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Tuple[int, int, int] = (0, 0, 0)


@dataclass(frozen=True)
class NewPage:
    number: int


DrawOp = Union[DrawBackground, PlaceLogo, PlaceText, DrawLine]


@dataclass(frozen=True)
class Page:
    number: int
    operations: Tuple[DrawOp, ...]

    def texts(self) -> List[str]:
        return [op.text for op in self.operations if isinstance(op, PlaceText)]


@dataclass(frozen=True)
class RenderPlan:
    page_width: float
    page_height: float
    pages: Tuple[Page, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def operations(self) -> Iterator[Union[NewPage, DrawOp]]:
        """Flattened stream: a NewPage marker, then that page's operations."""
        for page in self.pages:
            yield NewPage(page.number)
            yield from page.operations


# -----------------------------
# Engine
# -----------------------------
class _Cursor:
    """Per-call mutable state: finished pages plus the page being filled."""

    def __init__(self, geometry: PageGeometry, background: Optional[Background]) -> None:
        self.geometry = geometry
        self.background = background
        self.pages: List[Page] = []
        self.current_page = 0
        self.y_position = geometry.padding.top
        self._ops: List[DrawOp] = []

    def start_page(self) -> None:
        self.finish_page()
        self.current_page += 1
        self.y_position = self.geometry.padding.top
        self._ops = []
        if self.background is not None:
            self._ops.append(DrawBackground(self.background))

    def finish_page(self) -> None:
        if self.current_page:
            self.pages.append(Page(self.current_page, tuple(self._ops)))
            self._ops = []

    def break_if_needed(self) -> None:
        if self.y_position > self.geometry.bottom_limit:
            self.start_page()

    def emit(self, op: DrawOp) -> None:
        self._ops.append(op)

    def advance(self, amount: float) -> None:
        self.y_position += amount


def _centred_x(text: str, font_size: float, font_name: str, geometry: PageGeometry, metrics: TextMetrics) -> float:
    width = metrics.measure_text_width(text, font_size, font_name)
    return geometry.padding.left + (geometry.usable_width - width) / 2.0


def _layout_document(doc: Document, cur: _Cursor, metrics: TextMetrics, config: LayoutConfig) -> None:
    geometry = cur.geometry
    usable = geometry.usable_width

    for line in metrics.wrap_to_width(doc.title, usable, config.title_size, config.title_font):
        if line:
            x = _centred_x(line, config.title_size, config.title_font, geometry, metrics)
            cur.emit(PlaceText(line, x, cur.y_position, config.title_font, config.title_size))
        cur.advance(config.title_line_advance)
    cur.advance(config.title_gap)

    for raw in doc.body.split("\n"):
        line = raw.rstrip("\r")
        cur.break_if_needed()

        if not line.strip():
            cur.advance(config.body_line_advance)
            continue

        segments = metrics.wrap_to_width(line, usable, config.body_size, config.body_font)
        for i, seg in enumerate(segments):
            x = _centred_x(seg, config.body_size, config.body_font, geometry, metrics)
            cur.emit(PlaceText(seg, x, cur.y_position, config.body_font, config.body_size))
            if i < len(segments) - 1:
                cur.advance(config.wrap_advance)
        cur.advance(config.body_line_advance)


def layout(
    documents: Sequence[Document],
    geometry: PageGeometry,
    background: Optional[Background] = None,
    *,
    metrics: TextMetrics,
    config: Optional[LayoutConfig] = None,
) -> RenderPlan:
    """
    Lay out `documents` (in the given order) into a RenderPlan.

    Page 1 is a cover page (background + centred logo); songs start on page 2.
    An empty document list yields a plan with no pages at all.

    Raises InvalidGeometryError if the geometry leaves no usable area.
    """
    geometry.validate()
    config = config or LayoutConfig()

    if not documents:
        return RenderPlan(geometry.page_width, geometry.page_height, ())

    cur = _Cursor(geometry, background)

    # Cover page
    cur.start_page()
    cur.emit(
        PlaceLogo(
            x=(geometry.page_width - config.logo_width) / 2.0,
            y=(geometry.page_height - config.logo_height) / 2.0 - config.logo_raise,
            width=config.logo_width,
            height=config.logo_height,
        )
    )

    cur.start_page()
    last = len(documents) - 1
    for index, doc in enumerate(documents):
        _layout_document(doc, cur, metrics, config)

        if index < last:
            cur.advance(config.divider_gap_before)
            cur.emit(
                DrawLine(
                    geometry.padding.left,
                    cur.y_position,
                    geometry.page_width - geometry.padding.right,
                    cur.y_position,
                    config.divider_color,
                )
            )
            cur.advance(config.divider_gap_after)
            cur.break_if_needed()
        else:
            cur.advance(config.trailing_gap)

    cur.finish_page()
    return RenderPlan(geometry.page_width, geometry.page_height, tuple(cur.pages))
