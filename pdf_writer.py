#!/usr/bin/env python3
"""
ReportLab backend for the lyricbook.

- ReportlabMetrics: text measurement/wrapping used by layout_engine.layout()
- register_font_pack: Unicode font discovery (falls back to Helvetica)
- make_pdf: replays a RenderPlan onto a reportlab canvas

Background and logo draws are attempted per page. A failure on one page is
reported through `on_error` and that page is rendered without the image.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from loguru import logger
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from layout_engine import (
    Background,
    DrawBackground,
    DrawLine,
    LayoutConfig,
    NewPage,
    PlaceLogo,
    PlaceText,
    RenderPlan,
)

ErrorReporter = Callable[[int, Exception], None]


def log_draw_failure(page_number: int, exc: Exception) -> None:
    """Default error reporter: log and keep going."""
    logger.warning(f"Skipped image on page {page_number}: {exc}")


# -----------------------------
# Text metrics
# -----------------------------
class ReportlabMetrics:
    """TextMetrics backed by reportlab's font tables. Widths are returned in mm."""

    def measure_text_width(self, text: str, font_size: float, font_name: str) -> float:
        return pdfmetrics.stringWidth(text, font_name, font_size) / mm

    def wrap_to_width(self, text: str, max_width: float, font_size: float, font_name: str) -> List[str]:
        """
        Greedy word wrap. A single word wider than `max_width` is kept whole on
        its own line rather than split mid-word.
        """
        lines: List[str] = []
        for paragraph in (text or "").split("\n"):
            words = paragraph.split()
            if not words:
                lines.append("")
                continue
            cur: List[str] = []
            for w in words:
                tentative = " ".join(cur + [w])
                if not cur or self.measure_text_width(tentative, font_size, font_name) <= max_width:
                    cur.append(w)
                else:
                    lines.append(" ".join(cur))
                    cur = [w]
            lines.append(" ".join(cur))
        return lines or [""]


# -----------------------------
# Fonts
# -----------------------------
@dataclass(frozen=True)
class FontPack:
    regular: str
    bold: str
    unicode_ok: bool

    def layout_config(self, **overrides) -> LayoutConfig:
        return LayoutConfig(title_font=self.bold, body_font=self.regular, **overrides)


_SYSTEM_FONT_CANDIDATES: List[Tuple[Path, Path]] = [
    # Linux (Debian/Ubuntu)
    (
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    ),
    # Linux (various)
    (
        Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
    ),
    # macOS (Supplemental)
    (
        Path("/System/Library/Fonts/Supplemental/DejaVu Sans.ttf"),
        Path("/System/Library/Fonts/Supplemental/DejaVu Sans Bold.ttf"),
    ),
]


def register_font_pack(base_dir: Optional[Path] = None) -> FontPack:
    """
    Register a Unicode-capable regular/bold pair for lyrics in non-Latin scripts.

    Prefers ./fonts/DejaVuSans*.ttf under `base_dir`, then common system
    locations. Falls back to the built-in Helvetica pair (Latin-1 only).
    """
    fallback = FontPack(regular="Helvetica", bold="Helvetica-Bold", unicode_ok=False)

    candidates: List[Tuple[Path, Path]] = []
    if base_dir is not None and (base_dir / "fonts").is_dir():
        fonts_dir = base_dir / "fonts"
        candidates.append((fonts_dir / "DejaVuSans.ttf", fonts_dir / "DejaVuSans-Bold.ttf"))
    candidates.extend(_SYSTEM_FONT_CANDIDATES)

    def reg_font(fp: Path, suffix: str) -> Optional[str]:
        if not fp.is_file():
            return None
        name = f"Lyricbook-{suffix}-{fp.stem}"
        if name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(name, str(fp)))
        return name

    for reg_fp, bold_fp in candidates:
        try:
            reg_name = reg_font(reg_fp, "Regular")
            if not reg_name:
                continue
            bold_name = reg_font(bold_fp, "Bold") or reg_name
            return FontPack(regular=reg_name, bold=bold_name, unicode_ok=True)
        except Exception as e:
            logger.warning(f"Could not register font {reg_fp}: {e}")
            continue

    return fallback


# -----------------------------
# PDF output
# -----------------------------
def _image_bytes(source: Union[bytes, Path, str]) -> bytes:
    if isinstance(source, bytes):
        return source
    return Path(source).read_bytes()


def make_pdf(
    plan: RenderPlan,
    out_path: Path,
    *,
    logo: Union[bytes, Path, str, None] = None,
    on_error: Optional[ErrorReporter] = None,
    title: str = "",
) -> Optional[Path]:
    """
    Write `plan` to `out_path`. Returns the written path, or None when the
    plan has no pages (nothing is written in that case).
    """
    if not plan.pages:
        return None

    report = on_error or log_draw_failure
    W = plan.page_width * mm
    H = plan.page_height * mm
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    c = canvas.Canvas(str(out_path), pagesize=(W, H))
    if title:
        c.setTitle(title)

    def draw_bg(bg: Background) -> None:
        img = ImageReader(io.BytesIO(bg.data))
        iw, ih = img.getSize()
        if not iw or not ih:
            raise ValueError("background image has no size")

        c.saveState()
        try:
            if bg.opacity < 1.0:
                c.setFillAlpha(bg.opacity)

            if bg.fit == "tile":
                # Scale each tile to "contain" once, then repeat to cover the page.
                scale = min(W / iw, H / ih)
                tw = max(1.0, iw * scale)
                th = max(1.0, ih * scale)
                for ix in range(int(math.ceil(W / tw))):
                    for iy in range(int(math.ceil(H / th))):
                        c.drawImage(img, ix * tw, iy * th, width=tw, height=th, mask="auto")
            elif bg.fit in ("cover", "contain"):
                scale = max(W / iw, H / ih) if bg.fit == "cover" else min(W / iw, H / ih)
                dw = iw * scale
                dh = ih * scale
                c.drawImage(img, (W - dw) / 2.0, (H - dh) / 2.0, width=dw, height=dh, mask="auto")
            else:
                c.drawImage(img, 0, 0, width=W, height=H, mask="auto")
        finally:
            c.restoreState()

    def draw_logo(op: PlaceLogo) -> None:
        img = ImageReader(io.BytesIO(_image_bytes(logo)))
        c.drawImage(
            img,
            op.x * mm,
            H - (op.y + op.height) * mm,
            width=op.width * mm,
            height=op.height * mm,
            mask="auto",
        )

    page_number = 0
    for op in plan.operations():
        if isinstance(op, NewPage):
            if page_number:
                c.showPage()
            page_number = op.number
        elif isinstance(op, DrawBackground):
            try:
                draw_bg(op.background)
            except Exception as e:
                report(page_number, e)
        elif isinstance(op, PlaceLogo):
            if logo is None:
                continue
            try:
                draw_logo(op)
            except Exception as e:
                report(page_number, e)
        elif isinstance(op, PlaceText):
            c.setFillColorRGB(0, 0, 0)
            c.setFont(op.font_name, op.font_size)
            c.drawString(op.x * mm, H - op.y * mm, op.text)
        elif isinstance(op, DrawLine):
            r, g, b = op.color
            c.setStrokeColorRGB(r / 255.0, g / 255.0, b / 255.0)
            c.line(op.x1 * mm, H - op.y1 * mm, op.x2 * mm, H - op.y2 * mm)

    c.showPage()
    c.save()
    return out_path
