#!/usr/bin/env python3
"""
Persisted export settings (``<root>/settings.json``).

{
  "page": "A4",
  "padding": {"top": 20, "right": 20, "bottom": 20, "left": 20},
  "template_index": 0,
  "bg_mode": "stretch",
  "bg_opacity": 1.0,
  "logo": ""
}

Missing keys fall back to the defaults above. Command-line flags override
these for a single run.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from reportlab.lib.pagesizes import A4, A5, letter
from reportlab.lib.units import mm

from layout_engine import BACKGROUND_FITS, Padding, PageGeometry

PAGE_SIZES: Dict[str, tuple] = {
    "A4": A4,
    "A5": A5,
    "LETTER": letter,
}


@dataclass(frozen=True)
class Settings:
    page: str = "A4"
    padding: Padding = field(default_factory=Padding)
    template_index: int = 0
    bg_mode: str = "stretch"
    bg_opacity: float = 1.0
    logo: str = ""

    def geometry(self) -> PageGeometry:
        w, h = PAGE_SIZES[self.page]
        return PageGeometry(page_width=round(w / mm, 1), page_height=round(h / mm, 1), padding=self.padding)

    def logo_path(self, root: Path) -> Optional[Path]:
        if not self.logo:
            return None
        p = Path(self.logo)
        return p if p.is_absolute() else (root / p)

    def with_padding(self, **sides: Optional[float]) -> "Settings":
        """Copy with any non-None padding sides replaced."""
        changes = {k: float(v) for k, v in sides.items() if v is not None}
        if not changes:
            return self
        return replace(self, padding=replace(self.padding, **changes))


def _number(value: Any, name: str, *, minimum: float = 0.0) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"settings.json: {name} must be a number, got {value!r}")
    if v < minimum:
        raise ValueError(f"settings.json: {name} must be >= {minimum}, got {v}")
    return v


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    d = Settings()
    page = str(data.get("page") or d.page).upper()
    if page not in PAGE_SIZES:
        raise ValueError(f"settings.json: page must be one of {', '.join(PAGE_SIZES)}, got {page!r}")

    pad_in = data.get("padding") or {}
    if not isinstance(pad_in, dict):
        raise ValueError("settings.json: padding must be an object")
    padding = Padding(**{
        side: _number(pad_in.get(side, getattr(d.padding, side)), f"padding.{side}")
        for side in ("top", "right", "bottom", "left")
    })

    bg_mode = str(data.get("bg_mode") or d.bg_mode).lower()
    if bg_mode not in BACKGROUND_FITS:
        raise ValueError(f"settings.json: bg_mode must be one of {', '.join(BACKGROUND_FITS)}, got {bg_mode!r}")
    bg_opacity = _number(data.get("bg_opacity", d.bg_opacity), "bg_opacity")
    if bg_opacity > 1.0:
        raise ValueError(f"settings.json: bg_opacity must be <= 1.0, got {bg_opacity}")

    return Settings(
        page=page,
        padding=padding,
        template_index=int(_number(data.get("template_index", 0), "template_index")),
        bg_mode=bg_mode,
        bg_opacity=bg_opacity,
        logo=str(data.get("logo") or ""),
    )


def load_settings(root: Path) -> Settings:
    path = root / "settings.json"
    if not path.is_file():
        return Settings()
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return settings_from_dict(data)


def save_settings(root: Path, settings: Settings) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / "settings.json"
    path.write_text(json.dumps(asdict(settings), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
