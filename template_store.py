#!/usr/bin/env python3
"""
Background template gallery.

Templates live in ``<root>/templates/<id>.json`` as
{"id", "name", "data" (data URL), "is_default", "created_at"}.
The first template (the generated white page) is the default and cannot be
deleted. Which template is selected is persisted by settings.py, not here.
"""

from __future__ import annotations

import base64
import io
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from PIL import Image, UnidentifiedImageError

from layout_engine import Background

DEFAULT_TEMPLATE_ID = "default-white-template"
DEFAULT_TEMPLATE_NAME = "Default White Template"


@dataclass(frozen=True)
class TemplateSelection:
    """The user's template choice, resolved to a drawable background."""

    template_id: Optional[str]
    name: Optional[str]
    background: Optional[Background]


def _templates_dir(root: Path) -> Path:
    return root / "templates"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _data_url(raw: bytes, mime: str) -> str:
    return f"data:{mime};base64," + base64.b64encode(raw).decode("ascii")


def _write_template(root: Path, template: Dict[str, Any]) -> Path:
    d = _templates_dir(root)
    d.mkdir(parents=True, exist_ok=True)
    path = d / f"{template['id']}.json"
    path.write_text(json.dumps(template, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def generate_white_template() -> Dict[str, Any]:
    """A blank white A4-proportioned JPEG (210 x 297 px)."""
    buf = io.BytesIO()
    Image.new("RGB", (210, 297), (255, 255, 255)).save(buf, format="JPEG")
    return {
        "id": DEFAULT_TEMPLATE_ID,
        "data": _data_url(buf.getvalue(), "image/jpeg"),
        "name": DEFAULT_TEMPLATE_NAME,
        "is_default": True,
        "created_at": _now_ms(),
    }


def list_templates(root: Path) -> List[Dict[str, Any]]:
    """All templates, oldest first (default template first)."""
    d = _templates_dir(root)
    if not d.is_dir():
        return []
    out: List[Dict[str, Any]] = []
    for p in sorted(d.glob("*.json")):
        try:
            t = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable template {p}: {e}")
            continue
        if isinstance(t, dict):
            t.setdefault("id", p.stem)
            out.append(t)
    out.sort(key=lambda t: (not t.get("is_default", False), int(t.get("created_at") or 0), str(t["id"])))
    return out


def ensure_default_template(root: Path) -> List[Dict[str, Any]]:
    """Return the template list, creating the white default on first run."""
    templates = list_templates(root)
    if not templates:
        default = generate_white_template()
        _write_template(root, default)
        logger.info(f"Created default template in {_templates_dir(root)}")
        templates = [default]
    return templates


def add_template(root: Path, image_path: Path, name: Optional[str] = None) -> Dict[str, Any]:
    """
    Add an image file to the gallery.

    Raises ValueError if the file is not an image Pillow can identify.
    """
    raw = Path(image_path).read_bytes()
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = (img.format or "JPEG").upper()
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Not a usable image: {image_path} ({e})") from e

    templates = ensure_default_template(root)
    created = _now_ms()
    template_id = f"template-{created}"
    existing = {str(t["id"]) for t in templates}
    n = 2
    while template_id in existing:
        template_id = f"template-{created}-{n}"
        n += 1

    template = {
        "id": template_id,
        "data": _data_url(raw, Image.MIME.get(fmt, "image/jpeg")),
        "name": name or f"Template {len(templates) + 1}",
        "is_default": False,
        "created_at": created,
    }
    _write_template(root, template)
    return template


def delete_template(root: Path, index: int) -> Dict[str, Any]:
    """
    Delete the template at *index* (in list_templates order) and return it.

    Raises IndexError for an out-of-range index and ValueError for the default.
    """
    templates = list_templates(root)
    if index < 0 or index >= len(templates):
        raise IndexError(f"No template at index {index}")
    template = templates[index]
    if index == 0 or template.get("is_default"):
        raise ValueError("The default template cannot be deleted")
    (_templates_dir(root) / f"{template['id']}.json").unlink()
    return template


def selected_index_after_delete(selected: int, deleted: int) -> int:
    if selected == deleted:
        return 0
    if selected > deleted:
        return selected - 1
    return selected


def select_template(
    templates: List[Dict[str, Any]],
    index: int,
    *,
    fit: str = "stretch",
    opacity: float = 1.0,
) -> TemplateSelection:
    """
    Resolve *index* to a TemplateSelection. An out-of-range index falls back
    to the first template. A template whose data cannot be decoded yields a
    selection without a background.
    """
    if not templates:
        return TemplateSelection(None, None, None)
    if index < 0 or index >= len(templates):
        index = 0
    t = templates[index]
    background: Optional[Background] = None
    data = str(t.get("data") or "")
    if data:
        try:
            background = Background.from_base64(data, fit=fit, opacity=opacity)
        except ValueError as e:
            logger.warning(f"Template {t.get('id')} has unusable data, exporting without background: {e}")
    return TemplateSelection(str(t["id"]), t.get("name"), background)
