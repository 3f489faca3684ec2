#!/usr/bin/env python3
"""
Manage background templates and page padding.

  python manage_templates.py list
  python manage_templates.py add paper.jpg --name "Parchment"
  python manage_templates.py select 1
  python manage_templates.py remove 1
  python manage_templates.py padding --top 25 --bottom 25
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from layout_engine import InvalidGeometryError
from settings import load_settings, save_settings
from template_store import (
    add_template,
    delete_template,
    ensure_default_template,
    selected_index_after_delete,
)


def cmd_list(root: Path, args: argparse.Namespace) -> None:
    settings = load_settings(root)
    for i, t in enumerate(ensure_default_template(root)):
        mark = "*" if i == settings.template_index else " "
        print(f"{mark} {i:>2}  {t.get('name') or t['id']}")


def cmd_add(root: Path, args: argparse.Namespace) -> None:
    t = add_template(root, Path(args.image), name=args.name)
    print(f"Added template {t['id']} ({t['name']})")


def cmd_select(root: Path, args: argparse.Namespace) -> None:
    templates = ensure_default_template(root)
    if args.index < 0 or args.index >= len(templates):
        raise SystemExit(f"Error: no template at index {args.index} (0-{len(templates) - 1})")
    settings = load_settings(root)
    save_settings(root, replace(settings, template_index=args.index))
    print(f"Selected template {args.index}: {templates[args.index].get('name')}")


def cmd_remove(root: Path, args: argparse.Namespace) -> None:
    ensure_default_template(root)
    t = delete_template(root, args.index)
    settings = load_settings(root)
    new_index = selected_index_after_delete(settings.template_index, args.index)
    if new_index != settings.template_index:
        save_settings(root, replace(settings, template_index=new_index))
    print(f"Removed template {t['id']}")


def cmd_padding(root: Path, args: argparse.Namespace) -> None:
    settings = load_settings(root)
    for side in ("top", "right", "bottom", "left"):
        v = getattr(args, side)
        if v is not None and v < 0:
            raise SystemExit(f"Error: {side} padding must be >= 0")
    updated = settings.with_padding(top=args.top, right=args.right, bottom=args.bottom, left=args.left)
    try:
        updated.geometry().validate()
    except InvalidGeometryError as e:
        raise SystemExit(f"Error: {e}")
    if updated is not settings:
        save_settings(root, updated)
    p = updated.padding
    print(f"Padding (mm): top={p.top:g} right={p.right:g} bottom={p.bottom:g} left={p.left:g}")


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Manage PDF background templates and padding")
    ap.add_argument("--root", default=".", help="Library directory")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List templates (* = selected)")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("add", help="Add an image as a template")
    p.add_argument("image")
    p.add_argument("--name", default=None)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("select", help="Select the template used for exports")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_select)

    p = sub.add_parser("remove", help="Remove a template (not the default)")
    p.add_argument("index", type=int)
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("padding", help="Show or set page padding in mm")
    for side in ("top", "right", "bottom", "left"):
        p.add_argument(f"--{side}", type=float, default=None)
    p.set_defaults(func=cmd_padding)

    args = ap.parse_args(argv)
    root = Path(args.root).resolve()
    try:
        args.func(root, args)
    except (FileNotFoundError, IndexError, ValueError) as e:
        raise SystemExit(f"Error: {e}")


if __name__ == "__main__":
    main()
