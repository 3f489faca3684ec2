#!/usr/bin/env python3
"""
Lyricbook export pipeline.

Selects songs from the library, lays them out with the selected background
template and writes a paginated PDF:
  page 1   -- cover (template + logo)
  page 2.. -- song titles and lyrics, centred, with dividers between songs

Source of truth: songs/<id>.json + book.json + settings.json under --root.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from layout_engine import BACKGROUND_FITS, InvalidGeometryError, layout
from load_songs import load_songbook, search_songs, select_songs, song_to_document
from pdf_writer import ErrorReporter, ReportlabMetrics, make_pdf, register_font_pack
from settings import PAGE_SIZES, Settings, load_settings
from template_store import ensure_default_template, select_template

DEFAULT_OUTPUT = "song-lyrics.pdf"


def build_lyricbook(
    root: Path,
    out_path: Path,
    *,
    song_ids: Optional[Sequence[str]] = None,
    query: str = "",
    settings: Optional[Settings] = None,
    on_error: Optional[ErrorReporter] = None,
) -> Optional[Path]:
    """
    Build the PDF. Returns the written path, or None when no songs matched
    (nothing is written).

    Raises InvalidGeometryError for padding that leaves no usable page area and
    KeyError for unknown song ids.
    """
    settings = settings or load_settings(root)
    book_title, songs = load_songbook(root)

    if song_ids:
        songs = select_songs(songs, song_ids)
    if query:
        songs = search_songs(songs, query)

    documents = [song_to_document(s) for s in songs]

    templates = ensure_default_template(root)
    selection = select_template(
        templates,
        settings.template_index,
        fit=settings.bg_mode,
        opacity=settings.bg_opacity,
    )

    fonts = register_font_pack(root)
    plan = layout(
        documents,
        settings.geometry(),
        selection.background,
        metrics=ReportlabMetrics(),
        config=fonts.layout_config(),
    )

    logo = settings.logo_path(root)
    if logo is not None and not logo.is_file():
        print(f"Logo not found, cover page will have no logo: {logo}", file=sys.stderr)
        logo = None

    return make_pdf(plan, out_path, logo=logo, on_error=on_error, title=book_title)


# -----------------------------
# CLI
# -----------------------------
def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Generate a PDF lyric book from the song library")
    ap.add_argument("--root", default=".", help="Library directory (songs/, templates/, settings.json)")
    ap.add_argument("--out", default=DEFAULT_OUTPUT, help="Output PDF path (relative paths are under --outdir)")
    ap.add_argument("--outdir", default="output", help="Output directory")
    ap.add_argument("--song", dest="songs", action="append", default=[], metavar="ID",
                    help="Song id to include (repeatable, order is kept). Default: all songs.")
    ap.add_argument("--search", default="", help="Only include songs whose title or category matches")
    ap.add_argument("--page", choices=sorted(PAGE_SIZES), type=str.upper, help="Page size (overrides settings)")
    ap.add_argument("--template", type=int, metavar="INDEX", help="Template index (overrides settings)")
    ap.add_argument("--bg-mode", choices=list(BACKGROUND_FITS),
                    help="Background fit: stretch=full-bleed, cover=fill/crop, contain=fit inside, tile=repeat")
    ap.add_argument("--bg-opacity", type=float, help="Background opacity 0.0-1.0")
    ap.add_argument("--logo", help="Cover page logo image")
    for side in ("top", "right", "bottom", "left"):
        ap.add_argument(f"--padding-{side}", type=float, metavar="MM", help=f"{side.title()} padding in mm")
    args = ap.parse_args(argv)

    root = Path(args.root).resolve()
    outdir = (root / args.outdir).resolve()
    out_path = Path(args.out)
    if not out_path.is_absolute():
        out_path = outdir / out_path

    try:
        settings = load_settings(root)
    except ValueError as e:
        raise SystemExit(f"Invalid settings: {e}")

    overrides = {}
    if args.page:
        overrides["page"] = args.page
    if args.template is not None:
        overrides["template_index"] = args.template
    if args.bg_mode:
        overrides["bg_mode"] = args.bg_mode
    if args.bg_opacity is not None:
        if not 0.0 <= args.bg_opacity <= 1.0:
            raise SystemExit("--bg-opacity must be between 0.0 and 1.0")
        overrides["bg_opacity"] = args.bg_opacity
    if args.logo:
        overrides["logo"] = str(Path(args.logo).resolve())
    if overrides:
        settings = replace(settings, **overrides)
    settings = settings.with_padding(
        top=args.padding_top,
        right=args.padding_right,
        bottom=args.padding_bottom,
        left=args.padding_left,
    )

    try:
        written = build_lyricbook(root, out_path, song_ids=args.songs, query=args.search, settings=settings)
    except InvalidGeometryError as e:
        raise SystemExit(f"Invalid page geometry: {e}")
    except KeyError as e:
        raise SystemExit(str(e.args[0]) if e.args else str(e))

    if written is None:
        print("No songs selected; nothing to export.")
        return
    print("PDF:", written)


if __name__ == "__main__":
    main()
