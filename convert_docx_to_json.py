#!/usr/bin/env python3
"""
DOCX -> song library importer.

Each Word document becomes one song:
- title: first cell of the first table if there is one, otherwise the first
  non-empty paragraph
- lyrics: every paragraph after the title, one line per paragraph; empty
  paragraphs are kept as blank lines (verse breaks), leading/trailing blank
  lines are dropped

Songs are written to songs/<id>.json with base64-encoded lyrics, the same
format manage_songs.py writes.
"""

from __future__ import annotations

import argparse
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from load_songs import encode_lyrics, new_song_id, save_song


# -----------------------------
# Helpers
# -----------------------------
def normalize_spaces(s: str) -> str:
    return re.sub(r"[ \t\u00a0]+", " ", s).strip()


def _trim_blank_edges(lines: List[str]) -> List[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start]:
        start += 1
    while end > start and not lines[end - 1]:
        end -= 1
    return lines[start:end]


# -----------------------------
# Extract title + lyrics
# -----------------------------
def extract_title_and_lyrics(doc: Document) -> Tuple[str, str]:
    title: Optional[str] = None

    # Prefer a header table if the document has one
    if doc.tables:
        for row in doc.tables[0].rows:
            for cell in row.cells:
                s = normalize_spaces(cell.text)
                if s:
                    title = s
                    break
            if title:
                break

    lines: List[str] = []
    for p in doc.paragraphs:
        # Soft line breaks inside a paragraph come through as "\n"
        parts = [normalize_spaces(part) for part in p.text.split("\n")]
        first = next((x for x in parts if x), "")
        if title is None:
            if first:
                title = first
            continue
        if first == title and not any(lines):
            continue
        lines.extend(parts)

    return (title or "Untitled Song"), "\n".join(_trim_blank_edges(lines))


def extract_song_from_docx(docx_path: Path) -> Dict[str, Any]:
    doc = Document(str(docx_path))
    title, lyrics = extract_title_and_lyrics(doc)
    return {"title": title, "lyrics": lyrics}


def import_docx(root: Path, docx_path: Path, categories: Optional[List[str]] = None) -> Dict[str, Any]:
    """Extract a song from *docx_path* and save it into the library at *root*."""
    extracted = extract_song_from_docx(docx_path)
    if not extracted["lyrics"]:
        raise ValueError(f"No lyrics found in {docx_path.name}")
    song = {
        "id": new_song_id(root, extracted["title"]),
        "title": extracted["title"],
        "lyrics": encode_lyrics(extracted["lyrics"]),
        "categories": list(categories or []),
    }
    save_song(root, song)
    return song


# -----------------------------
# CLI
# -----------------------------
def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Import songs from DOCX files into the lyric library")
    ap.add_argument("docx", nargs="+", help="DOCX file(s)")
    ap.add_argument("--root", default=".", help="Library directory")
    ap.add_argument("--category", action="append", default=[], help="Category for every imported song (repeatable)")
    args = ap.parse_args(argv)

    root = Path(args.root).resolve()
    imported = 0
    for p in args.docx:
        try:
            song = import_docx(root, Path(p), args.category)
        except (PackageNotFoundError, ValueError) as e:
            print(f"Skipped {p}: {e}")
            continue
        imported += 1
        print(f"  {song['id']}: {song['title']}")

    print(f"Imported {imported} song(s) into {root / 'songs'}/")


if __name__ == "__main__":
    main()
