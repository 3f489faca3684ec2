#!/usr/bin/env python3
"""
Song library for the lyricbook.

On-disk layout (under a library root):
  book.json            -- book_title, song_order[], available_categories[]
  songs/<song_id>.json -- {"id", "title", "lyrics", "categories"}

Lyrics are stored base64-encoded (UTF-8 safe). Every script imports from here
so the file-layout logic lives in one place.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from loguru import logger

from layout_engine import Document

DEFAULT_BOOK_TITLE = "Song Lyrics"
DEFAULT_CATEGORIES = ["vibe", "melody", "mash"]
DECODE_ERROR_TEXT = "Error decoding content. Please contact support."


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_json(path: Path, data: Any) -> None:
    """Write *data* as pretty-printed JSON (indent=2, ensure_ascii=False)."""
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def _read_json(path: Path) -> Any:
    """Read and parse a JSON file."""
    return json.loads(path.read_text(encoding="utf-8"))


def _read_book(root: Path) -> Dict[str, Any]:
    path = root / "book.json"
    if not path.is_file():
        return {}
    data = _read_json(path)
    return data if isinstance(data, dict) else {}


def _write_book(root: Path, book: Dict[str, Any]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    book.setdefault("book_title", DEFAULT_BOOK_TITLE)
    book.setdefault("song_order", [])
    path = root / "book.json"
    _write_json(path, book)
    return path


def _check_song_id(song_id: str) -> None:
    """Ids name a file directly under ``songs/``."""
    if not song_id or "/" in song_id or "\\" in song_id or ".." in song_id:
        raise ValueError(f"Invalid song id: {song_id!r}")


def _song_path(root: Path, song_id: str) -> Path:
    _check_song_id(song_id)
    return root / "songs" / f"{song_id}.json"


def slugify(s: str) -> str:
    s = s.strip().lower()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = s.strip("-")
    return s or "song"


# ---------------------------------------------------------------------------
# Lyrics encoding
# ---------------------------------------------------------------------------

def encode_lyrics(text: str) -> str:
    """UTF-8 safe base64 encoding."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_lyrics(payload: str) -> str:
    """
    Decode base64 lyrics back to text.

    Whitespace (line-wrapped base64) is ignored. Legacy entries that were
    encoded from latin-1 bytes are still readable; anything that is not
    base64 at all decodes to DECODE_ERROR_TEXT.
    """
    try:
        raw = base64.b64decode("".join((payload or "").split()), validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Failed to decode lyrics: {e}")
        return DECODE_ERROR_TEXT
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_book_title(root: Path) -> str:
    return str(_read_book(root).get("book_title") or DEFAULT_BOOK_TITLE)


def load_song_order(root: Path) -> List[str]:
    """Return the ordered list of song IDs from ``book.json["song_order"]``."""
    return [str(x) for x in _read_book(root).get("song_order", []) or []]


def load_categories(root: Path) -> List[str]:
    cats = _read_book(root).get("available_categories")
    if not isinstance(cats, list):
        return list(DEFAULT_CATEGORIES)
    return [str(c) for c in cats]


def save_categories(root: Path, categories: Iterable[str]) -> Path:
    book = _read_book(root)
    seen: List[str] = []
    for c in categories:
        c = c.strip()
        if c and c not in seen:
            seen.append(c)
    book["available_categories"] = seen
    return _write_book(root, book)


def load_song(root: Path, song_id: str) -> Dict[str, Any]:
    """
    Load a single song by *song_id*.

    Raises ``FileNotFoundError`` if ``songs/<song_id>.json`` does not exist.
    """
    path = _song_path(root, song_id)
    if not path.is_file():
        raise FileNotFoundError(f"Song not found: {song_id}")
    return _normalize(_read_json(path), song_id)


def _normalize(song: Any, fallback_id: str) -> Dict[str, Any]:
    if not isinstance(song, dict):
        raise ValueError(f"Song file for {fallback_id!r} must contain a JSON object")
    song.setdefault("id", fallback_id)
    song["id"] = str(song["id"])
    song.setdefault("title", "")
    song.setdefault("lyrics", "")
    cats = song.get("categories") or []
    song["categories"] = [str(c) for c in cats] if isinstance(cats, list) else []
    return song


def load_all_songs(root: Path) -> List[Dict[str, Any]]:
    """
    Load every song in order.

    Uses ``song_order`` from ``book.json``. Song files in ``songs/`` that are
    not listed there are appended in alphabetical order by filename.
    Unreadable files are skipped with a warning.
    """
    songs_dir = root / "songs"
    if not songs_dir.is_dir():
        return []

    all_files = {p.stem: p for p in sorted(songs_dir.glob("*.json"))}
    order = [sid for sid in load_song_order(root) if sid in all_files]
    order += [stem for stem in sorted(all_files) if stem not in order]

    ordered: List[Dict[str, Any]] = []
    seen = set()
    for sid in order:
        if sid in seen:
            continue
        seen.add(sid)
        try:
            ordered.append(_normalize(_read_json(all_files[sid]), sid))
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable song file {all_files[sid]}: {e}")
    return ordered


def validate_song(song: Dict[str, Any]) -> None:
    """Raise ValueError unless the song has an id, a title and lyrics."""
    song_id = str(song.get("id") or "")
    if not song_id or song_id.startswith("temp_"):
        raise ValueError(f"Song has no permanent id: {song_id!r}")
    _check_song_id(song_id)
    if not str(song.get("title") or "").strip():
        raise ValueError(f"Song {song_id!r} has an empty title")
    if not str(song.get("lyrics") or ""):
        raise ValueError(f"Song {song_id!r} has no lyrics")


def save_song(root: Path, song: Dict[str, Any]) -> Path:
    """
    Validate and save a single song to ``songs/<id>.json``, adding it to the
    end of ``song_order`` if it is new. Returns the written path.
    """
    validate_song(song)
    songs_dir = root / "songs"
    songs_dir.mkdir(parents=True, exist_ok=True)

    song_id = str(song["id"])
    record = {
        "id": song_id,
        "title": str(song["title"]).strip(),
        "lyrics": str(song["lyrics"]),
        "categories": [str(c) for c in song.get("categories") or []],
    }
    path = _song_path(root, song_id)
    _write_json(path, record)

    book = _read_book(root)
    order = [str(x) for x in book.get("song_order", []) or []]
    if song_id not in order:
        order.append(song_id)
        book["song_order"] = order
        _write_book(root, book)
    return path


def delete_song(root: Path, song_id: str) -> None:
    """Remove a song file and its ``song_order`` entry."""
    path = _song_path(root, song_id)
    if not path.is_file():
        raise FileNotFoundError(f"Song not found: {song_id}")
    path.unlink()

    book = _read_book(root)
    order = [str(x) for x in book.get("song_order", []) or []]
    if song_id in order:
        book["song_order"] = [x for x in order if x != song_id]
        _write_book(root, book)


def new_song_id(root: Path, title: str) -> str:
    """Slug of *title*, suffixed with -2, -3, ... until unused."""
    base = slugify(title)
    songs_dir = root / "songs"
    candidate = base
    n = 2
    while (songs_dir / f"{candidate}.json").exists():
        candidate = f"{base}-{n}"
        n += 1
    return candidate


# ---------------------------------------------------------------------------
# Search / selection
# ---------------------------------------------------------------------------

def search_songs(songs: Sequence[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Case-insensitive match on title or any category. Empty query matches all."""
    q = (query or "").strip().lower()
    if not q:
        return list(songs)
    return [
        s for s in songs
        if q in str(s.get("title", "")).lower()
        or any(q in str(c).lower() for c in s.get("categories") or [])
    ]


def select_songs(songs: Sequence[Dict[str, Any]], ids: Sequence[str]) -> List[Dict[str, Any]]:
    """
    Return the songs named in *ids*, in the order given.

    Raises ``KeyError`` for an id that is not in *songs*.
    """
    by_id = {str(s["id"]): s for s in songs}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise KeyError(f"Unknown song id(s): {', '.join(missing)}")
    return [by_id[i] for i in ids]


def song_to_document(song: Dict[str, Any]) -> Document:
    return Document(
        id=str(song["id"]),
        title=str(song.get("title", "")),
        body=decode_lyrics(str(song.get("lyrics", ""))),
        tags=frozenset(str(c) for c in song.get("categories") or []),
    )


def load_songbook(root: Path) -> Tuple[str, List[Dict[str, Any]]]:
    """Main entry point. Returns ``(book_title, songs_list)``."""
    return load_book_title(root), load_all_songs(root)
