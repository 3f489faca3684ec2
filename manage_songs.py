#!/usr/bin/env python3
"""
Manage the song library from the command line.

  python manage_songs.py add --title "Song" --lyrics-file song.txt --category vibe
  python manage_songs.py edit song --category melody
  python manage_songs.py list --search vibe
  python manage_songs.py show song
  python manage_songs.py remove song
  python manage_songs.py categories --add ballad
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from load_songs import (
    decode_lyrics,
    delete_song,
    encode_lyrics,
    load_all_songs,
    load_categories,
    load_song,
    new_song_id,
    save_categories,
    save_song,
    search_songs,
)


def _read_lyrics(args: argparse.Namespace) -> Optional[str]:
    if args.lyrics_file:
        return Path(args.lyrics_file).read_text(encoding="utf-8")
    return args.lyrics


def cmd_add(root: Path, args: argparse.Namespace) -> None:
    lyrics = _read_lyrics(args)
    if not lyrics:
        raise SystemExit("Lyrics are required (--lyrics or --lyrics-file)")
    song = {
        "id": new_song_id(root, args.title),
        "title": args.title,
        "lyrics": encode_lyrics(lyrics),
        "categories": args.category,
    }
    path = save_song(root, song)
    print(f"Added {song['id']} -> {path}")


def cmd_edit(root: Path, args: argparse.Namespace) -> None:
    song = load_song(root, args.id)
    if args.title:
        song["title"] = args.title
    lyrics = _read_lyrics(args)
    if lyrics:
        song["lyrics"] = encode_lyrics(lyrics)
    if args.category:
        song["categories"] = args.category
    save_song(root, song)
    print(f"Updated {song['id']}")


def cmd_remove(root: Path, args: argparse.Namespace) -> None:
    delete_song(root, args.id)
    print(f"Removed {args.id}")


def cmd_list(root: Path, args: argparse.Namespace) -> None:
    songs = search_songs(load_all_songs(root), args.search)
    for s in songs:
        cats = ", ".join(s.get("categories") or [])
        print(f"{s['id']:<30} {s['title']}" + (f"  [{cats}]" if cats else ""))
    print(f"{len(songs)} song(s)")


def cmd_show(root: Path, args: argparse.Namespace) -> None:
    song = load_song(root, args.id)
    print(song["title"])
    print()
    print(decode_lyrics(song["lyrics"]))


def cmd_categories(root: Path, args: argparse.Namespace) -> None:
    cats = load_categories(root)
    if args.add or args.remove:
        cats = [c for c in cats + args.add if c not in args.remove]
        save_categories(root, cats)
        cats = load_categories(root)
    for c in cats:
        print(c)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Add, edit, search and remove songs in the lyric library")
    ap.add_argument("--root", default=".", help="Library directory")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add", help="Add a song")
    p.add_argument("--title", required=True)
    p.add_argument("--lyrics", default=None, help="Lyrics text")
    p.add_argument("--lyrics-file", default=None, help="Read lyrics from a UTF-8 text file")
    p.add_argument("--category", action="append", default=[], help="Category (repeatable)")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("edit", help="Edit a song")
    p.add_argument("id")
    p.add_argument("--title", default=None)
    p.add_argument("--lyrics", default=None)
    p.add_argument("--lyrics-file", default=None)
    p.add_argument("--category", action="append", default=[], help="Replace categories (repeatable)")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("remove", help="Remove a song")
    p.add_argument("id")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("list", help="List songs")
    p.add_argument("--search", default="", help="Filter by title or category")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Print a song's lyrics")
    p.add_argument("id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("categories", help="List or edit available categories")
    p.add_argument("--add", action="append", default=[])
    p.add_argument("--remove", action="append", default=[])
    p.set_defaults(func=cmd_categories)

    args = ap.parse_args(argv)
    root = Path(args.root).resolve()
    try:
        args.func(root, args)
    except (FileNotFoundError, ValueError) as e:
        raise SystemExit(f"Error: {e}")


if __name__ == "__main__":
    main()
