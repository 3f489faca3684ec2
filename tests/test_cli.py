import json

import pytest

import build_lyricbook
import manage_songs
import manage_templates
from conftest import image_bytes
from load_songs import load_all_songs, load_song_order
from settings import load_settings


def _add(root, title, lyrics="la la la", *categories):
    argv = ["--root", str(root), "add", "--title", title, "--lyrics", lyrics]
    for c in categories:
        argv += ["--category", c]
    manage_songs.main(argv)


# ---------------------------------------------------------------------------
# manage_songs
# ---------------------------------------------------------------------------


def test_add_list_show_remove(library, capsys):
    _add(library, "Dark Star", "Dark star crashes", "vibe")
    _add(library, "Ripple", "If my words did glow", "melody")
    capsys.readouterr()

    manage_songs.main(["--root", str(library), "list"])
    out = capsys.readouterr().out
    assert "dark-star" in out and "[vibe]" in out
    assert "2 song(s)" in out

    manage_songs.main(["--root", str(library), "list", "--search", "melody"])
    assert "1 song(s)" in capsys.readouterr().out

    manage_songs.main(["--root", str(library), "show", "ripple"])
    assert capsys.readouterr().out == "Ripple\n\nIf my words did glow\n"

    manage_songs.main(["--root", str(library), "remove", "dark-star"])
    assert load_song_order(library) == ["ripple"]


def test_add_same_title_twice_gets_new_id(library):
    _add(library, "Ripple")
    _add(library, "Ripple")
    assert [s["id"] for s in load_all_songs(library)] == ["ripple", "ripple-2"]


def test_add_from_lyrics_file(library, tmp_path, capsys):
    lyrics = tmp_path / "song.txt"
    lyrics.write_text("line one\nline two\n", encoding="utf-8")
    manage_songs.main(["--root", str(library), "add", "--title", "From File", "--lyrics-file", str(lyrics)])
    capsys.readouterr()
    manage_songs.main(["--root", str(library), "show", "from-file"])
    assert "line one\nline two" in capsys.readouterr().out


def test_add_without_lyrics_exits(library):
    with pytest.raises(SystemExit):
        manage_songs.main(["--root", str(library), "add", "--title", "Empty"])


def test_edit_song(library):
    _add(library, "Ripple", "old", "vibe")
    manage_songs.main(["--root", str(library), "edit", "ripple", "--title", "Ripple (acoustic)", "--category", "melody"])
    song = load_all_songs(library)[0]
    assert song["title"] == "Ripple (acoustic)"
    assert song["categories"] == ["melody"]


def test_remove_missing_song_exits(library):
    with pytest.raises(SystemExit) as exc:
        manage_songs.main(["--root", str(library), "remove", "nope"])
    assert str(exc.value).startswith("Error:")


def test_remove_with_path_id_exits_without_deleting(library):
    victim = library / "book-backup.json"
    victim.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        manage_songs.main(["--root", str(library), "remove", "../book-backup"])
    assert "Invalid song id" in str(exc.value)
    assert victim.exists()


def test_categories_add_and_remove(library, capsys):
    manage_songs.main(["--root", str(library), "categories", "--add", "ballad", "--remove", "mash"])
    assert capsys.readouterr().out.split() == ["vibe", "melody", "ballad"]


# ---------------------------------------------------------------------------
# manage_templates
# ---------------------------------------------------------------------------


def test_templates_list_marks_selection(library, capsys):
    manage_templates.main(["--root", str(library), "list"])
    out = capsys.readouterr().out
    assert out.startswith("*  0  Default White Template")


def test_templates_add_select_remove(library, tmp_path, capsys):
    img = tmp_path / "paper.png"
    img.write_bytes(image_bytes("PNG"))

    manage_templates.main(["--root", str(library), "add", str(img), "--name", "Paper"])
    manage_templates.main(["--root", str(library), "select", "1"])
    assert load_settings(library).template_index == 1

    manage_templates.main(["--root", str(library), "remove", "1"])
    assert load_settings(library).template_index == 0


def test_templates_select_out_of_range_exits(library):
    with pytest.raises(SystemExit):
        manage_templates.main(["--root", str(library), "select", "4"])


def test_templates_remove_default_exits(library):
    with pytest.raises(SystemExit):
        manage_templates.main(["--root", str(library), "remove", "0"])


def test_padding_is_saved(library, capsys):
    manage_templates.main(["--root", str(library), "padding", "--top", "25", "--left", "15"])
    assert "top=25 right=20 bottom=20 left=15" in capsys.readouterr().out
    saved = json.loads((library / "settings.json").read_text(encoding="utf-8"))
    assert saved["padding"] == {"top": 25.0, "right": 20.0, "bottom": 20.0, "left": 15.0}


def test_padding_leaving_no_room_exits(library):
    with pytest.raises(SystemExit):
        manage_templates.main(["--root", str(library), "padding", "--left", "120", "--right", "120"])
    assert not (library / "settings.json").exists()


# ---------------------------------------------------------------------------
# build_lyricbook
# ---------------------------------------------------------------------------


def test_build_writes_pdf(library, capsys):
    _add(library, "Dark Star", "Dark star crashes\npouring its light")
    _add(library, "Ripple")
    capsys.readouterr()

    build_lyricbook.main(["--root", str(library)])

    out = capsys.readouterr().out
    pdf = library.resolve() / "output" / "song-lyrics.pdf"
    assert out.strip() == f"PDF: {pdf}"
    assert pdf.read_bytes().startswith(b"%PDF")


def test_build_selected_songs_to_custom_path(library, tmp_path):
    _add(library, "Dark Star")
    _add(library, "Ripple")
    out = tmp_path / "only-ripple.pdf"

    build_lyricbook.main(["--root", str(library), "--song", "ripple", "--out", str(out), "--page", "a5"])
    assert out.exists()


def test_build_with_no_songs(library, capsys):
    build_lyricbook.main(["--root", str(library)])
    assert "No songs selected" in capsys.readouterr().out
    assert not (library / "output" / "song-lyrics.pdf").exists()


def test_build_search_without_match(library, capsys):
    _add(library, "Ripple", "la", "melody")
    capsys.readouterr()
    build_lyricbook.main(["--root", str(library), "--search", "nothing-like-this"])
    assert "No songs selected" in capsys.readouterr().out


def test_build_unknown_song_exits(library):
    _add(library, "Ripple")
    with pytest.raises(SystemExit):
        build_lyricbook.main(["--root", str(library), "--song", "nope"])


def test_build_invalid_padding_exits(library):
    _add(library, "Ripple")
    with pytest.raises(SystemExit) as exc:
        build_lyricbook.main(["--root", str(library), "--padding-left", "150", "--padding-right", "150"])
    assert "Invalid page geometry" in str(exc.value)


def test_build_bad_opacity_exits(library):
    with pytest.raises(SystemExit):
        build_lyricbook.main(["--root", str(library), "--bg-opacity", "3"])


def test_build_missing_logo_still_exports(library, tmp_path, capsys):
    _add(library, "Ripple")
    build_lyricbook.main(["--root", str(library), "--logo", str(tmp_path / "missing.png")])
    captured = capsys.readouterr()
    assert "Logo not found" in captured.err
    assert "PDF:" in captured.out


def test_build_reports_broken_template_data_and_continues(library, capsys):
    _add(library, "Ripple")
    (library / "templates").mkdir()
    (library / "templates" / "bad.json").write_text(
        json.dumps({"id": "bad", "name": "Bad", "data": "data:image/png;base64,bm90IGFuIGltYWdl", "is_default": True}),
        encoding="utf-8",
    )
    build_lyricbook.main(["--root", str(library)])
    assert "PDF:" in capsys.readouterr().out
