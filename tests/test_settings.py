import json

import pytest

from layout_engine import Padding
from settings import Settings, load_settings, save_settings, settings_from_dict


def test_default_geometry_is_a4():
    g = Settings().geometry()
    assert (g.page_width, g.page_height) == (210.0, 297.0)
    assert g.padding == Padding(20.0, 20.0, 20.0, 20.0)


def test_letter_geometry():
    g = Settings(page="LETTER").geometry()
    assert (g.page_width, g.page_height) == (215.9, 279.4)


def test_missing_file_gives_defaults(library):
    assert load_settings(library) == Settings()


def test_save_and_load(library):
    s = Settings(page="A5", padding=Padding(10.0, 12.0, 14.0, 16.0), template_index=2,
                 bg_mode="tile", bg_opacity=0.5, logo="logo.png")
    save_settings(library, s)
    assert load_settings(library) == s


def test_partial_file_fills_defaults(library):
    (library / "settings.json").write_text(json.dumps({"page": "letter", "padding": {"top": 5}}), encoding="utf-8")
    s = load_settings(library)
    assert s.page == "LETTER"
    assert s.padding == Padding(5.0, 20.0, 20.0, 20.0)
    assert s.bg_mode == "stretch"


@pytest.mark.parametrize(
    "data",
    [
        {"page": "B5"},
        {"padding": {"left": -1}},
        {"padding": {"top": "wide"}},
        {"padding": [1, 2, 3, 4]},
        {"bg_mode": "zoom"},
        {"bg_opacity": 2},
    ],
)
def test_invalid_values_raise(data):
    with pytest.raises(ValueError):
        settings_from_dict(data)


def test_non_object_file_raises(library):
    (library / "settings.json").write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(library)


def test_with_padding_replaces_given_sides():
    s = Settings().with_padding(top=30, left=None)
    assert s.padding == Padding(30.0, 20.0, 20.0, 20.0)
    assert Settings().with_padding() == Settings()


def test_logo_path_is_relative_to_root(library):
    assert Settings().logo_path(library) is None
    assert Settings(logo="art/logo.png").logo_path(library) == library / "art" / "logo.png"
