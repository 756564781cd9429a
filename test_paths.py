"""Tests for remote path construction."""
from config import MOVIES_ROOT, TV_ROOT
from resolver.paths import PathResolver

paths = PathResolver()


def test_movie_path_encodes_title():
    assert paths.movie_path("The Matrix") == MOVIES_ROOT + "The%20Matrix/"


def test_movie_path_appends_year():
    assert paths.movie_path("Dune", 2021) == MOVIES_ROOT + "Dune%20%282021%29/"
    assert paths.movie_path("Dune", "2021") == paths.movie_path("Dune", 2021)


def test_movie_path_encodes_reserved_characters():
    assert paths.movie_path("AC/DC: Live") == MOVIES_ROOT + "AC%2FDC%3A%20Live/"


def test_tv_show_path_with_and_without_season():
    assert paths.tv_show_path("Dark") == TV_ROOT + "Dark/"
    assert paths.tv_show_path("Dark", 2) == TV_ROOT + "Dark/Season 2/"


def test_paths_are_deterministic():
    assert paths.movie_path("Amélie", 2001) == paths.movie_path("Amélie", 2001)
    assert paths.tv_show_path("Shōgun", 1) == PathResolver().tv_show_path("Shōgun", 1)


def test_empty_title_is_well_formed():
    assert paths.movie_path("") == MOVIES_ROOT + "/"
    assert paths.tv_show_path("").endswith("/")


def test_search_root():
    assert paths.search_root(is_show=True) == TV_ROOT
    assert paths.search_root(is_show=False) == MOVIES_ROOT


def test_candidates_fall_back_to_less_specific_paths():
    assert paths.candidates("Dark", is_show=True, season=1) == [
        TV_ROOT + "Dark/Season 1/",
        TV_ROOT + "Dark/",
        TV_ROOT,
    ]
    assert paths.candidates("Dune", is_show=False, year=2021) == [
        MOVIES_ROOT + "Dune%20%282021%29/",
        MOVIES_ROOT + "Dune/",
        MOVIES_ROOT,
    ]


def test_custom_roots_get_trailing_slash():
    resolver = PathResolver("https://files.example/m", "https://files.example/t/")
    assert resolver.search_root(False) == "https://files.example/m/"
    assert resolver.root_for("https://files.example/t/Show/") == "https://files.example/t/"
    assert resolver.root_for("https://elsewhere.example/") is None
