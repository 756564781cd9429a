"""Tests for embed discovery: page parsing, stream filtering and fallback titles."""
import json

import pytest
from pydantic import ValidationError

from conftest import FakeMetadata, FakeRelay
from resolver.embed import (
    EmbedResolver, extract_page_data, is_allowed_stream, normalize_title, tag_embed,
)
from resolver.errors import FetchError, NotFoundError
from resolver.models import MediaRef

SITE = "https://site.example"
TITLES_URL = "https://titles.example/main.json"
MOVIE = MediaRef(kind="movie", tmdb_id=12345)
EPISODE = MediaRef(kind="episode", tmdb_id=777, season=2, episode=3)


def page(record_key: str, videos: dict) -> str:
    data = {"props": {"pageProps": {record_key: {"videos": videos}}}}
    return (
        "<html><head><script>window.x = 1;</script>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script>'
        "</head><body></body></html>"
    )


def player(stream_url: str) -> str:
    return f"<html><script>var url = '{stream_url}'; play(url);</script></html>"


VIDEOS = {
    "latino": [
        {"result": "https://embed.example/a"},
        {"result": "https://embed.example/dead"},
        {"cyberlocker": "no result key"},
    ],
    "english": [
        {"result": "https://embed.example/b"},
        {"result": "https://embed.example/insecure"},
        {"result": "https://embed.example/unknown"},
    ],
}
PLAYERS = {
    "https://embed.example/a": player("https://streamwish.to/e/abc"),
    "https://embed.example/b": player("https://filemoon.sx/e/xyz"),
    "https://embed.example/insecure": player("http://streamwish.to/e/plain"),
    "https://embed.example/unknown": player("https://tracker.example/e/1"),
}


def resolver_for(relay, metadata):
    return EmbedResolver(relay, metadata, site_url=SITE, fallback_titles_url=TITLES_URL)


async def test_movie_pipeline_keeps_only_allowed_streams():
    relay = FakeRelay(pages={
        f"{SITE}/ver-pelicula/el-senor": page("thisMovie", VIDEOS),
        **PLAYERS,
    })
    metadata = FakeMetadata({12345: "El Señor"})

    embeds = await resolver_for(relay, metadata).resolve(MOVIE)

    assert [(e.embed_id, e.url) for e in embeds] == [
        ("streamwish-latino", "https://streamwish.to/e/abc"),
        ("filemoon", "https://filemoon.sx/e/xyz"),
    ]
    assert metadata.calls == [("movie", 12345, "es-ES")]
    assert TITLES_URL not in relay.requests


async def test_result_order_follows_the_page_not_completion_order():
    relay = FakeRelay(
        pages={f"{SITE}/ver-pelicula/el-senor": page("thisMovie", VIDEOS), **PLAYERS},
        delays={"https://embed.example/a": 0.05},
    )
    embeds = await resolver_for(relay, FakeMetadata({12345: "El Señor"})).resolve(MOVIE)
    assert [e.embed_id for e in embeds] == ["streamwish-latino", "filemoon"]


async def test_episode_page_url_and_record():
    relay = FakeRelay(pages={
        f"{SITE}/episodio/dark-temporada-2-episodio-3": page(
            "episode", {"english": [{"result": "https://embed.example/b"}]}),
        **PLAYERS,
    })
    embeds = await resolver_for(relay, FakeMetadata({777: "Dark"})).resolve(EPISODE)
    assert [e.embed_id for e in embeds] == ["filemoon"]


async def test_fallback_title_is_tried_exactly_once():
    relay = FakeRelay(
        pages={
            f"{SITE}/ver-pelicula/titulo-local": "<html><body>no data</body></html>",
            f"{SITE}/ver-pelicula/alt-title": page("thisMovie", VIDEOS),
            **PLAYERS,
        },
        json_docs={TITLES_URL: {"12345": "Alt Title"}},
    )
    embeds = await resolver_for(relay, FakeMetadata({12345: "Título Local"})).resolve(MOVIE)

    assert [e.embed_id for e in embeds] == ["streamwish-latino", "filemoon"]
    assert relay.requests.count(TITLES_URL) == 1
    assert relay.requests.count(f"{SITE}/ver-pelicula/titulo-local") == 1
    assert relay.requests.count(f"{SITE}/ver-pelicula/alt-title") == 1


async def test_not_found_when_fallback_also_yields_nothing():
    relay = FakeRelay(
        pages={
            f"{SITE}/ver-pelicula/titulo-local": page("thisMovie", {}),
            f"{SITE}/ver-pelicula/alt-title": page(
                "thisMovie", {"latino": [{"result": "https://embed.example/dead"}]}),
        },
        json_docs={TITLES_URL: {"12345": "Alt Title"}},
    )
    with pytest.raises(NotFoundError) as exc_info:
        await resolver_for(relay, FakeMetadata({12345: "Título Local"})).resolve(MOVIE)
    assert "No valid streams found" in str(exc_info.value)
    assert exc_info.value.hint
    assert relay.requests.count(TITLES_URL) == 1


async def test_not_found_without_fallback_entry():
    relay = FakeRelay(
        pages={f"{SITE}/ver-pelicula/titulo-local": page("thisMovie", {})},
        json_docs={TITLES_URL: {"999": "Something Else"}},
    )
    with pytest.raises(NotFoundError):
        await resolver_for(relay, FakeMetadata({12345: "Título Local"})).resolve(MOVIE)
    assert f"{SITE}/ver-pelicula/something-else" not in relay.requests


async def test_not_found_when_fallback_table_is_unreachable():
    relay = FakeRelay(pages={f"{SITE}/ver-pelicula/titulo-local": page("thisMovie", {})})
    with pytest.raises(NotFoundError):
        await resolver_for(relay, FakeMetadata({12345: "Título Local"})).resolve(MOVIE)
    assert TITLES_URL in relay.requests


async def test_missing_tmdb_id_fails_before_any_lookup():
    relay = FakeRelay()
    metadata = FakeMetadata()
    with pytest.raises(NotFoundError):
        await resolver_for(relay, metadata).resolve(MediaRef(kind="movie"))
    assert metadata.calls == []
    assert relay.requests == []


async def test_unreachable_title_page_propagates():
    relay = FakeRelay()
    with pytest.raises(FetchError):
        await resolver_for(relay, FakeMetadata({12345: "Nada"})).resolve(MOVIE)


def test_malformed_page_data_is_not_found():
    html = '<script>{"props":{"pageProps":{"thisMovie": {</script>'
    with pytest.raises(NotFoundError) as exc_info:
        extract_page_data(html)
    assert "Failed to parse JSON" in str(exc_info.value)


def test_page_data_keeps_raw_script_text():
    data = {"props": {"pageProps": {"thisMovie": {"title": "Tom & Jerry <3", "videos": {}}}}}
    html = (
        '<html><body><script id="__NEXT_DATA__" type="application/json">'
        f"{json.dumps(data)}</script><script>var b = 2;</script></body></html>"
    )
    assert extract_page_data(html) == data


def test_page_without_marker_has_no_data():
    assert extract_page_data("<script>var a = 1;</script>") is None


def test_episode_ref_needs_season_and_episode():
    with pytest.raises(ValidationError):
        MediaRef(kind="episode", tmdb_id=777, season=2)
    with pytest.raises(ValidationError):
        MediaRef(kind="episode", tmdb_id=777, episode=3)
    assert MediaRef(kind="movie", tmdb_id=1).season is None


def test_normalize_title():
    assert normalize_title("Ñoño   Día -- Especial!") == "nono-dia-especial"
    assert normalize_title("El Señor de los Anillos: El Retorno del Rey") == \
        "el-senor-de-los-anillos-el-retorno-del-rey"
    assert normalize_title("") == ""


@pytest.mark.parametrize("url,language,expected", [
    ("https://filemoon.sx/e/1", "english", "filemoon"),
    ("https://streamwish.to/e/1", "spanish", "streamwish-spanish"),
    ("https://streamwish.to/e/1", "latino", "streamwish-latino"),
    ("https://streamwish.to/e/1", "klingon", "streamwish-latino"),
    ("https://vidhide.com/v/1", "latino", "vidhide"),
    ("https://voe.sx/e/1", "latino", "voe"),
    ("https://other.example/e/1", "latino", None),
])
def test_tag_embed(url, language, expected):
    assert tag_embed(url, language) == expected


@pytest.mark.parametrize("url,allowed", [
    ("https://streamwish.to/e/1", True),
    ("https://filemoon.sx/e/1", True),
    ("http://filemoon.sx/e/1", False),
    ("https://evil.example/filemoon", False),
    ("javascript:alert(1)", False),
])
def test_is_allowed_stream(url, allowed):
    assert is_allowed_stream(url) is allowed
