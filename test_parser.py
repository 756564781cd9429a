"""Tests for directory listing parsing and entry classification."""
import pytest

from resolver.parser import (
    Anchor, HtmlParser, classify_anchor, parse_directory_listing, parse_file_size_to_bytes,
)

SHOW_PATH = "https://a.datadiff.us.kg/tvs/Show/"

# nginx autoindex layout
SHOW_HTML = """<html><head><title>Index of /tvs/Show/</title></head><body>
<h1>Index of /tvs/Show/</h1><hr><pre>
<a href="../">../</a>
<a href="Season 1/">Season 1</a>
<a href="Show.S01E02.1080p.WEB-DL.mkv">...</a>
<a href="Show.S01E02.en.srt">Show.S01E02.en.srt</a>
</pre><hr></body></html>"""

# Apache autoindex layout
APACHE_HTML = """<html><body><table>
<tr><th><a href="?C=N;O=D">Name</a></th><th><a href="?C=M;O=A">Last modified</a></th><th>Size</th></tr>
<tr><td><img src="/icons/back.gif"></td><td><a href="/movies/">Parent Directory</a></td><td>&nbsp;</td><td>  - </td></tr>
<tr><td><img src="/icons/movie.gif"></td><td><a href="Movie.2020.2160p.BluRay.mp4">Movie.2020.2160p.BluRay.mp4</a></td><td>2024-01-01 10:00</td><td>4.2G</td></tr>
<tr><td><img src="/icons/folder.gif"></td><td><a href="Extras/">Extras/</a></td><td>2024-01-01 10:00</td><td>  - </td></tr>
<tr><td><img src="/icons/text.gif"></td><td><a href="notes.txt">notes.txt</a></td><td>2024-01-01 10:00</td><td>1K</td></tr>
</table></body></html>"""


def test_show_listing_end_to_end():
    listing = parse_directory_listing(SHOW_HTML, SHOW_PATH)
    assert listing.path == SHOW_PATH
    assert len(listing.entries) == 2

    directory, video = listing.entries
    assert directory.name == "Season 1"
    assert directory.is_directory is True
    assert directory.is_video is False
    assert directory.url == SHOW_PATH + "Season 1/"

    assert video.is_video is True
    assert video.is_directory is False
    assert video.name == "Show.S01E02.1080p.WEB-DL.mkv"
    assert video.url == SHOW_PATH + "Show.S01E02.1080p.WEB-DL.mkv"
    assert video.quality == "1080P"
    assert video.source == "WEB-DL"
    assert video.extension == "MKV"
    assert video.episode_number == 2
    assert video.match_score is None


def test_apache_table_listing():
    listing = parse_directory_listing(APACHE_HTML, "https://a.datadiff.us.kg/movies/Movie/")
    names = [e.name for e in listing.entries]
    assert names == ["Movie.2020.2160p.BluRay.mp4", "Extras"]

    video = listing.entries[0]
    assert video.size == "4.2G"
    assert video.size_bytes == round(4.2 * 1024 ** 3)
    assert video.quality == "2160P"
    assert video.source == "BluRay"
    assert listing.entries[1].is_directory
    assert listing.entries[1].size is None


def test_pseudo_entries_are_excluded():
    html = """<pre><a href="../">../</a><a href="./">.</a><a href="/">/</a>
    <a href="..">..</a><a href="Real/">Real/</a></pre>"""
    listing = parse_directory_listing(html, SHOW_PATH)
    assert [e.name for e in listing.entries] == ["Real"]


@pytest.mark.parametrize("href,expected", [
    ("Movie.MKV", "video"),
    ("clip.Mp4", "video"),
    ("a.avi", "video"),
    ("b.mov", "video"),
    ("c.webm", "video"),
    ("Weird.mkv/", "directory"),
    ("Season%202/", "directory"),
    ("subs.srt", None),
    ("movie.mkv.part", None),
    ("README", None),
    ("?C=S;O=A", None),
])
def test_classification_never_both(href, expected):
    entry = classify_anchor(Anchor(href=href, text=href), SHOW_PATH)
    if expected is None:
        assert entry is None
        return
    assert not (entry.is_directory and entry.is_video)
    assert entry.is_directory == (expected == "directory")
    assert entry.is_video == (expected == "video")


def test_truncated_names_use_href():
    entry = classify_anchor(
        Anchor(href="A%20Very%20Long%20Name.2019.1080p.mkv", text="A Very Long Na..>"),
        SHOW_PATH,
    )
    assert entry.name == "A Very Long Name.2019.1080p.mkv"


def test_entries_keep_document_order():
    html = "<pre>" + "".join(
        f'<a href="Show.E{n:02d}.mkv">Show.E{n:02d}.mkv</a>\n' for n in (3, 1, 2)
    ) + "</pre>"
    listing = parse_directory_listing(html, SHOW_PATH)
    assert [e.episode_number for e in listing.entries] == [3, 1, 2]


def test_html_parser_returns_all_anchors():
    anchors = HtmlParser().parse('<div><a href="x/">x</a><a>no href</a><a href="y.mkv">y</a></div>')
    assert [(a.href, a.text) for a in anchors] == [("x/", "x"), ("y.mkv", "y")]


def test_empty_listing():
    listing = parse_directory_listing("<html><body>nothing here</body></html>", SHOW_PATH)
    assert listing.entries == []


@pytest.mark.parametrize("raw,expected", [
    ("1.5 GB", 1610612736),
    ("700M", 734003200),
    ("512", 512),
    ("1,024 KB", 1048576),
    ("2 TiB", 2 * 1024 ** 4),
    ("<b>3 MB</b>", 3 * 1024 ** 2),
    ("-", None),
    ("", None),
    (None, None),
    ("huge", None),
])
def test_parse_file_size_to_bytes(raw, expected):
    assert parse_file_size_to_bytes(raw) == expected
