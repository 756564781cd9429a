"""Parse autoindex HTML directory listings into typed entries."""
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from resolver.models import DirectoryListing, FileEntry

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = ("mkv", "mp4", "avi", "mov", "webm")
_VIDEO_RE = re.compile(r"\.(?:" + "|".join(VIDEO_EXTENSIONS) + r")$", re.IGNORECASE)

_SKIP_HREFS = ("../", "./", "..", ".", "/")
_SIZE_TOKEN = re.compile(r"^[\d,.]+\s*[KMGT]?i?B?$", re.IGNORECASE)


@dataclass
class Anchor:
    href: str
    text: str
    size: str | None = None


class HtmlParser:
    """Extract anchors from a listing page using selectolax.

    Handles the two layouts seen on autoindex servers:
        Apache / fancyindex tables   <tr><td><a href="x/">x/</a></td>...<td>1.2G</td></tr>
        nginx <pre> listings         <a href="x.mkv">x.mkv</a>   19-Oct-2024 10:00   1.2G
    """

    def parse(self, html: str) -> list[Anchor]:
        from selectolax.lexbor import LexborHTMLParser

        tree = LexborHTMLParser(html)
        anchors = []
        for link in tree.css("a"):
            href = link.attributes.get("href") or ""
            if not href:
                continue
            anchors.append(Anchor(
                href=href,
                text=link.text(strip=True),
                size=_row_size(link) or _trailing_size(link),
            ))
        return anchors


def _row_size(link) -> str | None:
    """Size cell of the table row holding ``link``, if any."""
    row = link.parent
    while row is not None and row.tag != "tr":
        row = row.parent
    if row is None:
        return None
    for selector in ("td.size", "td:nth-child(4)", "td:nth-child(2)"):
        cell = row.css_first(selector)
        if cell is None:
            continue
        text = cell.text(strip=True)
        if text and text != "-" and _SIZE_TOKEN.match(text):
            return text
    return None


def _trailing_size(link) -> str | None:
    """Last token of the text node following an anchor in a <pre> listing."""
    node = link.next
    if node is None or node.tag != "-text":
        return None
    tokens = (node.text() or "").split()
    if tokens and tokens[-1] != "-" and _SIZE_TOKEN.match(tokens[-1]):
        return tokens[-1]
    return None


def is_video_name(name: str) -> bool:
    return bool(_VIDEO_RE.search(name))


def _is_pseudo_entry(href: str, text: str) -> bool:
    if href in _SKIP_HREFS:
        return True
    lowered = text.lower()
    return text in ("..", ".", "../", "./") or lowered.startswith("parent dir")


def _entry_name(anchor: Anchor) -> str:
    # nginx truncates long names as "Some.Long.Na..>"
    text = anchor.text
    if not text or text.endswith(("..>", "...")):
        text = unquote(anchor.href)
    return text.rstrip("/")


def classify_anchor(anchor: Anchor, base_path: str) -> FileEntry | None:
    """Turn an anchor into a FileEntry, or None when it must be dropped.

    Trailing slash → directory; allow-listed extension → video; anything
    else (parent links, sort links, subtitles, archives) is dropped.
    """
    href = anchor.href
    if _is_pseudo_entry(href, anchor.text):
        return None

    target = unquote(urlsplit(href).path)
    is_directory = href.endswith("/")
    is_video = not is_directory and is_video_name(target)
    if not is_directory and not is_video:
        return None

    name = _entry_name(anchor)
    if name in ("", ".", ".."):
        return None

    return FileEntry(
        name=name,
        url=base_path + href,
        is_directory=is_directory,
        is_video=is_video,
        size=anchor.size if is_video else None,
    )


def parse_directory_listing(html: str, path: str,
                            parser: HtmlParser | None = None) -> DirectoryListing:
    """Parse a listing page fetched from ``path``; entries keep document order."""
    parser = parser or HtmlParser()
    entries = []
    for anchor in parser.parse(html):
        entry = classify_anchor(anchor, path)
        if entry is not None:
            entries.append(entry)
    logger.debug("Parsed %d entries from %s", len(entries), path)
    return DirectoryListing(path=path, entries=entries)


# ── Size parsing ────────────────────────────────────────────────────────

_SIZE_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3, "T": 1024 ** 4}
_SIZE_RE = re.compile(r"^([\d,.]+)\s*([KMGT]?)(?:i?B)?$", re.IGNORECASE)


def parse_file_size_to_bytes(size: str | None) -> int | None:
    """Convert a scraped size to bytes.

    e.g. "1.5 GB" → 1610612736, "700M" → 734003200, "512" → 512
    """
    if not size:
        return None
    cleaned = re.sub(r"<[^>]*>", "", size).strip()
    m = _SIZE_RE.match(cleaned)
    if not m:
        return None
    try:
        value = float(m.group(1).replace(",", ""))
    except ValueError:
        return None
    return round(value * _SIZE_UNITS[m.group(2).upper()])
