"""Build canonical remote paths on the file index from display titles."""
from urllib.parse import quote

from config import MOVIES_ROOT, TV_ROOT


class PathResolver:
    """Pure string construction: no network, no side effects.

    Titles are URL-encoded verbatim. Callers guard against empty titles;
    an empty title still yields a well-formed (if useless) path.
    """

    def __init__(self, movies_root: str = MOVIES_ROOT, tv_root: str = TV_ROOT):
        self.movies_root = _with_slash(movies_root)
        self.tv_root = _with_slash(tv_root)

    def movie_path(self, title: str, year: str | int | None = None) -> str:
        """e.g. ("Dune", 2021) → ".../movies/Dune%20%282021%29/" """
        folder = f"{title} ({year})" if year else title
        return f"{self.movies_root}{quote(folder, safe='')}/"

    def tv_show_path(self, title: str, season: int | None = None) -> str:
        """e.g. ("Dark", 2) → ".../tvs/Dark/Season 2/" """
        path = f"{self.tv_root}{quote(title, safe='')}/"
        if season:
            path += f"Season {season}/"
        return path

    def search_root(self, is_show: bool) -> str:
        """Root used for manual browsing when auto-resolution fails."""
        return self.tv_root if is_show else self.movies_root

    def candidates(self, title: str, *, is_show: bool, year: str | int | None = None,
                   season: int | None = None) -> list[str]:
        """Paths to try in priority order, ending with the search root."""
        if is_show:
            paths = [self.tv_show_path(title, season)]
            if season:
                paths.append(self.tv_show_path(title))
        else:
            paths = [self.movie_path(title, year)]
            if year:
                paths.append(self.movie_path(title))
        paths.append(self.search_root(is_show))
        return paths

    def root_for(self, path: str) -> str | None:
        """Return the root a path lives under, if any."""
        for root in (self.movies_root, self.tv_root):
            if path.startswith(root):
                return root
        return None


def _with_slash(path: str) -> str:
    return path if path.endswith("/") else path + "/"
