"""Back/forward navigation over visited paths, and recent search terms."""
from config import SEARCH_HISTORY_LIMIT
from resolver.models import NavigationState


class NavigationHistory:
    """Browser-style history.

    ``navigate_to`` drops any forward entries; ``back``/``forward`` only
    move the index and never touch the history list.
    """

    def __init__(self, state: NavigationState | None = None):
        self.state = state or NavigationState()

    @property
    def history(self) -> list[str]:
        return list(self.state.history)

    @property
    def index(self) -> int:
        return self.state.index

    @property
    def current(self) -> str | None:
        if 0 <= self.state.index < len(self.state.history):
            return self.state.history[self.state.index]
        return None

    def reset(self, path: str):
        """Start a fresh history at ``path``."""
        self.state = NavigationState(history=[path], index=0)

    def navigate_to(self, path: str):
        history = self.state.history[: self.state.index + 1]
        history.append(path)
        self.state = NavigationState(history=history, index=len(history) - 1)

    def can_go_back(self) -> bool:
        return self.state.index > 0

    def can_go_forward(self) -> bool:
        return self.state.index < len(self.state.history) - 1

    def back(self) -> str | None:
        if not self.can_go_back():
            return None
        self.state.index -= 1
        return self.current

    def forward(self) -> str | None:
        if not self.can_go_forward():
            return None
        self.state.index += 1
        return self.current


class SearchHistory:
    """Most-recent-first list of search terms, capped and de-duplicated."""

    def __init__(self, terms: list[str] | None = None, limit: int = SEARCH_HISTORY_LIMIT):
        self.limit = limit
        self._terms = list(terms or [])[:limit]

    @property
    def terms(self) -> list[str]:
        return list(self._terms)

    def add(self, term: str) -> list[str]:
        """Move ``term`` to the front; blank terms are ignored."""
        term = term.strip()
        if term:
            self._terms = [term] + [t for t in self._terms if t != term]
            self._terms = self._terms[: self.limit]
        return self.terms
