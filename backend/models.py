"""Pydantic models for API requests and responses."""
from typing import Literal

from pydantic import BaseModel

from resolver.models import EmbedCandidate, FileEntry


class PathsResponse(BaseModel):
    path: str
    candidates: list[str]
    search_root: str


class BrowseResponse(BaseModel):
    path: str
    query: str = ""
    is_manual_mode: bool = False
    is_empty: bool
    directories: list[FileEntry]
    videos: list[FileEntry]
    groups: dict[int, list[FileEntry]] = {}
    can_go_back: bool = False
    can_go_forward: bool = False
    error: str | None = None
    hint: str | None = None


class SessionCreated(BaseModel):
    session_id: str


class SessionState(BaseModel):
    session_id: str
    current_path: str | None = None
    history: list[str]
    index: int
    is_manual_mode: bool
    last_visited_path: str = ""
    search_history: list[str] = []


class OpenRequest(BaseModel):
    kind: Literal["movie", "show"]
    tmdb_id: int | None = None
    title: str | None = None
    year: str | None = None
    season: int | None = None
    episode: int | None = None


class NavigateRequest(BaseModel):
    path: str


class FilterRequest(BaseModel):
    query: str = ""


class EmbedsResponse(BaseModel):
    tmdb_id: int
    kind: str
    embeds: list[EmbedCandidate]


class ErrorResponse(BaseModel):
    detail: str
    hint: str | None = None


class CacheResult(BaseModel):
    removed: int
