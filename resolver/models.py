"""Typed records shared by the fetcher, matcher, cache and embed resolver."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class FileEntry(BaseModel):
    """One entry discovered in a remote directory listing."""

    name: str
    url: str
    is_directory: bool = False
    is_video: bool = False
    size: str | int | None = None
    # Set by RankedFileMatcher only, never by the fetcher
    match_score: int | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _check_kind(self):
        if self.is_directory and self.is_video:
            raise ValueError(f"{self.name!r} cannot be both a directory and a video")
        return self

    @computed_field
    @property
    def quality(self) -> str | None:
        from resolver.matcher import extract_quality
        return extract_quality(self.name) if self.is_video else None

    @computed_field
    @property
    def source(self) -> str | None:
        from resolver.matcher import extract_source
        return extract_source(self.name) if self.is_video else None

    @computed_field
    @property
    def extension(self) -> str | None:
        from resolver.matcher import extract_extension
        return extract_extension(self.name) if self.is_video else None

    @computed_field
    @property
    def episode_number(self) -> int | None:
        from resolver.matcher import extract_episode_number
        return extract_episode_number(self.name) if self.is_video else None

    @computed_field
    @property
    def size_bytes(self) -> int | None:
        from resolver.parser import parse_file_size_to_bytes
        if isinstance(self.size, int):
            return self.size
        return parse_file_size_to_bytes(self.size) if self.size else None


class DirectoryListing(BaseModel):
    """Parsed result of one fetch. Entries keep listing order."""

    model_config = ConfigDict(frozen=True)

    path: str
    entries: list[FileEntry] = Field(default_factory=list)

    @property
    def directories(self) -> list[FileEntry]:
        return [e for e in self.entries if e.is_directory]

    @property
    def videos(self) -> list[FileEntry]:
        return [e for e in self.entries if e.is_video]


class CacheEntry(BaseModel):
    version: int
    timestamp: int  # epoch millis
    data: list[FileEntry]
    path: str
    is_manual_mode: bool = False


class CacheMetadata(BaseModel):
    last_visited_path: str = ""
    search_history: list[str] = Field(default_factory=list)


class CacheStatus(BaseModel):
    is_cached: bool
    is_expired: bool
    last_updated: int | None = None


class NavigationState(BaseModel):
    history: list[str] = Field(default_factory=list)
    index: int = -1


class MatchResult(BaseModel):
    """Ranked, filtered view over a listing.

    ``is_empty`` marks a successful fetch whose filter left nothing, which
    callers must keep distinct from a fetch failure.
    """

    path: str
    query: str = ""
    directories: list[FileEntry] = Field(default_factory=list)
    videos: list[FileEntry] = Field(default_factory=list)
    groups: dict[int, list[FileEntry]] = Field(default_factory=dict)

    @computed_field
    @property
    def is_empty(self) -> bool:
        return not self.directories and not self.videos


class EmbedCandidate(BaseModel):
    embed_id: str
    url: str


# ── Metadata provider records ───────────────────────────────────────────

class SeasonInfo(BaseModel):
    season_number: int
    name: str = ""
    episode_count: int = 0


class Movie(BaseModel):
    kind: Literal["movie"] = "movie"
    id: int
    title: str
    original_title: str | None = None
    release_date: str | None = None
    overview: str | None = None
    poster_path: str | None = None

    @property
    def release_year(self) -> str | None:
        if self.release_date and len(self.release_date) >= 4:
            return self.release_date[:4]
        return None


class Show(BaseModel):
    kind: Literal["show"] = "show"
    id: int
    title: str
    original_title: str | None = None
    first_air_date: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    seasons: list[SeasonInfo] = Field(default_factory=list)


Media = Annotated[Union[Movie, Show], Field(discriminator="kind")]


class MediaRef(BaseModel):
    """Identifies what the embed resolver should look up."""

    kind: Literal["movie", "episode"]
    tmdb_id: int | None = None
    season: int | None = None
    episode: int | None = None

    @model_validator(mode="after")
    def _check_episode(self):
        if self.kind == "episode" and (self.season is None or self.episode is None):
            raise ValueError("an episode reference needs both season and episode")
        return self

    @property
    def provider_kind(self) -> str:
        return "movie" if self.kind == "movie" else "tv"
