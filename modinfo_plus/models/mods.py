"""
Pydantic models for the records exchanged with GitHub and persisted locally.
"""

import uuid
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

T = TypeVar("T")

DOWNLOADS_ERROR_SENTINEL = -1


class ModItem(BaseModel):
    """A discovered mod repository, identified by its owner/repository pair."""

    owner: str
    repo: str
    name: str = ""
    description: str = "No description"
    stars: int = Field(default=0, ge=0)
    url: str = ""
    topics: list[str] = Field(default_factory=list)
    discovered_at: float = 0.0

    @field_validator("owner", "repo")
    @classmethod
    def validate_identity(cls, v: str) -> str:
        """Owner and repository must both be present to form an identity."""
        v = v.strip()
        if not v:
            raise ValueError("Owner and repository must not be empty.")
        return v

    @property
    def key(self) -> str:
        """The identity key, e.g. 'Anuken/ExampleMod'."""
        return f"{self.owner}/{self.repo}"

    @property
    def display_name(self) -> str:
        return self.name or self.repo


class ModStats(BaseModel):
    """
    Release and download metrics for a single mod.

    An error record always carries the negative downloads sentinel so it can
    never be mistaken for a real count.
    """

    downloads: int = 0
    releases: int = Field(default=0, ge=0)
    latest_release: str | None = None
    first_release: str | None = None
    cache_time: float = 0.0
    error: bool = False

    @model_validator(mode="after")
    def validate_error_sentinel(self) -> "ModStats":
        if self.error and self.downloads >= 0:
            raise ValueError("Error stats must carry a negative download count.")
        if not self.error and self.downloads < 0:
            raise ValueError("Download count must be non-negative.")
        return self

    @classmethod
    def failed(cls) -> "ModStats":
        """Builds the transient record returned when a stats fetch fails."""
        return cls(downloads=DOWNLOADS_ERROR_SENTINEL, error=True)


class WatchEntry(BaseModel):
    """
    A mod the user has chosen to watch.

    ``baseline`` holds the last good stats seen for the mod, so release changes
    can be detected against a fetch made by an earlier process.
    """

    item: ModItem
    added_time: float = 0.0
    baseline: ModStats | None = None

    @property
    def key(self) -> str:
        return self.item.key


class Notification(BaseModel):
    """A generated event about a mod, such as a new release."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner: str
    repo: str
    mod_name: str = ""
    type: str
    message: str = ""
    time: float = 0.0
    read: bool = False

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repo}"


class CacheEntry(BaseModel, Generic[T]):
    """A cached payload together with the time it was fetched and its TTL."""

    payload: T
    fetched_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        """An entry is fresh while it is younger than its TTL."""
        return now - self.fetched_at < self.ttl

    def age(self, now: float) -> float:
        return max(0.0, now - self.fetched_at)
