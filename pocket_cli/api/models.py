"""Data types exchanged with the Pocket API."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse


class ItemState(Enum):
    """Read state of an item, also used as a retrieve filter."""

    UNREAD = "unread"
    ARCHIVED = "archive"
    ALL = "all"


# Fields available to the ``list --format`` template, in display order
DISPLAY_FIELDS = ("item_id", "title", "url", "tags", "domain", "sort_id", "state")


@dataclass(frozen=True)
class Item:
    """Read-only snapshot of one saved item."""

    item_id: int
    title: str
    url: str
    tags: frozenset = field(default_factory=frozenset)
    domain: str = ""
    sort_id: int = 0
    state: ItemState = ItemState.UNREAD

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Item":
        """Build an item from one entry of Pocket's ``list`` mapping.

        Resolved values win over the values given when the item was saved.
        """
        url = data.get("resolved_url") or data.get("given_url") or ""
        title = data.get("resolved_title") or data.get("given_title") or ""

        tags = data.get("tags") or {}
        domain_metadata = data.get("domain_metadata") or {}
        domain = domain_metadata.get("name") or urlparse(url).netloc

        state = ItemState.ARCHIVED if str(data.get("status")) == "1" else ItemState.UNREAD

        return cls(
            item_id=int(data["item_id"]),
            title=title,
            url=url,
            tags=frozenset(tags),
            domain=domain,
            sort_id=int(data.get("sort_id", 0)),
            state=state,
        )

    def display_fields(self) -> dict[str, Any]:
        """Return the values exposed to display templates."""
        return {
            "item_id": self.item_id,
            "title": self.title,
            "url": self.url,
            "tags": ",".join(sorted(self.tags)),
            "domain": self.domain,
            "sort_id": self.sort_id,
            "state": self.state.value,
        }


@dataclass
class RetrieveFilter:
    """Retrieve options; ``None`` fields mean "no filter"."""

    domain: Optional[str] = None
    tag: Optional[str] = None
    search: Optional[str] = None
    state: Optional[ItemState] = None

    def to_params(self) -> dict[str, str]:
        params = {}
        if self.domain:
            params["domain"] = self.domain
        if self.tag:
            params["tag"] = self.tag
        if self.search:
            params["search"] = self.search
        if self.state is not None:
            params["state"] = self.state.value
        return params


@dataclass(frozen=True)
class RequestCredential:
    """Short-lived token for a single authorization attempt."""

    code: str
    state: Optional[str] = None


@dataclass(frozen=True)
class AccessCredential:
    """Durable token authorizing API calls for a user."""

    access_token: str
    username: Optional[str] = None

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"access_token": self.access_token, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccessCredential":
        return cls(access_token=data["access_token"], username=data.get("username"))


@dataclass
class AddOption:
    url: str
    title: Optional[str] = None
    tags: Optional[str] = None  # comma-separated

    def to_params(self) -> dict[str, str]:
        params = {"url": self.url}
        if self.title:
            params["title"] = self.title
        if self.tags:
            params["tags"] = self.tags
        return params


@dataclass(frozen=True)
class ArchiveAction:
    item_id: int

    def to_dict(self) -> dict[str, str]:
        return {"action": "archive", "item_id": str(self.item_id)}
