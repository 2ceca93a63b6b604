from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .embeds import Embed


class MediaKind(str, Enum):
    """Kind of media attached to a liked post."""
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaReference:
    """
    A retrieval target extracted from one post's embed.

    For videos `source_url` is an HLS playlist, not a direct file.
    """
    kind: MediaKind
    source_url: str


@dataclass(frozen=True)
class LikedItem:
    """One liked post: its AT URI and parsed embed (None when absent/unknown)."""
    uri: str
    embed: Optional["Embed"] = None


@dataclass(frozen=True)
class LikesPage:
    items: tuple[LikedItem, ...]
    cursor: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items
