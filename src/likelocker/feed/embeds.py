"""
Embed parsing for Bluesky feed post views.

Post embeds form a closed set of shapes:

- app.bsky.embed.images#view          -> ImagesEmbed
- app.bsky.embed.video#view           -> VideoEmbed
- app.bsky.embed.recordWithMedia#view -> RecordWithMediaEmbed (nested images and/or video)
- anything else / absent              -> None

Nesting is exactly one level deep: a quoted record's own embeds are not
followed, only the `media` attached next to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from .models import LikedItem, LikesPage, MediaKind, MediaReference


IMAGES_VIEW = "app.bsky.embed.images"
VIDEO_VIEW = "app.bsky.embed.video"
RECORD_WITH_MEDIA_VIEW = "app.bsky.embed.recordWithMedia"


@dataclass(frozen=True)
class ImagesEmbed:
    fullsize_urls: tuple[str, ...]


@dataclass(frozen=True)
class VideoEmbed:
    playlist: str


@dataclass(frozen=True)
class RecordWithMediaEmbed:
    images: Optional[ImagesEmbed] = None
    video: Optional[VideoEmbed] = None

    @property
    def parts(self) -> list[Union[ImagesEmbed, VideoEmbed]]:
        """Nested media in extraction order: images first, then video."""
        return [part for part in (self.images, self.video) if part is not None]


Embed = Union[ImagesEmbed, VideoEmbed, RecordWithMediaEmbed]


def _embed_type(raw: Mapping[str, Any]) -> str:
    # "$type" is "<nsid>#view"; only the nsid matters here.
    value = raw.get("$type")
    if not isinstance(value, str):
        return ""
    return value.split("#", 1)[0]


def _parse_images(raw: Mapping[str, Any]) -> ImagesEmbed:
    images = raw.get("images") or []
    urls: list[str] = []
    if isinstance(images, Sequence):
        for img in images:
            if not isinstance(img, Mapping):
                continue
            fullsize = img.get("fullsize")
            urls.append(fullsize if isinstance(fullsize, str) else "")
    return ImagesEmbed(fullsize_urls=tuple(urls))


def _parse_video(raw: Mapping[str, Any]) -> VideoEmbed:
    playlist = raw.get("playlist")
    return VideoEmbed(playlist=playlist if isinstance(playlist, str) else "")


def _parse_media(raw: Any) -> Optional[Union[ImagesEmbed, VideoEmbed]]:
    if not isinstance(raw, Mapping):
        return None
    embed_type = _embed_type(raw)
    if embed_type == IMAGES_VIEW:
        return _parse_images(raw)
    if embed_type == VIDEO_VIEW:
        return _parse_video(raw)
    return None


def parse_embed(raw: Any) -> Optional[Embed]:
    """
    Parse a post view's `embed` object into one of the known variants.

    Returns:
        The embed variant, or None for absent or unrecognized embeds
        (external links, plain quote posts, ...).
    """
    if not isinstance(raw, Mapping):
        return None

    embed_type = _embed_type(raw)
    if embed_type == RECORD_WITH_MEDIA_VIEW:
        media = _parse_media(raw.get("media"))
        if isinstance(media, ImagesEmbed):
            return RecordWithMediaEmbed(images=media)
        if isinstance(media, VideoEmbed):
            return RecordWithMediaEmbed(video=media)
        return RecordWithMediaEmbed()
    return _parse_media(raw)


def _references_for_media(media: Union[ImagesEmbed, VideoEmbed]) -> list[MediaReference]:
    if isinstance(media, ImagesEmbed):
        return [MediaReference(kind=MediaKind.IMAGE, source_url=url) for url in media.fullsize_urls]
    return [MediaReference(kind=MediaKind.VIDEO, source_url=media.playlist)]


def extract_media_references(embed: Optional[Embed]) -> list[MediaReference]:
    """
    Extract every media reference from an embed, in display order.

    An absent or unrecognized embed yields an empty list; that is not an error.
    """
    if embed is None:
        return []
    if isinstance(embed, RecordWithMediaEmbed):
        references: list[MediaReference] = []
        for part in embed.parts:
            references.extend(_references_for_media(part))
        return references
    return _references_for_media(embed)


def parse_likes_page(payload: Mapping[str, Any]) -> LikesPage:
    """
    Parse an `app.bsky.feed.getActorLikes` response body.

    Items without a post URI are dropped. Feed order is preserved.
    """
    items: list[LikedItem] = []

    feed = payload.get("feed") or []
    if isinstance(feed, Sequence):
        for entry in feed:
            if not isinstance(entry, Mapping):
                continue
            post = entry.get("post")
            if not isinstance(post, Mapping):
                continue
            uri = post.get("uri")
            if not isinstance(uri, str) or not uri.strip():
                continue
            items.append(LikedItem(uri=uri, embed=parse_embed(post.get("embed"))))

    cursor = payload.get("cursor")
    return LikesPage(
        items=tuple(items),
        cursor=cursor if isinstance(cursor, str) and cursor.strip() else None,
    )
