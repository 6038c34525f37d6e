from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path

from .config import SiteConfig


@dataclass(frozen=True)
class Post:
    """One parsed content file. Date and slug always come from the filename."""

    source_path: Path
    layout: str
    title: str
    description: str
    tags: frozenset[str]
    publish_date: dt.date
    slug: str
    body_markdown: str
    draft: bool = False
    extra: dict = field(default_factory=dict, compare=False, hash=False)

    def sorted_tags(self) -> list[str]:
        return sorted(self.tags, key=lambda t: (t.lower(), t))


@dataclass(frozen=True)
class PublishedPost:
    post: Post
    html: str
    summary: str
    words: int
    url: str
    output_path: str

    @property
    def slug(self) -> str:
        return self.post.slug

    @property
    def title(self) -> str:
        return self.post.title

    @property
    def publish_date(self) -> dt.date:
        return self.post.publish_date


@dataclass(frozen=True)
class Site:
    config: SiteConfig
    posts: tuple[PublishedPost, ...]

    def tag_map(self) -> dict[str, list[PublishedPost]]:
        tags: dict[str, list[PublishedPost]] = {}
        for item in self.posts:
            for tag in item.post.sorted_tags():
                tags.setdefault(tag, []).append(item)
        return tags


@dataclass(frozen=True)
class RenderedPage:
    output_path: str
    html_content: str
    source: str = ""
