from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from postforge.content import (
    count_words,
    dump_front_matter,
    parse_front_matter,
    parse_list,
    parse_post,
    read_post,
    slugify,
)
from postforge.errors import InvalidFilenameConvention, MalformedContent, MalformedFrontMatter

LIVEDATA_POST = """---
layout: post
title: "Transforming LiveData with asynchronous dependencies"
description: Chaining LiveData with coroutines
tags: android kotlin livedata
---
Some *intro* text.
"""


def test_parse_front_matter_reads_scalars_and_space_separated_tags() -> None:
    meta, body = parse_front_matter(LIVEDATA_POST)
    assert meta == {
        "layout": "post",
        "title": "Transforming LiveData with asynchronous dependencies",
        "description": "Chaining LiveData with coroutines",
        "tags": ["android", "kotlin", "livedata"],
    }
    assert body == "Some *intro* text.\n"


def test_parse_front_matter_without_marker_returns_whole_text() -> None:
    text = "# Heading\n\nbody\n"
    assert parse_front_matter(text) == ({}, text)


def test_parse_front_matter_strips_bom() -> None:
    meta, body = parse_front_matter("\ufeff---\ntitle: Hi\n---\nbody")
    assert meta == {"title": "Hi"}
    assert body == "body"


def test_parse_front_matter_missing_end_marker_raises() -> None:
    path = Path("_posts/2020-07-17-broken.md")
    with pytest.raises(MalformedFrontMatter) as excinfo:
        parse_front_matter("---\ntitle: Broken\n\nno closing marker\n", path)
    assert excinfo.value.path == path
    assert "MalformedFrontMatter" in str(excinfo.value)
    assert "2020-07-17-broken.md" in str(excinfo.value)


def test_parse_front_matter_rejects_line_without_colon() -> None:
    with pytest.raises(MalformedFrontMatter, match="line 3"):
        parse_front_matter("---\ntitle: ok\njust some words\n---\n")


def test_parse_front_matter_block_and_flow_lists() -> None:
    text = "---\ntags:\n  - android\n  - 'unit testing'\ncategories: [kotlin, \"json\"]\n---\n"
    meta, _ = parse_front_matter(text)
    assert meta["tags"] == ["android", "unit testing"]
    assert meta["categories"] == ["kotlin", "json"]


def test_parse_front_matter_keeps_colons_in_quoted_values() -> None:
    meta, _ = parse_front_matter('---\ntitle: "Moshi: custom adapters"\n---\n')
    assert meta["title"] == "Moshi: custom adapters"


@pytest.mark.parametrize(
    "meta",
    [
        {"layout": "post", "title": "Transforming LiveData with asynchronous dependencies"},
        {"title": "Moshi: custom adapters", "tags": ["json", "kotlin"]},
        {"title": "It's \"quoted\"", "description": "", "tags": []},
        {"title": "true", "tags": ["unit testing", "android"], "author": "- dash first"},
        {"categories": ["a", "b"], "note": "ends with colon:", "path": "C:\\temp\\x"},
        {"aliases": [], "tags": [], "literal": "[]"},
    ],
)
def test_dump_then_parse_round_trips(meta: dict) -> None:
    parsed, body = parse_front_matter(dump_front_matter(meta) + "body\n")
    assert parsed == meta
    assert body == "body\n"


def test_parse_list_variants() -> None:
    assert parse_list("a b  c") == ["a", "b", "c"]
    assert parse_list("a, b c") == ["a", "b c"]
    assert parse_list("[ 'x', y ]") == ["x", "y"]
    assert parse_list("") == []


def test_parse_post_derives_date_and_slug_from_filename() -> None:
    path = Path("2020-07-17-livedata-transformations-with-coroutines.md")
    post = parse_post(path, LIVEDATA_POST, default_layout="post")
    assert post.publish_date == dt.date(2020, 7, 17)
    assert post.slug == "livedata-transformations-with-coroutines"
    assert post.title == "Transforming LiveData with asynchronous dependencies"
    assert post.tags == frozenset({"android", "kotlin", "livedata"})
    assert post.layout == "post"
    assert not post.draft


def test_parse_post_defaults_layout_and_title() -> None:
    post = parse_post(Path("2021-01-02-json-parsing.md"), "body only\n", default_layout="article")
    assert post.layout == "article"
    assert post.title == "Json Parsing"
    assert post.body_markdown == "body only\n"


@pytest.mark.parametrize("front", ["draft: true", "published: false"])
def test_parse_post_marks_drafts(front: str) -> None:
    post = parse_post(Path("2021-01-02-wip.md"), f"---\n{front}\n---\nbody\n", default_layout="post")
    assert post.draft
    assert "draft" in post.extra or "published" in post.extra


def test_parse_post_rejects_bad_filename() -> None:
    with pytest.raises(InvalidFilenameConvention):
        parse_post(Path("notes.md"), "body", default_layout="post")


def test_read_post_rejects_non_utf8(tmp_path: Path) -> None:
    path = tmp_path / "2021-01-02-binary.md"
    path.write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(MalformedContent):
        read_post(path, "post")


def test_slugify_and_count_words() -> None:
    assert slugify("Unit Testing") == "unit-testing"
    assert slugify("C++") == "c"
    assert count_words("LiveData isn't hard") == 3
    assert count_words("日本語 text") == 4
