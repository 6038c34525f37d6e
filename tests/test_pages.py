from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from postforge.config import SiteConfig
from postforge.errors import DuplicateSlug, LayoutCycle, UnknownLayout
from postforge.models import Post, PublishedPost, RenderedPage, Site
from postforge.pages import (
    Layout,
    apply_layout,
    assemble_site,
    check_layouts,
    check_unique_paths,
    group_tags,
    load_layouts,
    sort_posts,
)


def make_item(slug: str, day: dt.date, tags: tuple[str, ...] = (), layout: str = "post") -> PublishedPost:
    post = Post(
        source_path=Path(f"_posts/{day.isoformat()}-{slug}.md"),
        layout=layout,
        title=slug.title(),
        description=f"About {slug}",
        tags=frozenset(tags),
        publish_date=day,
        slug=slug,
        body_markdown="body",
    )
    return PublishedPost(
        post=post,
        html=f"<p>{slug} body</p>",
        summary=post.description,
        words=2,
        url=f"/{day:%Y/%m/%d}/{slug}.html",
        output_path=f"{day:%Y/%m/%d}/{slug}.html",
    )


def layout(name: str, template: str, parent: str = "") -> Layout:
    return Layout(name=name, template=template, parent=parent, source=Path(f"_layouts/{name}.html"))


def test_sort_posts_newest_first_then_slug() -> None:
    items = [
        make_item("b", dt.date(2020, 7, 17)),
        make_item("c", dt.date(2019, 1, 1)),
        make_item("a", dt.date(2020, 7, 17)),
        make_item("d", dt.date(2021, 3, 2)),
    ]
    assert [item.slug for item in sort_posts(items)] == ["d", "a", "b", "c"]


def test_apply_layout_chains_parents() -> None:
    layouts = {
        "default": layout("default", "<html>{{ content }}</html>"),
        "post": layout("post", "<article><h1>{{ page.title }}</h1>{{ content }}</article>", parent="default"),
    }
    output = apply_layout("post", layouts, {"content": "<p>x</p>", "page.title": "Hello"})
    assert output == "<html><article><h1>Hello</h1><p>x</p></article></html>"


def test_apply_layout_unknown_layout_names_source() -> None:
    with pytest.raises(UnknownLayout) as excinfo:
        apply_layout("missing", {}, {"content": ""}, Path("_posts/2020-01-01-x.md"))
    assert excinfo.value.path == Path("_posts/2020-01-01-x.md")


def test_check_layouts_detects_cycles_and_missing_parents() -> None:
    with pytest.raises(LayoutCycle):
        check_layouts({"a": layout("a", "", parent="b"), "b": layout("b", "", parent="a")})
    with pytest.raises(UnknownLayout):
        check_layouts({"a": layout("a", "", parent="nowhere")})


def test_load_layouts_overrides_theme(tmp_path: Path) -> None:
    (tmp_path / "post.html").write_text("---\nlayout: default\n---\n<div>{{ content }}</div>\n", encoding="utf-8")
    layouts = load_layouts("minimal", tmp_path)
    assert layouts["post"].template == "<div>{{ content }}</div>\n"
    assert layouts["post"].parent == "default"
    assert "{{ content }}" in layouts["default"].template


def test_group_tags_merges_tags_with_same_slug() -> None:
    site = Site(
        config=SiteConfig(),
        posts=(
            make_item("a", dt.date(2020, 1, 2), tags=("Kotlin",)),
            make_item("b", dt.date(2020, 1, 1), tags=("kotlin", "json")),
        ),
    )
    groups = group_tags(site)
    assert sorted(groups) == ["json", "kotlin"]
    name, posts = groups["kotlin"]
    assert name == "Kotlin"
    assert [item.slug for item in posts] == ["a", "b"]


def test_assemble_site_produces_unique_pages() -> None:
    site = Site(
        config=SiteConfig(title="Notes", highlight=True),
        posts=(
            make_item("a", dt.date(2020, 1, 2), tags=("android",)),
            make_item("b", dt.date(2020, 1, 1), tags=("android", "json")),
        ),
    )
    pages = assemble_site(site, load_layouts("minimal", Path("does-not-exist")))
    paths = [page.output_path for page in pages]
    assert paths == [
        "2020/01/02/a.html",
        "2020/01/01/b.html",
        "index.html",
        "tags/android.html",
        "tags/json.html",
        "assets/css/highlight.css",
    ]
    assert len(set(paths)) == len(paths)
    index = pages[2].html_content
    assert index.index("About a") < index.index("About b")
    assert "<title>Notes</title>" in index
    post_page = pages[0].html_content
    assert "<title>A | Notes</title>" in post_page
    assert '<a href="/tags/android.html">android</a>' in post_page
    assert "highlight.css" in post_page


def test_check_unique_paths_names_both_sources() -> None:
    pages = [
        RenderedPage("2020/01/01/a.html", "", source="_posts/2020-01-01-a.md"),
        RenderedPage("2020/01/01/a.html", "", source="_posts/sub/2020-01-01-a.md"),
    ]
    with pytest.raises(DuplicateSlug) as excinfo:
        check_unique_paths(pages)
    message = str(excinfo.value)
    assert "_posts/2020-01-01-a.md" in message
    assert "_posts/sub/2020-01-01-a.md" in message
