from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path

from .content import parse_front_matter, slugify
from .errors import DuplicateSlug, LayoutCycle, MalformedContent, UnknownLayout
from .models import PublishedPost, RenderedPage, Site
from .render import highlight_css, render_template
from .utils import join_url

THEMES_DIR = Path(__file__).parent / "themes"
LISTING_LAYOUT = "default"
HIGHLIGHT_CSS_PATH = "assets/css/highlight.css"


@dataclass(frozen=True)
class Layout:
    name: str
    template: str
    parent: str
    source: Path


def theme_dir(theme: str) -> Path:
    return THEMES_DIR / theme


def read_layouts(layouts_dir: Path) -> dict[str, Layout]:
    layouts: dict[str, Layout] = {}
    if not layouts_dir.is_dir():
        return layouts
    for path in sorted(layouts_dir.glob("*.html")):
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedContent(f"layout is not valid UTF-8: {exc}", path) from exc
        except OSError as exc:
            raise MalformedContent(f"cannot read layout: {exc.strerror or exc}", path) from exc
        meta, body = parse_front_matter(text, path)
        layouts[path.stem] = Layout(
            name=path.stem,
            template=body,
            parent=str(meta.get("layout") or "").strip(),
            source=path,
        )
    return layouts


def load_layouts(theme: str, layouts_dir: Path) -> dict[str, Layout]:
    """Theme layouts overlaid by the site's own layouts directory."""
    layouts = read_layouts(theme_dir(theme) / "layouts")
    layouts.update(read_layouts(layouts_dir))
    return layouts


def check_layouts(layouts: dict[str, Layout]) -> None:
    for name in sorted(layouts):
        seen = [name]
        current = layouts[name]
        while current.parent:
            if current.parent not in layouts:
                raise UnknownLayout(f"parent layout {current.parent!r} is not defined", current.source)
            if current.parent in seen:
                chain = " -> ".join([*seen, current.parent])
                raise LayoutCycle(f"layout chain loops: {chain}", current.source)
            seen.append(current.parent)
            current = layouts[current.parent]


def apply_layout(name: str, layouts: dict[str, Layout], context: dict[str, str], source: Path | str = "") -> str:
    if name not in layouts:
        raise UnknownLayout(f"layout {name!r} is not defined (known: {', '.join(sorted(layouts)) or 'none'})", source)
    output = context["content"]
    seen: set[str] = set()
    current: Layout | None = layouts[name]
    while current is not None:
        if current.name in seen:
            raise LayoutCycle(f"layout {current.name!r} includes itself", current.source)
        seen.add(current.name)
        output = render_template(current.template, {**context, "content": output})
        current = layouts.get(current.parent) if current.parent else None
    return output


def sort_posts(posts: list[PublishedPost]) -> list[PublishedPost]:
    ordered = sorted(posts, key=lambda p: p.slug)
    ordered.sort(key=lambda p: p.publish_date, reverse=True)
    return ordered


def tag_url(base_url: str, tag_slug: str) -> str:
    return join_url(base_url, f"tags/{tag_slug}.html")


def group_tags(site: Site) -> dict[str, tuple[str, list[PublishedPost]]]:
    """Group posts by tag slug; tags that slugify alike share one page."""
    groups: dict[str, tuple[str, list[PublishedPost]]] = {}
    for tag, posts in sorted(site.tag_map().items()):
        tag_slug = slugify(tag)
        if tag_slug in groups:
            name, existing = groups[tag_slug]
            merged = {id(p): p for p in existing + posts}
            groups[tag_slug] = (name, sort_posts(list(merged.values())))
        else:
            groups[tag_slug] = (tag, sort_posts(posts))
    return groups


def site_context(site: Site) -> dict[str, str]:
    config = site.config
    extra_head = ""
    if config.highlight:
        extra_head = f'<link rel="stylesheet" href="{join_url(config.base_url, HIGHLIGHT_CSS_PATH)}">'
    return {
        "site.title": html.escape(config.title),
        "site.description": html.escape(config.description),
        "site.base_url": html.escape(config.base_url),
        "site.url": html.escape(join_url(config.base_url, "")),
        "extra_head": extra_head,
    }


def build_tag_links(item: PublishedPost, base_url: str) -> str:
    links = []
    for tag in item.post.sorted_tags():
        url = tag_url(base_url, slugify(tag))
        links.append(f'<li><a href="{html.escape(url)}">{html.escape(tag)}</a></li>')
    return "".join(links)


def post_context(item: PublishedPost, site: Site) -> dict[str, str]:
    config = site.config
    post = item.post
    context = site_context(site)
    for key, value in sorted(post.extra.items()):
        if isinstance(value, list):
            value = ", ".join(value)
        context[f"page.{key}"] = html.escape(str(value))
    context.update(
        {
            "title": html.escape(f"{post.title} | {config.title}"),
            "page.title": html.escape(post.title),
            "page.description": html.escape(item.summary),
            "page.date": html.escape(post.publish_date.strftime(config.date_format)),
            "page.date_iso": post.publish_date.isoformat(),
            "page.slug": html.escape(post.slug),
            "page.url": html.escape(item.url),
            "page.words": str(item.words),
            "page.tags": build_tag_links(item, config.base_url),
            "content": item.html,
        }
    )
    return context


def build_post_list(posts: list[PublishedPost], site: Site) -> str:
    rows = []
    for item in posts:
        date_text = item.publish_date.strftime(site.config.date_format)
        rows.append(
            "<li>"
            f'<time class="post-date" datetime="{item.publish_date.isoformat()}">{html.escape(date_text)}</time>'
            f'<h2 class="post-title"><a href="{html.escape(item.url)}">{html.escape(item.title)}</a></h2>'
            f'<p class="post-summary">{html.escape(item.summary)}</p>'
            "</li>"
        )
    if not rows:
        return '<p class="post-list-empty">No posts yet.</p>'
    return f'<ul class="post-list">{"".join(rows)}</ul>'


def listing_page(
    site: Site,
    layouts: dict[str, Layout],
    output_path: str,
    heading: str,
    posts: list[PublishedPost],
    title: str,
) -> RenderedPage:
    context = site_context(site)
    context.update(
        {
            "title": html.escape(title),
            "page.title": html.escape(heading),
            "page.description": html.escape(site.config.description),
            "content": (
                f'<section class="listing"><h1 class="listing-title">{html.escape(heading)}</h1>'
                f"{build_post_list(posts, site)}</section>"
            ),
        }
    )
    html_doc = apply_layout(LISTING_LAYOUT, layouts, context, output_path)
    return RenderedPage(output_path=output_path, html_content=html_doc, source="<listing>")


def build_index(site: Site, layouts: dict[str, Layout]) -> RenderedPage:
    return listing_page(site, layouts, "index.html", "Latest posts", list(site.posts), site.config.title)


def build_tag_pages(site: Site, layouts: dict[str, Layout]) -> list[RenderedPage]:
    pages = []
    for tag_slug, (name, posts) in group_tags(site).items():
        pages.append(
            listing_page(
                site,
                layouts,
                f"tags/{tag_slug}.html",
                f"Posts tagged {name}",
                posts,
                f"{name} | {site.config.title}",
            )
        )
    return pages


def build_post_page(item: PublishedPost, site: Site, layouts: dict[str, Layout]) -> RenderedPage:
    html_doc = apply_layout(item.post.layout, layouts, post_context(item, site), item.post.source_path)
    return RenderedPage(
        output_path=item.output_path,
        html_content=html_doc,
        source=str(item.post.source_path),
    )


def check_unique_paths(pages: list[RenderedPage]) -> None:
    owners: dict[str, RenderedPage] = {}
    for page in pages:
        key = page.output_path.lower()
        if key in owners:
            other = owners[key]
            raise DuplicateSlug(
                f"both produce {page.output_path!r}",
                [other.source or other.output_path, page.source or page.output_path],
            )
        owners[key] = page


def assemble_site(site: Site, layouts: dict[str, Layout]) -> list[RenderedPage]:
    """Render every page of the site in memory, in a deterministic order."""
    pages = [build_post_page(item, site, layouts) for item in site.posts]
    pages.append(build_index(site, layouts))
    pages.extend(build_tag_pages(site, layouts))
    if site.config.highlight:
        pages.append(
            RenderedPage(
                output_path=HIGHLIGHT_CSS_PATH,
                html_content=highlight_css(site.config.pygments_style),
                source="<highlight>",
            )
        )
    check_unique_paths(pages)
    return pages
