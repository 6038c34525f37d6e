from __future__ import annotations

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .config import SiteConfig, read_site_config
from .content import count_words, read_post
from .errors import ConfigError, DuplicateSlug, OutputDirError, SiteBuildError, UnknownLayout
from .models import Post, PublishedPost, RenderedPage, Site
from .pages import assemble_site, check_layouts, load_layouts, sort_posts, theme_dir
from .permalink import resolve_permalink, validate_pattern
from .render import copy_static, fix_relative_img_src, render_markdown, strip_tags, summarize, write_text
from .utils import clean_output_dir, join_url

POST_SUFFIXES = {".md", ".markdown"}


def discover_posts(source_dir: Path) -> list[Path]:
    if not source_dir.is_dir():
        raise ConfigError("source directory not found", source_dir)
    files = [path for path in source_dir.rglob("*") if path.is_file() and path.suffix.lower() in POST_SUFFIXES]
    return sorted(files, key=lambda p: p.as_posix())


def check_unique_slugs(posts: list[Post]) -> None:
    owners: dict[str, Post] = {}
    for post in posts:
        if post.slug in owners:
            other = owners[post.slug]
            raise DuplicateSlug(f"slug {post.slug!r} is used more than once", [other.source_path, post.source_path])
        owners[post.slug] = post


def publish_post(post: Post, config: SiteConfig) -> PublishedPost:
    body_html = render_markdown(post.body_markdown, highlight=config.highlight)
    body_html = fix_relative_img_src(body_html, join_url(config.base_url, ""))
    url, output_path = resolve_permalink(post.publish_date, post.slug, config.permalink, config.base_url)
    text = strip_tags(body_html)
    return PublishedPost(
        post=post,
        html=body_html,
        summary=summarize(post.description, body_html),
        words=count_words(text),
        url=url,
        output_path=output_path,
    )


def render_posts(posts: list[Post], config: SiteConfig) -> list[PublishedPost]:
    workers = min(config.workers, len(posts)) if posts else 1
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda post: publish_post(post, config), posts))
    return [publish_post(post, config) for post in posts]


def generate_site(config: SiteConfig) -> list[RenderedPage]:
    """Run every stage up to writing; nothing touches the output directory."""
    validate_pattern(config.permalink)
    if not theme_dir(config.theme).is_dir():
        raise ConfigError(f"unknown theme {config.theme!r}")
    layouts = load_layouts(config.theme, config.layouts_dir)
    check_layouts(layouts)

    posts = [read_post(path, config.default_layout) for path in discover_posts(config.source)]
    posts = [post for post in posts if not post.draft]
    check_unique_slugs(posts)
    for post in posts:
        if post.layout not in layouts:
            raise UnknownLayout(
                f"layout {post.layout!r} is not defined (known: {', '.join(sorted(layouts)) or 'none'})",
                post.source_path,
            )

    published = sort_posts(render_posts(posts, config))
    site = Site(config=config, posts=tuple(published))
    return assemble_site(site, layouts)


def write_site(config: SiteConfig, pages: list[RenderedPage]) -> None:
    output_dir = config.output_dir
    theme_assets = theme_dir(config.theme) / "assets"
    try:
        clean_output_dir(output_dir, [config.source, config.layouts_dir, config.static_dir])
        output_dir.mkdir(parents=True, exist_ok=True)
        if theme_assets.is_dir():
            copy_static(theme_assets, output_dir / "assets")
        if config.static_dir.is_dir():
            copy_static(config.static_dir, output_dir)
        for page in pages:
            write_text(output_dir / page.output_path, page.html_content)
    except OSError as exc:
        raise OutputDirError(f"cannot write output: {exc}", exc.filename or output_dir) from exc


def build_site(config: SiteConfig) -> list[RenderedPage]:
    pages = generate_site(config)
    write_site(config, pages)
    return pages


def resolve_config(args: argparse.Namespace) -> SiteConfig:
    config = read_site_config(Path(args.config))
    return config.with_overrides(
        source=args.source,
        output_dir=args.output,
        layouts_dir=args.layouts,
        static_dir=args.static,
        base_url=args.base_url,
        build_workers=args.workers,
        highlight=args.highlight,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="postforge", description="Static blog generator for dated Markdown posts.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    build = subparsers.add_parser("build", help="Render the site into the output directory.")
    build.add_argument("--config", default="_config.yml", help="Path to site config file (TOML/YAML/JSON).")
    build.add_argument("--source", default=None, help="Directory containing dated Markdown posts.")
    build.add_argument("--output", default=None, help="Output directory for the site.")
    build.add_argument("--layouts", default=None, help="Directory of layout templates.")
    build.add_argument("--static", default=None, help="Directory of static assets copied verbatim.")
    build.add_argument("--base-url", default=None, help="URL prefix for generated links.")
    build.add_argument("--workers", default=None, type=int, help="Worker threads for rendering (0 = auto).")
    build.add_argument(
        "--highlight",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Highlight fenced code with Pygments.",
    )
    build.add_argument("--quiet", action="store_true", help="Only print errors.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    start = time.perf_counter()
    try:
        config = resolve_config(args)
        pages = build_site(config)
    except SiteBuildError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start
    if not args.quiet:
        print(f"Built {len(pages)} pages in {elapsed:.2f}s.")
        print(f"Site generated in: {config.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
