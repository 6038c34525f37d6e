from __future__ import annotations

import html
import re
import shutil
from pathlib import Path

import markdown
from pygments.formatters import HtmlFormatter
from pygments.styles import get_all_styles

from .errors import ConfigError
from .extensions import FenceCloserExtension

IMG_SRC_RE = re.compile(r'<img([^>]*?)src="([^"]+)"', re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
PLACEHOLDER_RE = re.compile(r"\{\{\s*(?P<key>[\w.]+)\s*\}\}")
SUMMARY_LENGTH = 200
HIGHLIGHT_CLASS = "highlight"


def markdown_extensions(highlight: bool) -> tuple[list, dict]:
    extensions: list = ["fenced_code", "tables", "sane_lists", FenceCloserExtension()]
    configs: dict = {}
    if highlight:
        extensions.append("codehilite")
        configs["codehilite"] = {"css_class": HIGHLIGHT_CLASS, "guess_lang": False}
    return extensions, configs


def render_markdown(body: str, highlight: bool = False) -> str:
    """Convert a post body to HTML.

    Each call builds its own Markdown instance so bodies can be rendered
    from several threads at once.
    """
    extensions, configs = markdown_extensions(highlight)
    md = markdown.Markdown(extensions=extensions, extension_configs=configs)
    return md.convert(body)


def fix_relative_img_src(html_text: str, root: str) -> str:
    def repl(match: re.Match) -> str:
        attrs = match.group(1)
        src = match.group(2)
        if src.startswith(("http://", "https://", "data:", "#", "/", "./", "../")):
            return match.group(0)
        return f'<img{attrs}src="{root.rstrip("/")}/{src}"'

    return IMG_SRC_RE.sub(repl, html_text)


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def summarize(description: str, html_text: str) -> str:
    if description:
        return description
    summary = " ".join(html.unescape(strip_tags(html_text)).split())
    if len(summary) > SUMMARY_LENGTH:
        return summary[:SUMMARY_LENGTH] + "..."
    return summary


def render_template(template: str, context: dict[str, str]) -> str:
    """Fill ``{{ key }}`` placeholders in one pass; unknown keys are kept."""

    def repl(match: re.Match) -> str:
        key = match.group("key")
        if key in context:
            return context[key]
        return match.group(0)

    return PLACEHOLDER_RE.sub(repl, template)


def highlight_css(style: str) -> str:
    if style not in set(get_all_styles()):
        raise ConfigError(f"unknown pygments style {style!r}")
    return HtmlFormatter(style=style).get_style_defs(f".{HIGHLIGHT_CLASS}") + "\n"


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, output_dir: Path) -> None:
    for item in sorted(static_dir.iterdir()):
        dest = output_dir / item.name
        if item.is_dir():
            shutil.copytree(item, dest, dirs_exist_ok=True)
        else:
            output_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, dest)
