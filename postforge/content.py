from __future__ import annotations

import html as html_lib
import re
from pathlib import Path

from .errors import MalformedContent, MalformedFrontMatter
from .models import Post
from .permalink import parse_post_filename
from .utils import parse_bool

FRONT_MATTER_MARKER = "---"
LIST_KEYS = {"tags", "categories"}
KEY_RE = re.compile(r"^[A-Za-z_][\w-]*$")
BLOCK_ITEM_RE = re.compile(r"^\s*-\s+(?P<item>.*)$")
CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
WORD_RE = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z0-9]+)?")
UNESCAPE_RE = re.compile(r"\\(.)")
NEEDS_QUOTES_RE = re.compile(r"""^[\s'"\[{&*!|>%@`-]|[:#]\s|\s$|:$""")


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "tag"


def unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return UNESCAPE_RE.sub(r"\1", value[1:-1])
    return value


def quote(value: str) -> str:
    if value and not NEEDS_QUOTES_RE.search(value) and value.lower() not in {"true", "false", "null", "~"}:
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        items = [unquote(item.strip()) for item in value[1:-1].split(",")]
    elif "," in value:
        items = [unquote(item.strip()) for item in value.split(",")]
    else:
        items = value.split()
    return [item for item in items if item]


def parse_front_matter(text: str, path: Path | None = None) -> tuple[dict, str]:
    """Split ``text`` into its front-matter mapping and the remaining body.

    Files that do not open with the marker line are all body. An opening
    marker without a closing one raises :class:`MalformedFrontMatter`.
    """
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_MARKER:
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONT_MATTER_MARKER:
            end = i
            break
    if end is None:
        raise MalformedFrontMatter("front matter is opened with '---' but never closed", path)

    meta: dict = {}
    list_key = None
    explicit_lists: set[str] = set()
    for lineno, raw_line in enumerate(lines[1:end], start=2):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        item_match = BLOCK_ITEM_RE.match(raw_line)
        if item_match and list_key is not None:
            item = unquote(item_match.group("item").strip())
            if item:
                meta[list_key].append(item)
            continue
        if ":" not in line:
            raise MalformedFrontMatter(f"line {lineno}: expected 'key: value', got {line!r}", path)
        key, value = line.split(":", 1)
        key = key.strip().lower()
        if not KEY_RE.match(key):
            raise MalformedFrontMatter(f"line {lineno}: invalid key {key!r}", path)
        value = value.strip()
        list_key = None
        if key in LIST_KEYS:
            meta[key] = parse_list(value)
            if not value:
                list_key = key
        elif not value:
            meta[key] = []
            list_key = key
        elif value == "[]":
            meta[key] = []
            explicit_lists.add(key)
        else:
            meta[key] = unquote(value)
    # Scalars declared empty and never followed by "- item" lines stay empty strings.
    for key, value in meta.items():
        if key not in LIST_KEYS and key not in explicit_lists and value == []:
            meta[key] = ""
    body = "\n".join(lines[end + 1 :])
    if clean_text.endswith("\n") and body:
        body += "\n"
    return meta, body


def dump_front_matter(meta: dict) -> str:
    lines = [FRONT_MATTER_MARKER]
    for key, value in meta.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            items = sorted(value) if isinstance(value, (set, frozenset)) else list(value)
            if not items:
                lines.append(f"{key}: []")
            elif key not in LIST_KEYS or any(re.search(r"[\s,\[\]'\"]", item) for item in items):
                lines.append(f"{key}:")
                lines.extend(f"  - {quote(item)}" for item in items)
            else:
                lines.append(f"{key}: {' '.join(items)}".rstrip())
        else:
            lines.append(f"{key}: {quote(str(value))}".rstrip())
    lines.append(FRONT_MATTER_MARKER)
    return "\n".join(lines) + "\n"


def count_words(text: str) -> int:
    text = html_lib.unescape(text)
    cjk_count = len(CJK_RE.findall(text))
    text = CJK_RE.sub(" ", text)
    word_count = len(WORD_RE.findall(text))
    return cjk_count + word_count


def is_draft(meta: dict) -> bool:
    if parse_bool(meta.get("draft")):
        return True
    published = meta.get("published")
    if published is None or published == "":
        return False
    return not parse_bool(published)


def parse_post(source_path: Path, text: str, default_layout: str) -> Post:
    publish_date, slug = parse_post_filename(source_path)
    meta, body = parse_front_matter(text, source_path)
    tags = meta.get("tags", []) + meta.get("categories", [])
    layout = str(meta.get("layout") or default_layout).strip()
    title = str(meta.get("title") or "").strip() or slug.replace("-", " ").title()
    extra = {
        key: value
        for key, value in meta.items()
        if key not in {"layout", "title", "description", "tags", "categories"}
    }
    return Post(
        source_path=source_path,
        layout=layout,
        title=title,
        description=str(meta.get("description") or "").strip(),
        tags=frozenset(tags),
        publish_date=publish_date,
        slug=slug,
        body_markdown=body,
        draft=is_draft(meta),
        extra=extra,
    )


def read_post(source_path: Path, default_layout: str) -> Post:
    try:
        text = source_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedContent(f"not valid UTF-8: {exc}", source_path) from exc
    except OSError as exc:
        raise MalformedContent(f"cannot read post: {exc.strerror or exc}", source_path) from exc
    return parse_post(source_path, text, default_layout)
