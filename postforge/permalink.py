from __future__ import annotations

import datetime as dt
import re
from pathlib import Path

from .errors import ConfigError, InvalidFilenameConvention
from .utils import join_url

POST_FILENAME_RE = re.compile(
    r"""
    ^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})  # date prefix
    -(?P<slug>[\w][\w.-]*?)                           # slug
    \.(?P<ext>[A-Za-z0-9]+)$                          # extension
    """,
    flags=re.VERBOSE,
)
TOKEN_RE = re.compile(r":(?P<name>[a-z_]+)")
TOKENS = {"year", "month", "day", "slug"}


def parse_post_filename(path: Path | str) -> tuple[dt.date, str]:
    """Return ``(publish_date, slug)`` for a ``YYYY-MM-DD-slug.ext`` filename."""
    name = Path(path).name
    match = POST_FILENAME_RE.match(name)
    if not match:
        raise InvalidFilenameConvention(
            f"filename {name!r} does not match YYYY-MM-DD-slug.ext", path
        )
    try:
        publish_date = dt.date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    except ValueError as exc:
        raise InvalidFilenameConvention(f"invalid date in filename {name!r}: {exc}", path) from exc
    return publish_date, match.group("slug")


def validate_pattern(pattern: str) -> str:
    if not pattern.startswith("/"):
        pattern = f"/{pattern}"
    for match in TOKEN_RE.finditer(pattern):
        if match.group("name") not in TOKENS:
            raise ConfigError(f"unknown permalink token ':{match.group('name')}' in {pattern!r}")
    return pattern


def resolve_path(publish_date: dt.date, slug: str, pattern: str) -> str:
    values = {
        "year": f"{publish_date.year:04d}",
        "month": f"{publish_date.month:02d}",
        "day": f"{publish_date.day:02d}",
        "slug": slug,
    }
    pattern = validate_pattern(pattern)
    return TOKEN_RE.sub(lambda m: values[m.group("name")], pattern)


def output_path_for(url_path: str) -> str:
    """Map a site-relative URL path to a file path inside the output directory."""
    path = url_path.lstrip("/")
    if not path or path.endswith("/"):
        return f"{path}index.html"
    return path


def resolve_permalink(publish_date: dt.date, slug: str, pattern: str, base_url: str) -> tuple[str, str]:
    """Return ``(url, output_path)`` for a post."""
    url_path = resolve_path(publish_date, slug, pattern)
    return join_url(base_url, url_path), output_path_for(url_path)
