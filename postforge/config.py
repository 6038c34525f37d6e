from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from .errors import ConfigError
from .utils import parse_bool, parse_int

DEFAULT_PERMALINK = "/:year/:month/:day/:slug.html"
MAX_WORKERS = 32

KEY_ALIASES = {
    "baseurl": "base_url",
    "baseUrl": "base_url",
    "layoutsDir": "layouts_dir",
    "outputDir": "output_dir",
    "staticDir": "static_dir",
    "defaultLayout": "default_layout",
    "dateFormat": "date_format",
    "buildWorkers": "build_workers",
    "pygmentsStyle": "pygments_style",
    "site_name": "title",
    "posts": "source",
    "output": "output_dir",
    "static": "static_dir",
}


@dataclass(frozen=True)
class SiteConfig:
    title: str = "My Blog"
    description: str = ""
    base_url: str = ""
    theme: str = "minimal"
    source: Path = Path("_posts")
    layouts_dir: Path = Path("_layouts")
    static_dir: Path = Path("static")
    output_dir: Path = Path("_site")
    permalink: str = DEFAULT_PERMALINK
    default_layout: str = "post"
    highlight: bool = False
    pygments_style: str = "default"
    date_format: str = "%Y-%m-%d"
    build_workers: int = 0

    @property
    def workers(self) -> int:
        workers = self.build_workers
        if workers <= 0:
            workers = os.cpu_count() or 1
        return max(1, min(workers, MAX_WORKERS))

    def with_overrides(self, **overrides: object) -> "SiteConfig":
        values = {key: value for key, value in overrides.items() if value is not None}
        return config_from_mapping(values, base=self)


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"config is not valid UTF-8: {exc}", path) from exc
    except OSError as exc:
        raise ConfigError(f"cannot read config: {exc.strerror or exc}", path) from exc
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML: {exc}", path) from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML: {exc}", path) from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON: {exc}", path) from exc
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping", path)
    return data


def config_from_mapping(data: dict, base: SiteConfig | None = None, relative_to: Path | None = None) -> SiteConfig:
    """Build a SiteConfig from raw config values.

    Directory values from a config file are resolved against the file's
    folder (``relative_to``); values passed on the command line are taken
    as given.
    """
    base = base or SiteConfig()
    known = {f.name: f for f in fields(SiteConfig)}
    values: dict[str, object] = {}
    for raw_key, value in data.items():
        key = KEY_ALIASES.get(raw_key, raw_key)
        if key not in known or value is None:
            continue
        default = getattr(base, key)
        if isinstance(default, bool):
            values[key] = parse_bool(value)
        elif isinstance(default, int):
            number = parse_int(value, None)
            if number is None:
                raise ConfigError(f"{raw_key} must be an integer, got {value!r}")
            values[key] = number
        elif isinstance(default, Path):
            path = Path(str(value))
            if relative_to is not None and not path.is_absolute():
                path = relative_to / path
            values[key] = path
        else:
            values[key] = str(value)
    config = replace(base, **values)
    if not config.theme.strip():
        raise ConfigError("theme must not be empty")
    if not config.default_layout.strip():
        raise ConfigError("default_layout must not be empty")
    return config


def read_site_config(path: Path) -> SiteConfig:
    if not path.exists():
        return SiteConfig()
    defaults = SiteConfig()
    # Directories default to the config file's folder, not the working directory.
    data = {f.name: getattr(defaults, f.name) for f in fields(SiteConfig) if isinstance(getattr(defaults, f.name), Path)}
    for key, value in load_config(path).items():
        data[KEY_ALIASES.get(key, key)] = value
    return config_from_mapping(data, relative_to=path.resolve().parent)
