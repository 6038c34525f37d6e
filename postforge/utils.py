from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from .errors import OutputDirError


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: Optional[int]) -> Optional[int]:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return f"{base}/"
    return f"{base}/{path}"


def clean_output_dir(output_dir: Path, protected: list[Path]) -> None:
    """Remove a previous build, refusing to touch anything that holds inputs."""
    if not output_dir.exists():
        return
    output_resolved = output_dir.resolve()
    cwd = Path.cwd().resolve()
    if output_resolved == cwd or cwd.is_relative_to(output_resolved):
        raise OutputDirError("refusing to clean the working directory or one of its parents", output_dir)
    for path in protected:
        if not path.exists():
            continue
        if path.resolve().is_relative_to(output_resolved):
            raise OutputDirError(f"refusing to clean a directory that contains {path}", output_dir)
    if not output_dir.is_dir():
        raise OutputDirError("output path exists and is not a directory", output_dir)
    shutil.rmtree(output_dir)
