from __future__ import annotations

from pathlib import Path
from typing import Optional


class SiteBuildError(Exception):
    """Base class for every failure that aborts a build."""

    kind = "SiteBuildError"

    def __init__(self, message: str, path: Optional[Path | str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        if self.path is None:
            return f"{self.kind}: {self.message}"
        return f"{self.path}: {self.kind}: {self.message}"


class MalformedFrontMatter(SiteBuildError):
    kind = "MalformedFrontMatter"


class MalformedContent(SiteBuildError):
    kind = "MalformedContent"


class InvalidFilenameConvention(SiteBuildError):
    kind = "InvalidFilenameConvention"


class UnknownLayout(SiteBuildError):
    kind = "UnknownLayout"


class LayoutCycle(SiteBuildError):
    kind = "LayoutCycle"


class DuplicateSlug(SiteBuildError):
    kind = "DuplicateSlug"

    def __init__(self, message: str, paths: list[Path | str]) -> None:
        super().__init__(message, paths[0] if paths else None)
        self.paths = [Path(p) for p in paths]

    def __str__(self) -> str:
        joined = ", ".join(str(p) for p in self.paths)
        return f"{joined}: {self.kind}: {self.message}"


class ConfigError(SiteBuildError):
    kind = "ConfigError"


class OutputDirError(SiteBuildError):
    kind = "OutputDirError"
