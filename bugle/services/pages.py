"""Static HTML pages read once at startup."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from bugle.core.config import AppSettings, ConfigError


class PageCache:
    """Read-only map of page name to HTML content."""

    def __init__(self, pages: Mapping[str, str]) -> None:
        self._pages = MappingProxyType(dict(pages))

    @classmethod
    def load(cls, settings: AppSettings) -> "PageCache":
        sources: dict[str, Path] = {
            "login": settings.login_html_file,
            "retry": settings.retry_html_file,
        }
        pages = {}
        for name, path in sources.items():
            try:
                pages[name] = Path(path).read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigError(f"bugle: cannot read {name} page {path}") from exc
        return cls(pages)

    def __getitem__(self, name: str) -> str:
        return self._pages[name]


__all__ = ["PageCache"]
