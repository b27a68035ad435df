from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class LibrarySettings(BaseModel):
    roots: List[Path]
    include_extensions: List[str] = Field(
        default_factory=lambda: [".mp3", ".flac", ".m4a", ".m4b", ".mp4", ".ogg", ".oga", ".opus"]
    )
    exclude_patterns: List[str] = Field(default_factory=list)
    recursive: bool = True
    follow_symlinks: bool = False

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: List[str]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values]

    @field_validator("include_extensions")
    @classmethod
    def _normalize_extensions(cls, values: List[str]) -> List[str]:
        return [v.lower() if v.startswith(".") else f".{v.lower()}" for v in values]


class CacheSettings(BaseModel):
    enabled: bool = True
    path: Path = Path("./cache/tracks.sqlite3")

    @field_validator("path", mode="before")
    @classmethod
    def _expand_cache(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()


class ScanSettings(BaseModel):
    worker_concurrency: int = Field(default=4, ge=1)


class DeviceSettings(BaseModel):
    catalog: Optional[Path] = None
    case_insensitive_sort: bool = False
    ignore_common_prefixes: bool = False

    @field_validator("catalog", mode="before")
    @classmethod
    def _expand_catalog(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class Settings(BaseModel):
    library: LibrarySettings
    cache: CacheSettings = CacheSettings()
    scan: ScanSettings = ScanSettings()
    device: DeviceSettings = DeviceSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw)


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
