from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .codec import CODECS


@dataclass
class EditorSettings:
    raw_format: str = "json"
    indent: int = 2
    page_title: str = "EdNotes"
    asset_root: Path | None = None
    blob_dir: Path | None = None
    default_language: str = "text"

    def __post_init__(self) -> None:
        if self.raw_format not in CODECS:
            raise ValueError(f"raw_format must be one of {', '.join(CODECS)}, got {self.raw_format!r}")
        if isinstance(self.indent, bool) or not isinstance(self.indent, int) or self.indent < 0:
            raise ValueError(f"indent must be a non-negative integer, got {self.indent!r}")
        if self.asset_root is not None:
            self.asset_root = Path(self.asset_root).expanduser()
        if self.blob_dir is not None:
            self.blob_dir = Path(self.blob_dir).expanduser()


def load_settings(path: str | Path | None = None) -> EditorSettings:
    """Read settings from a YAML file; missing path means defaults."""
    if path is None:
        return EditorSettings()
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("Settings root must be a mapping.")
    return settings_from_mapping(data)


def settings_from_mapping(data: dict[str, Any]) -> EditorSettings:
    known = {f.name for f in fields(EditorSettings)}
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")
    return EditorSettings(**data)
