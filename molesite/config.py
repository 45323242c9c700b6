from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError
from .utils import parse_bool

DEFAULTS = {
    "source": "_source",
    "output": "_output",
    "layouts": "_layouts",
    "includes": "_include",
    "articles": ["_articles"],
    "sass": "_sass",
    "sass_load_paths": [],
    "backtrace": False,
    "clean": False,
    "highlight": False,
}


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


@dataclass
class BuildSettings:
    """Where a build reads from and writes to.

    ``layouts``, ``includes``, ``articles`` and ``sass`` are taken relative
    to ``source`` unless they are absolute.
    """

    source: Path = Path(DEFAULTS["source"])
    output: Path = Path(DEFAULTS["output"])
    layouts: Path = Path(DEFAULTS["layouts"])
    includes: Path = Path(DEFAULTS["includes"])
    articles: list[Path] = field(default_factory=lambda: [Path(p) for p in DEFAULTS["articles"]])
    sass: Path = Path(DEFAULTS["sass"])
    sass_load_paths: list[Path] = field(default_factory=list)
    backtrace: bool = False
    clean: bool = False
    highlight: bool = False

    def under_source(self, path: Path) -> Path:
        return path if path.is_absolute() else self.source / path

    @property
    def layouts_dir(self) -> Path:
        return self.under_source(self.layouts)

    @property
    def includes_dir(self) -> Path:
        return self.under_source(self.includes)

    @property
    def article_dirs(self) -> list[Path]:
        return [self.under_source(path) for path in self.articles]

    @property
    def sass_dir(self) -> Path:
        return self.under_source(self.sass)

    @classmethod
    def from_mapping(cls, data: dict) -> "BuildSettings":
        def value(key: str) -> object:
            found = data.get(key)
            return DEFAULTS[key] if found is None else found

        return cls(
            source=Path(str(value("source"))),
            output=Path(str(value("output"))),
            layouts=Path(str(value("layouts"))),
            includes=Path(str(value("includes"))),
            articles=[Path(p) for p in _as_list(value("articles"))],
            sass=Path(str(value("sass"))),
            sass_load_paths=[Path(p) for p in _as_list(value("sass_load_paths"))],
            backtrace=parse_bool(value("backtrace")),
            clean=parse_bool(value("clean")),
            highlight=parse_bool(value("highlight")),
        )


def settings_from_args(args: object) -> BuildSettings:
    return BuildSettings.from_mapping({key: getattr(args, key, None) for key in DEFAULTS})
