from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import BaseLoader, Environment, TemplateNotFound

from .utils import list_files

TEMPLATE_EXT = "html"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateEntry:
    source: str
    is_layout: bool


def template_name(path: Path, root: Path) -> str:
    try:
        rel = path.relative_to(root)
    except ValueError:
        rel = Path(path.name)
    return rel.with_suffix("").as_posix()


class TemplateStore(BaseLoader):
    """Layouts and includes in a single namespace, served to jinja2.

    A layout and an include may not share a name; the first one loaded wins.
    With ``track_paths`` on, the file each name came from is kept in
    ``paths`` so template errors can point back at it.
    """

    def __init__(self, track_paths: bool = False, log: logging.Logger = logger) -> None:
        self.entries: dict[str, TemplateEntry] = {}
        self.paths: dict[str, str] = {}
        self.track_paths = track_paths
        self.log = log

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def layouts(self) -> list[str]:
        return [name for name, entry in self.entries.items() if entry.is_layout]

    def add(self, name: str, source: str, layout: bool = False, path: Optional[str] = None) -> bool:
        if self.track_paths and path is not None and name not in self.paths:
            self.paths[name] = path
        if name in self.entries:
            kind = "a layout" if layout else "an include"
            self.log.error(
                "%r already exists as %s, note: layouts and includes share the same name", name, kind
            )
            return False
        self.entries[name] = TemplateEntry(source, layout)
        return True

    def source(self, name: str) -> Optional[str]:
        entry = self.entries.get(name)
        return entry.source if entry else None

    def get_source(self, environment: Environment, template: str):
        entry = self.entries.get(template)
        if entry is None:
            raise TemplateNotFound(template)
        return entry.source, template, lambda: True

    def list_templates(self) -> list[str]:
        return sorted(self.entries)


def load_templates(store: TemplateStore, directory: Path, layout: bool, log: logging.Logger = logger) -> int:
    if not directory.is_dir():
        log.error("%s is not a path or directory", directory)
        return 0
    added = 0
    for path in list_files(directory, TEMPLATE_EXT, recursive=False):
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            log.error("unable to read file %s: %s", path, exc)
            continue
        name = template_name(path, directory)
        log.info("new %s %r", "layout" if layout else "include", name)
        if store.add(name, source, layout=layout, path=str(path)):
            added += 1
    return added


def make_environment(store: TemplateStore) -> Environment:
    return Environment(loader=store, keep_trailing_newline=True, autoescape=False)
