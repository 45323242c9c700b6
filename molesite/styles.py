from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import sass

from .render import write_text
from .utils import list_files

SASS_EXT = "scss"
CSS_SUFFIX = ".css"

logger = logging.getLogger(__name__)


def compile_stylesheet(text: str, load_paths: list[Path]) -> str:
    return sass.compile(string=text, include_paths=[str(path) for path in load_paths])


def compile_stylesheets(
    directory: Path,
    output_dir: Path,
    load_paths: Optional[list[Path]] = None,
    log: logging.Logger = logger,
) -> list[Path]:
    if not directory.is_dir():
        log.warning("%s is not a path or directory, no .scss compiling will happen", directory)
        return []
    search = [*(load_paths or []), directory]
    written = []
    for path in list_files(directory, SASS_EXT, recursive=True):
        # partials are only pulled in through @import / @use
        if path.name.startswith("_"):
            continue
        try:
            css = compile_stylesheet(path.read_text(encoding="utf-8"), [path.parent, *search])
        except (OSError, UnicodeDecodeError, sass.CompileError) as exc:
            log.warning("compiling %s failed: %s", path, exc)
            continue
        target = output_dir / path.relative_to(directory).with_suffix(CSS_SUFFIX)
        log.info("writing css to %s", target)
        try:
            write_text(target, css)
        except OSError as exc:
            log.error("unable to write %s: %s", target, exc)
            continue
        written.append(target)
    return written
