from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Optional

from jinja2 import Environment

from .article import Article
from .config import BuildSettings
from .errors import MissingLayoutsError, ParseError, TemplateRenderError
from .render import annotate_backtrace, is_include_failure, markdown_to_html, render_article, write_text
from .styles import compile_stylesheets
from .templates import TemplateStore, load_templates, make_environment
from .utils import list_files

ARTICLE_EXT = "md"

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    written: list[Path] = field(default_factory=list)
    stylesheets: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)
    grouped: dict[str, list[str]] = field(default_factory=dict)
    output_errors: list[tuple[str, str]] = field(default_factory=list)
    fatal: str = ""

    @property
    def ok(self) -> bool:
        return not (self.fatal or self.skipped or self.failures or self.grouped or self.output_errors)


def load_articles(
    directories: Iterable[Path],
    store: TemplateStore,
    report: Optional[BuildReport] = None,
    log: logging.Logger = logger,
) -> list[Article]:
    """Parse every markdown file under ``directories`` in discovery order.

    Templates have to be loaded first: without any layout no article could
    be wrapped, so that is refused outright. A file that fails to parse is
    logged and left out.
    """
    if not store.layouts:
        raise MissingLayoutsError(
            "empty layout list, please load in layout template files before parsing articles"
        )
    articles = []
    for directory in directories:
        log.info("looking for markdown articles in %s", directory)
        if not directory.is_dir():
            log.error("%s is not a path or directory", directory)
            continue
        for path in list_files(directory, ARTICLE_EXT, recursive=True):
            try:
                articles.append(Article.load(path))
            except ParseError as exc:
                log.error("%s", exc)
                if report is not None:
                    report.skipped.append(str(path))
    return articles


def build_global_context(articles: list[Article]) -> dict:
    """Site wide data every template sees as ``global``.

    Built from the un-rendered articles so no article depends on another
    one having been rendered first.
    """
    pages = []
    tags: dict[str, list[str]] = {}
    categories: dict[str, list[str]] = {}
    for article in articles:
        pages.append(article.context)
        for tag in article.config.tags:
            tags.setdefault(tag, []).append(article.url)
        for category in article.config.categories:
            categories.setdefault(category, []).append(article.url)
    return {"articles": pages, "tags": tags, "categories": categories}


def output_target(output_dir: Path, url: str) -> Optional[Path]:
    """Where ``url`` is written under ``output_dir``, or None when it would land outside it."""
    target = output_dir / url.lstrip("/")
    if not target.resolve().is_relative_to(output_dir.resolve()):
        return None
    return target


def render_articles(
    articles: list[Article],
    global_context: dict,
    env: Environment,
    output_dir: Path,
    report: BuildReport,
    convert: Callable[[str], str] = markdown_to_html,
    log: logging.Logger = logger,
) -> None:
    if not articles:
        log.error("no articles found")
    for article in articles:
        output_path = output_target(output_dir, article.url)
        if output_path is None:
            message = f"url {article.url!r} points outside of {output_dir}"
            log.error("unable to write %s: %s", article.source, message)
            report.output_errors.append((article.source, message))
            continue
        log.info("writing to %s", output_path)
        try:
            html = render_article(article, global_context, env, convert=convert, log=log)
        except TemplateRenderError as exc:
            if is_include_failure(exc.message):
                report.grouped.setdefault(f"Template {exc.message}", []).append(article.source)
            else:
                log.error("%sfile:\n   %s\n", exc.message, article.source)
                report.failures.append((article.source, exc.message))
            continue
        try:
            write_text(output_path, html)
        except OSError as exc:
            log.error("unable to write %s for %s: %s", output_path, article.source, exc)
            report.output_errors.append((article.source, str(exc)))
            continue
        report.written.append(output_path)


def report_grouped_errors(
    report: BuildReport,
    store: TemplateStore,
    backtrace: bool = False,
    log: logging.Logger = logger,
) -> None:
    for message, affected in report.grouped.items():
        if backtrace:
            message = annotate_backtrace(message, store.paths)
        log.error("%sfiles that use this template:\n   %s\n", message, ", ".join(affected))


def build_site(settings: BuildSettings, log: logging.Logger = logger) -> BuildReport:
    report = BuildReport()
    store = TemplateStore(track_paths=settings.backtrace, log=log)
    load_templates(store, settings.layouts_dir, layout=True, log=log)
    load_templates(store, settings.includes_dir, layout=False, log=log)
    log.info("layouts: %s", store.layouts)

    report.stylesheets = compile_stylesheets(settings.sass_dir, settings.output, settings.sass_load_paths, log=log)

    try:
        articles = load_articles(settings.article_dirs, store, report, log=log)
    except MissingLayoutsError as exc:
        log.error("%s", exc)
        report.fatal = exc.message
        return report

    global_context = build_global_context(articles)
    env = make_environment(store)
    convert = partial(markdown_to_html, highlight=settings.highlight)
    render_articles(articles, global_context, env, settings.output, report, convert=convert, log=log)
    report_grouped_errors(report, store, settings.backtrace, log=log)
    return report
