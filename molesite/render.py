from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import Callable, Optional

import markdown
from jinja2 import Environment, TemplateError, TemplateSyntaxError

from .article import Article
from .errors import TemplateRenderError

INCLUDE_MARKER = "from: {% include"
CONTENT_PLACEHOLDERS = ("{{page.content}}", "{{ page.content }}")
MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]

logger = logging.getLogger(__name__)


def markdown_to_html(text: str, highlight: bool = False) -> str:
    extensions = list(MARKDOWN_EXTENSIONS)
    if highlight:
        extensions.append("codehilite")
    html = markdown.Markdown(extensions=extensions).convert(text)
    return html + "\n" if html else html


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def template_chain(exc: TemplateError, store, include: Optional[str] = None) -> list[tuple[str, Optional[int]]]:
    """Store templates a failure passed through, outermost first."""
    chain: list[tuple[str, Optional[int]]] = []
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        name = frame.f_code.co_filename
        if name in store and (not chain or chain[-1][0] != name):
            chain.append((name, lineno))
    if isinstance(exc, TemplateSyntaxError) and exc.name in store:
        if not chain or chain[-1][0] != exc.name:
            chain.append((exc.name, exc.lineno))
    if include is not None and (not chain or chain[0][0] != include):
        chain.insert(0, (include, None))
    return chain


def describe_template_error(exc: TemplateError, store, include: Optional[str] = None) -> str:
    lines = [f"{type(exc).__name__}: {exc.message or exc}"]
    for name, lineno in template_chain(exc, store, include):
        lines.append(f"{INCLUDE_MARKER} '{name}' %}}")
        lines.append(f'    "{name}"' + (f" line {lineno}" if lineno else ""))
    return "\n".join(lines) + "\n"


def is_include_failure(message: str) -> bool:
    return INCLUDE_MARKER in message


def annotate_backtrace(message: str, paths: dict[str, str]) -> str:
    """Point template names inside include traces at the files they came from.

    Names missing from ``paths`` are left as they are.
    """
    inside_include = False
    out = []
    for line in message.split("\n"):
        if line.startswith(INCLUDE_MARKER):
            inside_include = True
        elif inside_include and line.startswith('    "'):
            name, sep, _ = line[5:].partition('"')
            if sep and name in paths:
                line = f"{line}\n    {name} = {paths[name]}"
        out.append(line)
    return "\n".join(out)


def page_context(article: Article, global_context: dict) -> dict:
    return {"global": global_context, "page": article.context, "layout": article.config.layout}


def render_string(env: Environment, text: str, context: dict, include: Optional[str] = None) -> str:
    try:
        return env.from_string(text).render(context)
    except TemplateError as exc:
        raise TemplateRenderError(describe_template_error(exc, env.loader, include)) from exc


def resolve_directives(article: Article, global_context: dict, env: Environment) -> Article:
    rendered = render_string(env, article.template, page_context(article, global_context))
    return article.with_content(rendered)


def convert_markdown(
    article: Article,
    global_context: dict,
    env: Environment,
    convert: Callable[[str], str] = markdown_to_html,
) -> Article:
    rendered = render_string(env, article.template, page_context(article, global_context))
    return article.with_content(convert(rendered))


def compose_layout(article: Article, global_context: dict, env: Environment, log: logging.Logger = logger) -> str:
    config = article.config
    context = page_context(article, global_context)
    if config.base_layout:
        wrapper = config.base_layout
        log.warning("using base layout %r for %s", wrapper, article.source)
    elif config.layout:
        wrapper = config.layout
        log.warning("no base layout found for %s, using layout %r", article.source, wrapper)
    else:
        log.warning(
            "no base layout and no layout found for %s, rendering its content without any layout",
            article.source,
        )
        return render_string(env, article.template, context)

    source = env.loader.source(wrapper)
    if source is not None and not any(token in source for token in CONTENT_PLACEHOLDERS):
        log.warning(
            "%r may be missing {{ page.content }}, the text of %s may not be displayed", wrapper, article.source
        )
    return render_string(env, f"{{%- include {wrapper!r} -%}}", context, include=wrapper)


def render_article(
    article: Article,
    global_context: dict,
    env: Environment,
    convert: Callable[[str], str] = markdown_to_html,
    log: logging.Logger = logger,
) -> str:
    resolved = resolve_directives(article, global_context, env)
    converted = convert_markdown(resolved, global_context, env, convert)
    return compose_layout(converted, global_context, env, log)
