from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from .content import Config, parse_front_matter, read_front_matter


def article_url(config: Config) -> str:
    url = config.permalink or f"{config.title}.html"
    return url.replace(" ", "%20")


def article_context(config: Config, url: str, content: str) -> dict:
    return {
        "content": content,
        "config": {
            "title": config.title,
            "description": config.description,
            "tags": list(config.tags),
            "categories": list(config.categories),
            "visible": config.visible,
            "layout": config.layout,
            "base_layout": config.base_layout,
            "permalink": config.permalink,
            "date": config.date,
        },
        "url": url,
    }


@dataclass(frozen=True)
class Article:
    """A parsed source file ready to be rendered.

    ``template`` holds the text for the current render phase and ``context``
    is the ``page`` object templates see. Both are replaced, never edited,
    when the article moves to the next phase.
    """

    config: Config
    template: str
    url: str
    context: dict
    source: str = ""

    @classmethod
    def from_parts(cls, config: Config, body: str, source: str = "") -> "Article":
        template = body.strip()
        url = article_url(config)
        return cls(config, template, url, article_context(config, url, template), source)

    @classmethod
    def from_text(cls, text: str, source: str = "<string>") -> "Article":
        config, body = parse_front_matter(text, source)
        return cls.from_parts(config, body, source)

    @classmethod
    def load(cls, path: Path) -> "Article":
        config, body = read_front_matter(path)
        return cls.from_parts(config, body, str(path))

    def with_content(self, template: str) -> "Article":
        return replace(self, template=template, context=article_context(self.config, self.url, template))
