from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .diagnostics import format_diagnostic
from .errors import EmptyValue, InvalidConfig, InvalidKey, InvalidValue

DELIMITER = "---"
DEFAULT_BASE_LAYOUT = "default"
STRING_KEYS = {"layout", "base_layout", "title", "description", "permalink"}
LIST_KEYS = {"categories", "tags"}
BOOL_KEYS = {"visible": "visible", "titlebar": "visible"}


@dataclass
class Config:
    layout: str = ""
    base_layout: str = DEFAULT_BASE_LAYOUT
    title: str = ""
    description: str = ""
    permalink: str = ""
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    visible: bool = False
    date: Optional[dt.datetime] = None

    def has_custom_base_layout(self) -> bool:
        return bool(self.base_layout) and self.base_layout != DEFAULT_BASE_LAYOUT

    def is_valid(self) -> bool:
        return bool(self.title) and (bool(self.layout) or self.has_custom_base_layout())


class ParserState(enum.Enum):
    AWAITING_HEADER = "awaiting header"
    IN_HEADER = "in header"
    IN_BODY = "in body"


def parse_key(line: str, path: str, lineno: int) -> tuple[str, str]:
    if not line:
        raise EmptyValue(format_diagnostic("expected name of key", path, line, 0, 5, lineno))
    key, sep, rest = line.partition(":")
    if not sep:
        raise InvalidKey(format_diagnostic("no colon found", path, line, len(line), len(line) + 1, lineno))
    return key, rest


def parse_string(value: str, path: str, line: str, lineno: int) -> str:
    value = value.strip()
    if not value:
        raise EmptyValue(format_diagnostic("empty value", path, line, len(line), len(line) + 5, lineno))
    if value == DELIMITER:
        raise InvalidValue(
            format_diagnostic(
                "found '---', the configuration delimiter can't be used as a value",
                path,
                line,
                max(0, len(line) - 3),
                len(line),
                lineno,
            )
        )
    return value


def parse_bool(value: str, path: str, line: str, lineno: int) -> bool:
    value = value.strip()
    if value == "true":
        return True
    if value == "false":
        return False
    raise InvalidValue(
        format_diagnostic("expected 'true' or 'false'", path, line, len(line) - len(value), len(line), lineno)
    )


def parse_date(value: str, path: str, line: str, lineno: int) -> dt.datetime:
    value = parse_string(value, path, line, lineno)
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError:
        raise InvalidValue(
            format_diagnostic(
                "expected a date such as 2021-04-01 or 2021-04-01 12:30:00",
                path,
                line,
                len(line) - len(value),
                len(line),
                lineno,
            )
        ) from None


def parse_list(value: str, path: str, line: str, lineno: int) -> list[str]:
    value = value.strip()
    if not value:
        raise EmptyValue(format_diagnostic("empty value", path, line, len(line), len(line) + 5, lineno))
    if value.startswith("["):
        if not value.endswith("]") or len(value) == 1:
            raise InvalidValue(
                format_diagnostic(
                    "found opening square bracket for list but no closing bracket",
                    path,
                    line,
                    0,
                    len(line),
                    lineno,
                )
            )
        value = value[1:-1].strip()
        if not value:
            raise EmptyValue(format_diagnostic("empty list", path, line, 0, len(line), lineno))

    items = []
    prev = 0
    in_double = False
    in_single = False
    for index, char in enumerate(value):
        if char == "," and not in_double and not in_single:
            items.append(parse_string(value[prev:index], path, line, lineno))
            prev = index + 1
        elif char == '"' and not in_single:
            in_double = not in_double
        elif char == "'" and not in_double:
            in_single = not in_single

    if in_double:
        raise InvalidValue(
            format_diagnostic('found a string but no closing "', path, line, len(line) - 1, len(line), lineno)
        )
    if in_single:
        raise InvalidValue(
            format_diagnostic("found a string but no closing '", path, line, len(line) - 1, len(line), lineno)
        )
    if prev == len(value):
        raise InvalidValue(
            format_diagnostic("value expected after separator", path, line, len(line), len(line) + 5, lineno)
        )
    items.append(parse_string(value[prev:], path, line, lineno))
    return items


def diagnose_incomplete(config: Config, pairs: int, closed: bool) -> str:
    """Explain why a finished header is not a valid configuration.

    Checked in order: nothing was configured at all, the header was never
    closed, the title is missing, the layout is missing.
    """
    if pairs == 0:
        return "empty config, no key value pairs found"
    if not closed:
        return "no closing delimiter found, expected '---' to end the configuration"
    if not config.title:
        return "missing required configuration field 'title'"
    return "missing required configuration field 'layout' (or a custom 'base_layout')"


class FrontMatterParser:
    def __init__(self, path: str) -> None:
        self.path = path
        self.state = ParserState.AWAITING_HEADER
        self.config = Config()
        self.pairs = 0
        self.lineno = 0
        self.last_line = ""
        self.body: list[str] = []
        self._handlers = {
            ParserState.AWAITING_HEADER: self._awaiting_header,
            ParserState.IN_HEADER: self._in_header,
            ParserState.IN_BODY: self._in_body,
        }

    def feed(self, line: str) -> None:
        self.lineno += 1
        self.last_line = line
        self.state = self._handlers[self.state](line)

    def _awaiting_header(self, line: str) -> ParserState:
        if line == DELIMITER:
            return ParserState.IN_HEADER
        raise InvalidConfig(
            format_diagnostic(
                "configuration must start with the header delimiter '---'",
                self.path,
                line,
                0,
                len(line),
                self.lineno,
            )
        )

    def _in_header(self, line: str) -> ParserState:
        if line == DELIMITER:
            return ParserState.IN_BODY
        self._apply(line)
        self.pairs += 1
        return ParserState.IN_HEADER

    def _in_body(self, line: str) -> ParserState:
        self.body.append(line + "\n")
        return ParserState.IN_BODY

    def _apply(self, line: str) -> None:
        key, rest = parse_key(line, self.path, self.lineno)
        args = (self.path, line, self.lineno)
        if key in STRING_KEYS:
            setattr(self.config, key, parse_string(rest, *args))
        elif key in LIST_KEYS:
            setattr(self.config, key, parse_list(rest, *args))
        elif key in BOOL_KEYS:
            setattr(self.config, BOOL_KEYS[key], parse_bool(rest, *args))
        elif key == "date":
            self.config.date = parse_date(rest, *args)
        else:
            raise InvalidKey(format_diagnostic(f"unknown key '{key}'", self.path, line, 0, len(line), self.lineno))

    def finish(self) -> tuple[Config, str]:
        if self.config.is_valid():
            return self.config, "".join(self.body)
        message = diagnose_incomplete(self.config, self.pairs, self.state is ParserState.IN_BODY)
        raise InvalidConfig(
            format_diagnostic(message, self.path, self.last_line, 0, len(self.last_line), max(self.lineno, 1))
        )


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` and ``\\r\\n`` only, leaving every other character in place."""
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_front_matter(text: str, path: str = "<string>") -> tuple[Config, str]:
    parser = FrontMatterParser(path)
    for line in split_lines(text.lstrip("\ufeff")):
        parser.feed(line)
    return parser.finish()


def read_front_matter(path: Path) -> tuple[Config, str]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidValue(format_diagnostic(str(exc), str(path), "", 0, 0, 1)) from exc
    return parse_front_matter(text, str(path))
