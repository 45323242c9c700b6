from __future__ import annotations


def gutter_width(lineno: int) -> int:
    if lineno < 99:
        return 2
    if lineno < 127:
        return 3
    return 4


def format_diagnostic(message: str, path: str, line: str, start: int, end: int, lineno: int) -> str:
    """Render a compiler style diagnostic pointing at ``line[start:end]``.

    The gutter grows with the line number so every row stays aligned.
    """
    width = gutter_width(lineno)
    gutter = " " * width
    underline = " " * start + "^" * max(0, end - start)
    return (
        f"\n{gutter} --> {path} {lineno}:{start}"
        f"\n{gutter} |"
        f"\n{lineno:>{width}} | {line}"
        f"\n{gutter} | {underline}"
        f"\n{gutter} |"
        f"\n{gutter}{message}"
    )
