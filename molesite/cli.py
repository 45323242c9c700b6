from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .builder import build_site
from .config import DEFAULTS, load_config, settings_from_args
from .errors import MoleError
from .utils import clean_output_dir, parse_bool

LOG_FORMAT = "%(levelname)s: %(message)s"


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str) -> object:
        value = config.get(key)
        return DEFAULTS[key] if value is None else value

    def cfg_str(key: str) -> str:
        return str(cfg_value(key))

    def cfg_bool(key: str) -> bool:
        return parse_bool(cfg_value(key))

    def cfg_list(key: str) -> list[str]:
        value = cfg_value(key)
        return [str(item) for item in value] if isinstance(value, list) else [str(value)]

    parser = argparse.ArgumentParser(prog="molesite", description="Build a static site from markdown articles.")
    parser.add_argument("command", nargs="?", default="build", choices=["build"], help="Command to run.")
    parser.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--source", default=cfg_str("source"), help="Directory the site is built from.")
    parser.add_argument("--output", default=cfg_str("output"), help="Output directory for the site.")
    parser.add_argument("--layouts", default=cfg_str("layouts"), help="Layouts directory, relative to --source.")
    parser.add_argument("--includes", default=cfg_str("includes"), help="Includes directory, relative to --source.")
    parser.add_argument(
        "--articles",
        action="append",
        default=None,
        help="Articles directory, relative to --source. May be given more than once.",
    )
    parser.add_argument("--sass", default=cfg_str("sass"), help="Sass directory, relative to --source.")
    parser.add_argument(
        "--sass-load-path",
        dest="sass_load_paths",
        action="append",
        default=None,
        help="Extra directory searched by sass imports. May be given more than once.",
    )
    parser.add_argument(
        "--backtrace",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("backtrace"),
        help="Show the files behind templates named in template errors.",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean"),
        help="Clean output directory before build.",
    )
    parser.add_argument(
        "--highlight",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("highlight"),
        help="Highlight fenced code blocks with Pygments.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every step of the build.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")
    parser.set_defaults(_articles_default=cfg_list("articles"), _sass_default=cfg_list("sass_load_paths"))
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="site.toml")
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))
    args = build_parser(config, pre_args.config).parse_args(argv)
    if args.articles is None:
        args.articles = args._articles_default
    if args.sass_load_paths is None:
        args.sass_load_paths = args._sass_default
    return args


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        args = parse_args(argv)
    except MoleError as exc:
        print(exc, file=sys.stderr)
        return 2
    configure_logging(args)
    settings = settings_from_args(args)

    start = time.perf_counter()
    if settings.clean:
        try:
            clean_output_dir(settings.output, Path.cwd())
        except MoleError as exc:
            print(exc, file=sys.stderr)
            return 1
    report = build_site(settings)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    if report.fatal:
        return 1
    print(f"{len(report.written)} pages generated in: {settings.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
