"""
cli.py

Responsibility: CLI entrypoint for ui5kit.

Commands:
- `download`: download and unzip the OpenUI5 sources configured in `ui5kit.yaml`
- `build-lib`: build the OpenUI5 library from a source tree
- `bust`: cache bust an HTML entry in place
- `dist`: download (if needed) -> build library (if needed) -> build the app distribution

This module should orchestrate behavior but keep concerns isolated:
- Configuration: `config.py`
- Library build: `library.py`
- Cache busting: `cachebust.py`
- Downloads: `download.py`
- App distribution: `app.py`
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from ui5kit import __version__
from ui5kit.app import build_dist
from ui5kit.cachebust import CacheBustError, bust_file
from ui5kit.config import ConfigError, ProjectConfig, load_config
from ui5kit.download import DownloadError, download_archive
from ui5kit.entry import RenderError
from ui5kit.library import build_library
from ui5kit.pipeline import BuildError

logger = logging.getLogger("ui5kit.cli")

KNOWN_ERRORS = (ConfigError, BuildError, CacheBustError, DownloadError, RenderError)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )


def _log_progress(step: int, total: int, name: str) -> None:
    logger.debug("[%d/%d] %s", step, total, name)


def _download(config: ProjectConfig) -> Path:
    return download_archive(
        config.compiled_source_url(),
        config.download_path,
        config.source.version,
        on_progress=_log_progress,
    )


def download_cmd(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if not config.source.is_archive:
        logger.info("UI5 source is not an archive, nothing to download.")
        return 0
    _download(config)
    return 0


def build_lib_cmd(args: argparse.Namespace) -> int:
    result = build_library(args.source, args.target, args.ui5_version, on_progress=_log_progress)
    if not result.skipped:
        logger.info("UI5 %s built at %s (%d modules)", args.ui5_version, result.target, len(result.modules))
    return 0


def bust_cmd(args: argparse.Namespace) -> int:
    bust_file(args.html)
    return 0


def dist_cmd(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    # CLI overrides
    if args.cache_buster is not None:
        config = replace(config, build=replace(config.build, cache_buster=args.cache_buster))

    url = config.compiled_source_url()
    if config.source.is_archive and url.startswith("http") and not config.source.is_prebuild:
        source = _download(config)
        build_library(source, config.ui5_path, config.source.version, on_progress=_log_progress)

    entry = build_dist(config, on_progress=_log_progress)
    logger.info("Distribution ready, entry at %s", entry)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ui5kit", description="ui5kit - OpenUI5 library and app build utility")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    d = sub.add_parser("download", help="Download and unzip the configured OpenUI5 sources")
    d.add_argument("--config", default="ui5kit.yaml", help="Project config file (default: ui5kit.yaml)")
    d.set_defaults(func=download_cmd)

    b = sub.add_parser("build-lib", help="Build the OpenUI5 library from a source tree")
    b.add_argument("source", help="Source tree (must contain `src`, possibly one level deep)")
    b.add_argument("target", help="Target directory (must not exist)")
    b.add_argument("--ui5-version", required=True, help="Version label used in banner and version info")
    b.set_defaults(func=build_lib_cmd)

    c = sub.add_parser("bust", help="Cache bust an HTML entry (rewrites resource roots in place)")
    c.add_argument("html", help="Path to the HTML entry file")
    c.set_defaults(func=bust_cmd)

    t = sub.add_parser("dist", help="Build the application distribution")
    t.add_argument("--config", default="ui5kit.yaml", help="Project config file (default: ui5kit.yaml)")
    t.add_argument("--cache-buster", dest="cache_buster", action="store_true", default=None, help="Force cache busting")
    t.add_argument("--no-cache-buster", dest="cache_buster", action="store_false", default=None, help="Disable cache busting")
    t.set_defaults(func=dist_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(bool(args.verbose))
    try:
        return int(args.func(args))
    except KNOWN_ERRORS as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
