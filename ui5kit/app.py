"""
app.py

Responsibility: Build the application distribution from the project sources.

High-level flow (`build_dist`):
1) Clean the distribution directory (a framework library built into it is kept)
2) Render the HTML entry point
3) Copy scripts as debug resources and minified
4) Copy assets (properties, json, xml/html, css, images)
5) Compile app stylesheets (LESS) and minify them
6) Compile `library.source.less` of project libraries and custom themes
7) Bundle `Component-preload.js` per app and `library-preload.js` per project library
8) (Optional) Cache bust the HTML entry
9) (Optional) Pre-compress the distribution with gzip and/or brotli

The framework library itself is built by `library.py`.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from ui5kit.cachebust import bust_file
from ui5kit.compress import brotli_tree, gzip_tree
from ui5kit.config import ModuleRoot, ProjectConfig
from ui5kit.entry import entry_output_path, render_entry
from ui5kit.files import copy_file, iter_files, matching
from ui5kit.minify import debug_name, is_debug_resource, minify_css, minify_js
from ui5kit.pipeline import Pipeline, ProgressCallback, Stage, blocking, fan_out
from ui5kit.preload import (
    COMPONENT_PRELOAD_NAME,
    collect_modules,
    write_component_preload,
    write_library_preload,
)
from ui5kit.themes import CSS_NAME, CSS_RTL_NAME, LESS_SOURCE_NAME, ThemeCompiler, compile_theme, lesscpy_compiler

logger = logging.getLogger("ui5kit.app")

ASSET_SUFFIXES = (".properties", ".json", ".xml", ".html", ".css", ".jpg", ".jpeg", ".png", ".svg", ".ico")
COMPONENT_SUFFIXES = (".js", ".view.xml", ".fragment.xml")


def _roots(*groups: tuple[ModuleRoot, ...]) -> list[ModuleRoot]:
    return [root for group in groups for root in group]


def _clear(directory: Path, keep: Path) -> int:
    removed = 0
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        if child == keep:
            continue
        if child.is_dir() and not child.is_symlink() and keep.is_relative_to(child):
            removed += _clear(child, keep)
            continue
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
        removed += 1
    return removed


def clean_dist(config: ProjectConfig) -> int:
    """
    Remove everything below the distribution directory except the framework
    library (`config.ui5_path`) and the directories leading to it.
    """
    dist = config.root / config.dist_dir
    if not dist.is_dir():
        return 0
    removed = _clear(dist, config.ui5_path)
    logger.debug("Removed %d entrie(s) below %s", removed, dist)
    return removed


def build_scripts(config: ProjectConfig) -> int:
    """Write every app/library script as `-dbg` resource and minified under its own name."""
    count = 0
    for module in _roots(config.apps, config.libraries):
        src = config.src_path(module.path)
        dist = config.dist_path(module.path)
        for path in matching(iter_files(src), ".js"):
            rel = path.relative_to(src)
            dst = dist / rel
            copy_file(path, dst.with_name(debug_name(dst.name)))
            copy_file(path, dst, minify_js)
            count += 1
    return count


def copy_assets(config: ProjectConfig) -> int:
    count = 0
    for module in _roots(config.apps, config.libraries, config.themes, config.assets):
        src = config.src_path(module.path)
        dist = config.dist_path(module.path)
        suffixes = ASSET_SUFFIXES + (".js",) if module in config.assets else ASSET_SUFFIXES
        for path in matching(iter_files(src), *suffixes):
            copy_file(path, dist / path.relative_to(src))
            count += 1
    return count


def build_styles(config: ProjectConfig, compiler: ThemeCompiler = lesscpy_compiler) -> int:
    """Compile app and asset stylesheets to minified CSS next to their dist location."""
    count = 0
    for module in _roots(config.apps, config.assets):
        src = config.src_path(module.path)
        dist = config.dist_path(module.path)
        for path in matching(iter_files(src), ".less"):
            css = compiler(path).css
            dst = (dist / path.relative_to(src)).with_suffix(".css")
            dst.parent.mkdir(parents=True, exist_ok=True)
            dst.write_text(minify_css(css), encoding="utf-8")
            count += 1
    return count


def _copy_less(config: ProjectConfig, module: ModuleRoot) -> list[Path]:
    """Copy the LESS sources of a module to dist and return the copied theme entry files."""
    src = config.src_path(module.path)
    dist = config.dist_path(module.path)
    sources: list[Path] = []
    for path in matching(iter_files(src), ".less"):
        dst = dist / path.relative_to(src)
        copy_file(path, dst)
        if path.name == LESS_SOURCE_NAME:
            sources.append(dst)
    return sources


def _is_target_theme(path: Path, theme: str) -> bool:
    parts = path.parts
    return any(a == "themes" and b == theme for a, b in zip(parts, parts[1:]))


def build_library_styles(config: ProjectConfig, compiler: ThemeCompiler = lesscpy_compiler) -> int:
    """
    Compile `library.source.less` of project libraries (every theme) and of
    custom themes (the configured target theme only) inside the distribution,
    then minify the emitted `library.css` and `library-RTL.css`.

    Missing partials are healed like in the framework library build; a theme
    that still fails is logged and skipped.
    """
    sources: list[Path] = []
    for library in config.libraries:
        sources += _copy_less(config, library)
    for theme in config.themes:
        sources += [p for p in _copy_less(config, theme) if _is_target_theme(p, config.theme)]

    compiled = 0
    for source in sources:
        if not compile_theme(source, compiler, log=logger):
            continue
        for name in (CSS_NAME, CSS_RTL_NAME):
            css = source.parent / name
            css.write_text(minify_css(css.read_text(encoding="utf-8")), encoding="utf-8")
        compiled += 1
    return compiled


def _component_files(app_dir: Path) -> list[Path]:
    return [
        p
        for p in iter_files(app_dir)
        if (p.name.endswith(COMPONENT_SUFFIXES) or p.name == "manifest.json")
        and not is_debug_resource(p)
        and p.name != COMPONENT_PRELOAD_NAME
    ]


def bundle_component(config: ProjectConfig, app: ModuleRoot) -> Path:
    app_dir = config.dist_path(app.path)
    modules = collect_modules(app_dir, _component_files(app_dir), app.name)
    return write_component_preload(app_dir, app.name, modules)


def bundle_library(config: ProjectConfig, library: ModuleRoot) -> Path:
    lib_dir = config.dist_path(library.path)
    files = [
        p
        for p in iter_files(lib_dir)
        if p.suffix in (".js", ".json") and not is_debug_resource(p) and not p.name.endswith("-preload.js")
    ]
    modules = collect_modules(lib_dir, files, library.name)
    return write_library_preload(lib_dir, library.name, modules)


async def build_preloads(config: ProjectConfig) -> None:
    await fan_out(
        [lambda a=a: bundle_component(config, a) for a in config.apps]
        + [lambda lib=lib: bundle_library(config, lib) for lib in config.libraries]
    )


def dist_stages(config: ProjectConfig, compiler: ThemeCompiler = lesscpy_compiler) -> list[Stage]:
    dist = config.root / config.dist_dir
    stages = [
        Stage("clean dist", blocking(lambda: clean_dist(config))),
        Stage("compile entry", blocking(lambda: render_entry(config))),
        Stage("scripts", blocking(lambda: build_scripts(config))),
        Stage("assets", blocking(lambda: copy_assets(config))),
        Stage("styles", blocking(lambda: build_styles(config, compiler))),
        Stage("library styles", blocking(lambda: build_library_styles(config, compiler))),
        Stage("bundle preloads", lambda: build_preloads(config)),
    ]
    if config.build.cache_buster:
        stages.append(Stage("cache buster", blocking(lambda: bust_file(entry_output_path(config)))))
    else:
        logger.debug("Cache buster is deactivated.")
    if "gzip" in config.build.compression:
        stages.append(Stage("pre-compression gzip", blocking(lambda: gzip_tree(dist))))
    if "brotli" in config.build.compression:
        stages.append(Stage("pre-compression brotli", blocking(lambda: brotli_tree(dist))))
    return stages


def build_dist(
    config: ProjectConfig,
    *,
    log: logging.Logger | None = None,
    on_progress: ProgressCallback | None = None,
    compiler: ThemeCompiler = lesscpy_compiler,
) -> Path:
    """Run the distribution build and return the entry HTML path."""
    pipeline = Pipeline(dist_stages(config, compiler), log=log or logger, on_progress=on_progress)
    asyncio.run(pipeline.run())
    return entry_output_path(config)
