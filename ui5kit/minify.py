"""
minify.py

Responsibility: Thin wrappers around the script and stylesheet minifiers plus
the debug-resource naming convention.

License headers (`/*! ... */`) are kept in minified output.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import rcssmin
import rjsmin

DEBUG_SUFFIX = "-dbg"


def minify_js(text: str) -> str:
    return rjsmin.jsmin(text, keep_bang_comments=True)


def minify_css(text: str) -> str:
    return rcssmin.cssmin(text, keep_bang_comments=True)


def debug_name(name: str) -> str:
    """
    Return the debug resource name of a script file name.

    `Button.js` becomes `Button-dbg.js`, `Main.controller.js` becomes
    `Main-dbg.controller.js`.
    """
    if name.endswith(".controller.js"):
        return name[: -len(".controller.js")] + f"{DEBUG_SUFFIX}.controller.js"
    stem, dot, ext = name.rpartition(".")
    if not dot:
        return name + DEBUG_SUFFIX
    return f"{stem}{DEBUG_SUFFIX}.{ext}"


def debug_path(path: Path) -> Path:
    return path.with_name(debug_name(path.name))


def is_debug_resource(path: Path | PurePosixPath) -> bool:
    return path.name.endswith(f"{DEBUG_SUFFIX}.js") or path.name.endswith(f"{DEBUG_SUFFIX}.controller.js")
