"""
themes.py

Responsibility: Compile theme stylesheets (`library.source.less`) into
`library.css`, `library-RTL.css` and `library-parameters.json`.

Theme sources frequently import partials that are not shipped with the
sources. A failed compilation caused by a missing partial is healed by creating
an empty placeholder file and compiling again. Healing is an explicit bounded
loop: every missing file is created at most once, and a failure that persists
after its file was created ends the loop. A theme that cannot be healed is
logged and skipped; it never aborts the build.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import lesscpy

logger = logging.getLogger("ui5kit.themes")

LESS_SOURCE_NAME = "library.source.less"
CSS_NAME = "library.css"
CSS_RTL_NAME = "library-RTL.css"
PARAMETERS_NAME = "library-parameters.json"

MAX_HEAL_ATTEMPTS = 50


class LessCompileError(RuntimeError):
    def __init__(self, message: str, filename: str = "") -> None:
        self.message = message
        self.filename = filename
        super().__init__(message)


@dataclass(frozen=True)
class ThemeResult:
    css: str
    css_rtl: str
    variables: dict[str, str] = field(default_factory=dict)


ThemeCompiler = Callable[[Path], ThemeResult]


# ── RTL mirroring ────────────────────────────────────────────────────────────

# A declaration directly following `{` or `;` and terminated by `;` or `}`.
_DECLARATION = re.compile(r"(?<=[{;])(\s*)(-?[A-Za-z][\w-]*)(\s*:\s*)([^;{}]*)(?=[;}])")
_DIRECTION_WORD = re.compile(r"(?<![A-Za-z])(left|right|ltr|rtl)(?![A-Za-z])")
_SWAPS = {"left": "right", "right": "left", "ltr": "rtl", "rtl": "ltr"}

_BOX_SHORTHANDS = {"margin", "padding", "border-width", "border-style", "border-color"}


def _swap_words(text: str) -> str:
    return _DIRECTION_WORD.sub(lambda m: _SWAPS[m.group(1)], text)


def _mirror_value(prop: str, value: str) -> str:
    important = ""
    body = value.rstrip()
    if body.endswith("!important"):
        body, important = body[: -len("!important")].rstrip(), " !important"
    parts = body.split()
    if prop in _BOX_SHORTHANDS and len(parts) == 4:
        return " ".join([parts[0], parts[3], parts[2], parts[1]]) + important
    if prop == "border-radius" and len(parts) == 4:
        return " ".join([parts[1], parts[0], parts[3], parts[2]]) + important
    if "url(" in value:
        return value
    return _swap_words(value)


def mirror_css(css: str) -> str:
    """Derive right-to-left CSS by mirroring direction-dependent declarations."""

    def repl(m: re.Match[str]) -> str:
        lead, prop, sep, value = m.groups()
        return f"{lead}{_swap_words(prop)}{sep}{_mirror_value(prop.lower(), value)}"

    return _DECLARATION.sub(repl, css)


# ── compilation ──────────────────────────────────────────────────────────────

_VARIABLE = re.compile(r"^@([\w-]+)\s*:\s*([^;]+);", re.MULTILINE)


def theme_parameters(less_source: str) -> dict[str, str]:
    """Collect top-level `@name: value;` declarations as theme parameters."""
    return {name: value.strip() for name, value in _VARIABLE.findall(less_source)}


def lesscpy_compiler(path: Path) -> ThemeResult:
    try:
        with path.open(encoding="utf-8") as fh:
            css = lesscpy.compile(fh, minify=False)
    except Exception as e:  # noqa: BLE001 - surface as LessCompileError
        raise LessCompileError(str(e), filename=str(path)) from e
    return ThemeResult(
        css=css,
        css_rtl=mirror_css(css),
        variables=theme_parameters(path.read_text(encoding="utf-8")),
    )


_QUOTED_FILE = re.compile(r"""['"]([^'"\s]+\.less)['"]""")
_BARE_FILE = re.compile(r"((?:\.*/?)*\w[\w./-]*\.less)\b")


def missing_include(error: LessCompileError, source: Path) -> Path | None:
    """
    Infer the missing partial from a compiler error message.

    Relative names resolve against the directory of the compiled stylesheet.
    Returns None when the message names no stylesheet other than the source.
    """
    base = Path(error.filename).parent if error.filename else source.parent
    candidates = _QUOTED_FILE.findall(error.message) or _BARE_FILE.findall(error.message)
    for name in candidates:
        resolved = (base / name).resolve()
        if resolved != source.resolve():
            return resolved
    return None


def write_theme_result(directory: Path, result: ThemeResult) -> None:
    (directory / CSS_NAME).write_text(result.css, encoding="utf-8")
    (directory / CSS_RTL_NAME).write_text(result.css_rtl, encoding="utf-8")
    (directory / PARAMETERS_NAME).write_text(json.dumps(result.variables, indent=4), encoding="utf-8")


def compile_theme(
    source: Path,
    compiler: ThemeCompiler = lesscpy_compiler,
    *,
    log: logging.Logger = logger,
    max_attempts: int = MAX_HEAL_ATTEMPTS,
) -> bool:
    """
    Compile one theme stylesheet, healing missing partials.

    Returns True when the CSS outputs were written, False when the theme was
    skipped.
    """
    created: set[Path] = set()
    while True:
        try:
            result = compiler(source)
        except LessCompileError as err:
            missing = missing_include(err, source)
            if missing is None:
                log.error("Compile theme %s failed: %s", source, err.message)
                return False
            if missing in created:
                log.error("Compile theme %s still fails after creating %s: %s", source, missing, err.message)
                return False
            if missing.exists() or len(created) >= max_attempts:
                log.error("Compile theme %s failed: %s", source, err.message)
                return False
            try:
                missing.write_text("", encoding="utf-8")
            except OSError as e:
                log.error("Compile theme %s: could not create missing file %s: %s", source, missing, e)
                return False
            created.add(missing)
            log.debug("Created empty placeholder %s for %s, retrying", missing, source)
            continue

        write_theme_result(source.parent, result)
        return True
