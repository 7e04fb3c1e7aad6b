"""
context.py

Responsibility: The explicit build context threaded through every build step.

A context is constructed once per build invocation and passed by reference;
steps never reach for module-level state (paths, version, logger, progress).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ui5kit.config import ConfigError
from ui5kit.pipeline import ProgressCallback
from ui5kit.placeholders import COPYRIGHT_PLACEHOLDER, Rule, copyright_banner
from ui5kit.themes import ThemeCompiler, lesscpy_compiler

DEFAULT_DIST_NAME = "openui5-sdk-dist-custom"


def _build_time() -> str:
    return datetime.now().strftime("%a %b %d %Y - %H:%M:%S")


def require_settings(**values: object) -> None:
    """Raise a ConfigError naming every required setting that is empty."""
    missing = [name for name, value in values.items() if value is None or value == ""]
    if missing:
        raise ConfigError(f"Missing required build parameter(s): {', '.join(missing)}")


@dataclass(frozen=True)
class BuildContext:
    source: Path
    target: Path
    version: str
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("ui5kit.library"))
    on_progress: ProgressCallback | None = None
    compiler: ThemeCompiler = lesscpy_compiler
    dist_name: str = DEFAULT_DIST_NAME
    build_time: str = field(default_factory=_build_time)

    @property
    def copyright_banner(self) -> str:
        return copyright_banner(self.version, self.build_time)

    @property
    def banner_rules(self) -> list[Rule]:
        return [(COPYRIGHT_PLACEHOLDER, self.copyright_banner)]

    def report(self, step: int, total: int, name: str) -> None:
        if self.on_progress is not None:
            self.on_progress(step, total, name)
