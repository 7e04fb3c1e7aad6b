"""
library.py

Responsibility: Build a ready-to-serve OpenUI5 library from a downloaded source tree.

High-level flow (`build_library`):
1) Discover module (`sap.*`) and theme (`themelib*`) directories below `src/`
2) Emit debug copies (`-dbg.js`) of every module script
3) Copy license files and all module files, minifying scripts
4) Compose the core entry files (`sap-ui-core*.js`) from `raw:` includes
5) Bundle a library preload per module (except sap.ui.core)
6) Bundle the sap.ui.core preload
7) Copy theme libraries
8) Compile theme stylesheets (missing partials are healed, see `themes.py`)
9) Minify all CSS
10) Write `sap-ui-version.json`

An existing target directory is never touched: the build is a logged no-op.
A failed build leaves a partial target behind that must be removed before
building again.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from ui5kit.config import ConfigError
from ui5kit.context import BuildContext, require_settings
from ui5kit.files import copy_file, iter_files, sorted_subdirs
from ui5kit.minify import debug_name, debug_path, is_debug_resource, minify_css, minify_js
from ui5kit.pipeline import Pipeline, ProgressCallback, Stage, blocking, fan_out
from ui5kit.placeholders import replace_placeholders
from ui5kit.preload import LIBRARY_PRELOAD_NAME, collect_modules, write_library_preload
from ui5kit.themes import LESS_SOURCE_NAME, ThemeCompiler, compile_theme

logger = logging.getLogger("ui5kit.library")

MODULE_PREFIX = "sap."
THEME_PREFIX = "themelib"
CORE_MODULE = "sap.ui.core"

SOURCE_ROOT_FILES = ("LICENSE.txt", "NOTICE.txt", "README.md")

CORE_ENTRY_FILES = (
    "sap-ui-core.js",
    "sap-ui-core-nojQuery.js",
    "sap-ui-core-dbg.js",
    "sap-ui-core-nojQuery-dbg.js",
)

# Sub-namespaces bundled into the sap.ui.core preload.
CORE_PRELOAD_DIRS = ("sap/ui/base", "sap/ui/core", "sap/ui/model")
CORE_PRELOAD_FILES = ("sap/ui/Global.js",)

# Base and high contrast themes are relocated when nested below `<sap.x>/src/`.
BASE_THEMES = ("base", "sap_hcb", "sap_hcw")

VERSION_FILE_NAME = "sap-ui-version.json"

RAW_INCLUDE = re.compile(r"raw:([\w./-]*)")

CORE_FOOTER = (
    'if (!window["sap-ui-debug"]) { sap.ui.requireSync("sap/ui/core/library-preload"); }\n'
    'sap.ui.requireSync("sap/ui/core/Core");\n'
    "sap.ui.getCore().boot && sap.ui.getCore().boot();"
)
OPTIMIZED_HEADER = 'window["sap-ui-optimized"] = true;'


@dataclass(frozen=True)
class ModuleDescriptor:
    path: Path
    target_path: Path
    name: str


@dataclass(frozen=True)
class BuildResult:
    target: Path
    skipped: bool = False
    modules: tuple[str, ...] = ()
    failed_themes: tuple[Path, ...] = ()


def find_src_dir(source: Path) -> Path:
    """
    Locate the `src` directory of a source tree: at the root, or one level deep
    (archives usually extract into a single versioned directory).
    """
    direct = source / "src"
    if direct.is_dir():
        return direct
    if source.is_dir():
        for child in sorted(source.iterdir(), key=lambda p: p.name):
            if child.is_dir() and (child / "src").is_dir():
                return child / "src"
    raise ConfigError(f"No `src` directory found in UI5 source path: {source}")


def discover(src_dir: Path, target: Path) -> tuple[list[ModuleDescriptor], list[Path]]:
    """Return (modules, theme directories) below src_dir, in sorted order."""
    modules = [
        ModuleDescriptor(
            path=p,
            target_path=target.joinpath(*p.name.split(".")),
            name=p.name,
        )
        for p in sorted_subdirs(src_dir, MODULE_PREFIX)
    ]
    themes = sorted_subdirs(src_dir, THEME_PREFIX)
    return modules, themes


def raw_includes(text: str) -> list[str]:
    return [m for m in RAW_INCLUDE.findall(text) if m]


def relocate_theme_path(rel: PurePosixPath) -> PurePosixPath:
    """
    Strip an intermediate `<sap.x>/src/` segment from base/high contrast theme paths,
    e.g. `sap.m/src/sap/m/themes/base/x.less` -> `sap/m/themes/base/x.less`.
    """
    parts = rel.parts
    if "themes" not in parts:
        return rel
    t = parts.index("themes")
    if t + 1 >= len(parts) or parts[t + 1] not in BASE_THEMES:
        return rel
    for i in range(t - 1):
        if parts[i].startswith(MODULE_PREFIX) and parts[i + 1] == "src":
            return PurePosixPath(*parts[i + 2 :])
    return rel


def compose_core(text: str, *, debug: bool) -> str:
    if debug:
        return f"{text}\n{CORE_FOOTER}"
    return f"{OPTIMIZED_HEADER}\n{text}\n{CORE_FOOTER}"


class LibraryBuilder:
    """Runs the library build steps over one BuildContext."""

    def __init__(self, context: BuildContext, src_dir: Path) -> None:
        self.context = context
        self.log = context.logger
        self.src_dir = src_dir
        self.modules: list[ModuleDescriptor] = []
        self.themes: list[Path] = []
        self.inlined: set[Path] = set()
        self.failed_themes: list[Path] = []

    @property
    def target(self) -> Path:
        return self.context.target

    def _banner(self, text: str) -> str:
        return replace_placeholders(text, self.context.banner_rules)

    # 1.
    def collect(self) -> None:
        self.modules, self.themes = discover(self.src_dir, self.target)
        self.log.info(
            "Found %d module(s) and %d theme librarie(s) in %s",
            len(self.modules),
            len(self.themes),
            self.src_dir,
        )
        self.target.mkdir(parents=True)

    # 2.
    def copy_debug_resources(self) -> None:
        for module in self.modules:
            module_src = module.path / "src"
            for path in iter_files(module_src):
                if path.suffix != ".js":
                    continue
                rel = path.relative_to(module_src)
                copy_file(path, debug_path(self.target / rel), self._banner)

    # 3.
    def copy_resources(self) -> None:
        root = self.src_dir.parent
        for name in SOURCE_ROOT_FILES:
            if (root / name).is_file():
                copy_file(root / name, self.target / name)

        for module in self.modules:
            module_src = module.path / "src"
            for path in iter_files(module_src):
                dst = self.target / path.relative_to(module_src)
                if path.suffix == ".js":
                    copy_file(path, dst, lambda text: self._banner(minify_js(text)))
                elif path.name == LESS_SOURCE_NAME:
                    copy_file(path, dst, self._banner)
                else:
                    copy_file(path, dst)

    # 4.
    def compose_core_entries(self) -> None:
        originals = {
            name: (self.target / name).read_text(encoding="utf-8")
            for name in CORE_ENTRY_FILES
            if (self.target / name).is_file()
        }
        for name, text in originals.items():
            debug = name.endswith("-dbg.js")
            includes = raw_includes(text)
            if not includes and not debug:
                # Minification may strip the include comments; fall back to the debug twin.
                includes = raw_includes(originals.get(debug_name(name), ""))
            if not includes:
                # Nothing to inline; the entry keeps its content and still gets header and footer.
                composed = compose_core(self._banner(text), debug=debug)
                (self.target / name).write_text(composed, encoding="utf-8", newline="\n")
                continue

            if name == CORE_ENTRY_FILES[0]:
                self.inlined = {self.target / PurePosixPath(p) for p in includes}

            parts: list[str] = []
            for include in includes:
                rel = PurePosixPath(include)
                if debug:
                    rel = rel.with_name(debug_name(rel.name))
                parts.append(self._banner((self.target / rel).read_text(encoding="utf-8")))

            composed = compose_core(self._banner("".join(parts)), debug=debug)
            (self.target / name).write_text(composed, encoding="utf-8", newline="\n")
            self.log.debug("Composed %s from %d raw include(s)", name, len(includes))

    def _bundle_candidates(self, files: list[Path]) -> list[Path]:
        return [
            p
            for p in files
            if p.suffix == ".js"
            and not is_debug_resource(p)
            and p.name != LIBRARY_PRELOAD_NAME
            and p not in self.inlined
        ]

    def _bundle_module(self, module: ModuleDescriptor) -> Path | None:
        files = self._bundle_candidates(iter_files(module.target_path))
        if not files:
            return None
        modules = collect_modules(module.target_path, files, module.name)
        return write_library_preload(module.target_path, module.name, modules)

    # 5.
    async def bundle_library_preloads(self) -> None:
        written = await fan_out(
            [lambda m=m: self._bundle_module(m) for m in self.modules if m.name != CORE_MODULE]
        )
        self.log.debug("Wrote %d library preload(s)", sum(1 for p in written if p is not None))

    # 6.
    def bundle_core_preload(self) -> None:
        files = sorted(self.target.glob("jquery.sap.*.js"), key=lambda p: p.name)
        files += [self.target / f for f in CORE_PRELOAD_FILES if (self.target / f).is_file()]
        for directory in CORE_PRELOAD_DIRS:
            files += iter_files(self.target / directory)
        files = self._bundle_candidates(files)
        if not files:
            return
        modules = collect_modules(self.target, files)
        write_library_preload(self.target.joinpath(*CORE_MODULE.split(".")), "", modules)

    # 7.
    def copy_themes(self) -> None:
        for theme in self.themes:
            theme_src = theme / "src"
            for path in iter_files(theme_src):
                rel = relocate_theme_path(PurePosixPath(path.relative_to(theme_src).as_posix()))
                dst = self.target / rel
                if path.name == LESS_SOURCE_NAME:
                    copy_file(path, dst, self._banner)
                else:
                    copy_file(path, dst)

    # 8.
    async def compile_themes(self) -> None:
        sources = [
            p
            for p in iter_files(self.target)
            if p.name == LESS_SOURCE_NAME and "themes" in p.relative_to(self.target).parts
        ]
        compiler: ThemeCompiler = self.context.compiler
        results = await fan_out([lambda s=s: compile_theme(s, compiler, log=self.log) for s in sources])
        self.failed_themes = [s for s, ok in zip(sources, results) if not ok]
        if self.failed_themes:
            self.log.warning("Skipped CSS output of %d theme(s)", len(self.failed_themes))

    # 9.
    def minify_styles(self) -> None:
        for path in iter_files(self.target):
            if path.suffix == ".css":
                path.write_text(minify_css(path.read_text(encoding="utf-8")), encoding="utf-8")

    # 10.
    def write_version_info(self) -> None:
        build_time = self.context.build_time
        info = {
            "buildTimestamp": build_time,
            "name": self.context.dist_name,
            "version": self.context.version,
            "libraries": [
                {"buildTimestamp": build_time, "name": m.name, "version": self.context.version}
                for m in self.modules
            ],
        }
        (self.target / VERSION_FILE_NAME).write_text(json.dumps(info, indent=2), encoding="utf-8")

    def stages(self) -> list[Stage]:
        return [
            Stage("collect modules and themes", blocking(self.collect)),
            Stage("copy debug resources", blocking(self.copy_debug_resources)),
            Stage("copy minified JS and all other resources", blocking(self.copy_resources)),
            Stage("compose sap-ui-*.js resources", blocking(self.compose_core_entries)),
            Stage("bundle library preloads", self.bundle_library_preloads),
            Stage("bundle sap.ui.core preload", blocking(self.bundle_core_preload)),
            Stage("copy themes", blocking(self.copy_themes)),
            Stage("compile themes library.source.less resources", self.compile_themes),
            Stage("postprocess CSS", blocking(self.minify_styles)),
            Stage("compose sap-ui-version.json", blocking(self.write_version_info)),
        ]

    async def run(self) -> BuildResult:
        await Pipeline(self.stages(), log=self.log, on_progress=self.context.report).run()
        return BuildResult(
            target=self.target,
            modules=tuple(m.name for m in self.modules),
            failed_themes=tuple(self.failed_themes),
        )


async def build_library_async(context: BuildContext) -> BuildResult:
    require_settings(version=context.version)
    if context.target.exists():
        context.logger.info(
            "UI5 target directory %s already exists. Clean the target location to rebuild "
            "(the directory is created automatically).",
            context.target,
        )
        return BuildResult(target=context.target, skipped=True)
    src_dir = find_src_dir(context.source)
    return await LibraryBuilder(context, src_dir).run()


def build_library(
    source: str | Path,
    target: str | Path,
    version: str,
    *,
    log: logging.Logger | None = None,
    on_progress: ProgressCallback | None = None,
    compiler: ThemeCompiler | None = None,
    build_time: str | None = None,
) -> BuildResult:
    """
    Build the library from `source` into `target`, labelled with `version`.

    Raises ConfigError for missing parameters or a source tree without `src`,
    and BuildError when a build step fails.
    """
    require_settings(source=str(source or ""), target=str(target or ""), version=version)
    options: dict[str, object] = {}
    if log is not None:
        options["logger"] = log
    if compiler is not None:
        options["compiler"] = compiler
    if build_time is not None:
        options["build_time"] = build_time
    context = BuildContext(
        source=Path(source),
        target=Path(target),
        version=version,
        on_progress=on_progress,
        **options,
    )
    return asyncio.run(build_library_async(context))
