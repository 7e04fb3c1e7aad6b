"""
config.py

Responsibility: Load and parse the project build configuration (YAML) into a
deterministic, typed model.

Expected layout of `ui5kit.yaml`:

    ui5:
      title: My App
      main: src/index.html.j2
      theme: sap_belize
      version: 1.52.5
      url: https://example.invalid/openui5-{{ version }}.zip
      apps: [{name: my.app, path: src/my-app}]
      build: {cache_buster: true, compression: [gzip, brotli]}
    paths:
      src: src
      dist: dist

The CLI and the build steps treat the parsed result as the single source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined


class ConfigError(ValueError):
    pass


COMPRESSION_FORMATS = ("gzip", "brotli")


@dataclass(frozen=True)
class SourceLink:
    """Where the framework sources come from."""

    url: str
    version: str
    is_archive: bool = True
    is_prebuild: bool = False


@dataclass(frozen=True)
class ModuleRoot:
    """An application, library, theme or asset root declared by the project."""

    name: str
    path: str


@dataclass(frozen=True)
class BuildSettings:
    cache_buster: bool = False
    # Pre-compression formats, subset of COMPRESSION_FORMATS.
    compression: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectConfig:
    """Parsed project configuration used by the distribution build."""

    source: SourceLink
    title: str = ""
    main: str = "src/index.html.j2"
    theme: str = "sap_belize"
    src_dir: str = "src"
    dist_dir: str = "dist"
    download_dir: str = ".download"
    ui5_dir: str = ""
    apps: tuple[ModuleRoot, ...] = ()
    libraries: tuple[ModuleRoot, ...] = ()
    themes: tuple[ModuleRoot, ...] = ()
    assets: tuple[ModuleRoot, ...] = ()
    build: BuildSettings = field(default_factory=BuildSettings)
    root: Path = field(default_factory=Path.cwd)

    @property
    def ui5_path(self) -> Path:
        """Target directory of the built framework library."""
        base = self.ui5_dir or f"{self.dist_dir}/ui5"
        return self.root / base / self.source.version

    @property
    def download_path(self) -> Path:
        return self.root / self.download_dir

    def compiled_source_url(self) -> str:
        env = Environment(autoescape=False, undefined=StrictUndefined)
        try:
            return env.from_string(self.source.url).render(
                version=self.source.version,
                is_archive=self.source.is_archive,
                is_prebuild=self.source.is_prebuild,
            )
        except Exception as e:  # noqa: BLE001 - surface as ConfigError
            raise ConfigError(f"Invalid source url template: {self.source.url}") from e

    def dist_path(self, path: str) -> Path:
        """Map a `src/...` path to its counterpart below the distribution directory."""
        rel = Path(path)
        if rel.parts and rel.parts[0] == self.src_dir:
            rel = Path(*rel.parts[1:])
        return self.root / self.dist_dir / rel

    def src_path(self, path: str) -> Path:
        return self.root / path


def _parse_modules(raw: Any, section: str) -> tuple[ModuleRoot, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError(f"`ui5.{section}` must be a list when provided.")
    out: list[ModuleRoot] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"`ui5.{section}[{i}]` must be a mapping with `name` and `path`.")
        name = str(item.get("name") or "").strip()
        path = str(item.get("path") or "").strip().rstrip("/")
        if not name or not path:
            raise ConfigError(f"`ui5.{section}[{i}]` requires both `name` and `path`.")
        out.append(ModuleRoot(name=name, path=path))
    return tuple(out)


def _parse_compression(raw: Any) -> tuple[str, ...]:
    """`true` enables every format; a name or a list of names selects formats."""
    if raw is None or raw is False:
        return ()
    if raw is True:
        return COMPRESSION_FORMATS
    names = [raw] if isinstance(raw, str) else raw
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise ConfigError("`ui5.build.compression` must be a boolean, a format name or a list of format names.")
    unknown = sorted(set(names) - set(COMPRESSION_FORMATS))
    if unknown:
        raise ConfigError(f"Unknown compression format(s): {', '.join(unknown)} (supported: gzip, brotli).")
    return tuple(f for f in COMPRESSION_FORMATS if f in names)


def _parse_build(raw: Any) -> BuildSettings:
    if raw is None:
        return BuildSettings()
    if not isinstance(raw, dict):
        raise ConfigError("`ui5.build` must be an object/mapping when provided.")
    return BuildSettings(
        cache_buster=raw.get("cache_buster") is True,
        compression=_parse_compression(raw.get("compression")),
    )


def load_config(config_path: str | Path) -> ProjectConfig:
    """
    Parse a YAML project configuration into a `ProjectConfig`.

    Relative paths inside the configuration are resolved against the directory
    holding the configuration file.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file does not exist: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {path}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping/object at the top level.")

    ui5 = data.get("ui5")
    if not isinstance(ui5, dict):
        raise ConfigError("Config must define a `ui5` section.")

    version = str(ui5.get("version") or "").strip()
    if not version:
        raise ConfigError("Config must define `ui5.version`.")
    url = str(ui5.get("url") or "").strip()
    if not url:
        raise ConfigError("Config must define `ui5.url`.")

    paths = data.get("paths") or {}
    if not isinstance(paths, dict):
        raise ConfigError("`paths` must be an object/mapping when provided.")

    return ProjectConfig(
        source=SourceLink(
            url=url,
            version=version,
            is_archive=bool(ui5.get("is_archive", True)),
            is_prebuild=bool(ui5.get("is_prebuild", False)),
        ),
        title=str(ui5.get("title") or "").strip(),
        main=str(ui5.get("main") or "src/index.html.j2").strip(),
        theme=str(ui5.get("theme") or "sap_belize").strip(),
        src_dir=str(paths.get("src") or "src").strip("/"),
        dist_dir=str(paths.get("dist") or "dist").strip("/"),
        download_dir=str(paths.get("download") or ".download").strip("/"),
        ui5_dir=str(paths.get("ui5") or "").strip("/"),
        apps=_parse_modules(ui5.get("apps"), "apps"),
        libraries=_parse_modules(ui5.get("libraries"), "libraries"),
        themes=_parse_modules(ui5.get("themes"), "themes"),
        assets=_parse_modules(ui5.get("assets"), "assets"),
        build=_parse_build(ui5.get("build")),
        root=path.resolve().parent,
    )
