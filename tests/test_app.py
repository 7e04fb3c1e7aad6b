from __future__ import annotations

import gzip
import json
import re
from dataclasses import replace
from pathlib import Path

import brotli

from conftest import fake_compiler
from ui5kit.app import build_dist, clean_dist, dist_stages
from ui5kit.cachebust import hash_digest
from ui5kit.config import ModuleRoot, load_config
from ui5kit.preload import COMPONENT_PRELOAD_NAME
from ui5kit.themes import CSS_NAME, CSS_RTL_NAME


def _resource_roots(html: str) -> dict[str, str]:
    match = re.search(r"data-sap-ui-resourceroots='([^']*)'", html)
    assert match is not None
    return json.loads(match.group(1))


def test_dist_stages_follow_build_settings(starter_project: Path) -> None:
    config = load_config(starter_project)
    names = [s.name for s in dist_stages(config)]
    assert names == [
        "clean dist",
        "compile entry",
        "scripts",
        "assets",
        "styles",
        "library styles",
        "bundle preloads",
        "cache buster",
    ]

    plain = replace(config, build=replace(config.build, cache_buster=False, compression=("gzip", "brotli")))
    plain_names = [s.name for s in dist_stages(plain)]
    assert plain_names[-2:] == ["pre-compression gzip", "pre-compression brotli"]
    assert "cache buster" not in plain_names


def test_build_dist_without_cache_buster(starter_project: Path) -> None:
    config = load_config(starter_project)
    config = replace(config, build=replace(config.build, cache_buster=False))

    entry = build_dist(config)

    dist = config.root / "dist"
    assert _resource_roots(entry.read_text(encoding="utf-8")) == {"my.app": "my-app"}
    app = dist / "my-app"
    assert (app / "Component-dbg.js").read_text(encoding="utf-8").startswith("// component")
    assert "// component" not in (app / "Component.js").read_text(encoding="utf-8")
    assert (app / "i18n" / "i18n.properties").is_file()
    assert (dist / "themes" / "my" / "UI5" / "sap" / "m" / "themes" / "my" / "library.css").is_file()

    preload = (app / COMPONENT_PRELOAD_NAME).read_text(encoding="utf-8")
    payload = json.loads(preload[len("jQuery.sap.registerPreloadedModules(") : -2])
    assert payload["name"] == "my/app/Component-preload"
    assert sorted(payload["modules"]) == ["my/app/Component.js", "my/app/manifest.json", "my/app/view/Main.view.xml"]


def test_build_dist_cache_busts_the_app(starter_project: Path) -> None:
    config = load_config(starter_project)

    entry = build_dist(config)

    webroot = config.root / "dist"
    roots = _resource_roots(entry.read_text(encoding="utf-8"))
    bundle = webroot / roots["my.app"]
    assert re.fullmatch(r"[0-9a-z]{8}", roots["my.app"])
    assert not (webroot / "my-app").exists()
    preload = (bundle / COMPONENT_PRELOAD_NAME).read_bytes()
    assert hash_digest(preload) == roots["my.app"]


def test_rebuild_with_cache_buster_replaces_previous_output(starter_project: Path) -> None:
    config = load_config(starter_project)
    dist = config.root / "dist"

    first = _resource_roots(build_dist(config).read_text(encoding="utf-8"))
    (dist / "stale.txt").write_text("left over", encoding="utf-8")
    second = _resource_roots(build_dist(config).read_text(encoding="utf-8"))

    assert first == second
    assert not (dist / "stale.txt").exists()
    assert not (dist / "my-app").exists()
    assert (dist / second["my.app"] / COMPONENT_PRELOAD_NAME).is_file()


def test_clean_dist_keeps_the_framework_library(starter_project: Path) -> None:
    config = load_config(starter_project)
    core = config.ui5_path / "sap-ui-core.js"
    core.parent.mkdir(parents=True)
    core.write_text("var core;", encoding="utf-8")
    other_version = config.ui5_path.parent / "0.9.0"
    other_version.mkdir()
    (config.root / "dist" / "old").mkdir()

    assert clean_dist(config) == 2

    assert core.read_text(encoding="utf-8") == "var core;"
    assert not other_version.exists()
    assert sorted(p.name for p in (config.root / "dist").iterdir()) == ["ui5"]


def test_clean_dist_without_dist_directory(starter_project: Path) -> None:
    assert clean_dist(load_config(starter_project)) == 0


def test_library_and_theme_stylesheets_are_compiled(starter_project: Path) -> None:
    root = starter_project.parent
    lib_themes = root / "src" / "my-lib" / "my" / "lib" / "themes"
    (lib_themes / "base").mkdir(parents=True)
    (lib_themes / "base" / "library.source.less").write_text('@import "shared.less";\n', encoding="utf-8")
    theme_dir = root / "src" / "themes" / "my" / "sap" / "m" / "themes"
    for name in ("sap_belize", "sap_hcb"):
        (theme_dir / name).mkdir(parents=True)
        (theme_dir / name / "library.source.less").write_text(".a { color: red; }\n", encoding="utf-8")
    config = load_config(starter_project)
    config = replace(
        config,
        libraries=(ModuleRoot("my.lib", "src/my-lib"),),
        build=replace(config.build, cache_buster=False),
    )

    build_dist(config, compiler=fake_compiler)

    dist = root / "dist"
    lib_base = dist / "my-lib" / "my" / "lib" / "themes" / "base"
    assert (lib_base / "library.source.less").is_file()
    assert (lib_base / "shared.less").is_file()
    assert (lib_base / CSS_NAME).read_text(encoding="utf-8") == ".x{color:red}"
    assert (lib_base / CSS_RTL_NAME).read_text(encoding="utf-8") == ".x{color:red}"
    assert (dist / "themes" / "my" / "sap" / "m" / "themes" / "sap_belize" / CSS_NAME).is_file()
    assert not (dist / "themes" / "my" / "sap" / "m" / "themes" / "sap_hcb" / CSS_NAME).exists()
    assert (dist / "themes" / "my" / "sap" / "m" / "themes" / "sap_hcb" / "library.source.less").is_file()


def test_build_dist_precompresses_with_gzip_and_brotli(starter_project: Path) -> None:
    config = load_config(starter_project)
    config = replace(config, build=replace(config.build, compression=("gzip", "brotli")))
    (starter_project.parent / "src" / "my-app" / "i18n" / "i18n.properties").write_text(
        "title=Starter\n" * 200, encoding="utf-8"
    )

    build_dist(config)

    props = next((config.root / "dist").rglob("i18n.properties"))
    assert gzip.decompress(props.with_name("i18n.properties.gz").read_bytes()) == props.read_bytes()
    assert brotli.decompress(props.with_name("i18n.properties.br").read_bytes()) == props.read_bytes()
