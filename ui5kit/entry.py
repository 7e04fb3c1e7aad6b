"""
entry.py

Responsibility: Render the HTML entry point of the application.

The entry template (jinja2) receives:
- `title`: page title
- `src`: URL of `sap-ui-core.js` relative to the rendered HTML
- `theme`: target theme
- `resourceroots`: compact JSON mapping of app/library/asset names to paths
- `themeroots`: compact JSON mapping of custom theme names to paths

The resource roots are emitted single-quoted (`data-sap-ui-resourceroots='{{ resourceroots }}'`)
so the cache buster can find and rewrite them.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined

from ui5kit.config import ProjectConfig


class RenderError(RuntimeError):
    pass


def _relative(from_dir: Path, to: Path) -> str:
    return Path(os.path.relpath(to, from_dir)).as_posix()


def ui5_src_url(config: ProjectConfig, html_dir: Path) -> str:
    url = config.compiled_source_url()
    is_remote = url.startswith("http")
    naked = config.ui5_path / "sap-ui-core.js"
    wrapped = config.ui5_path / "resources" / "sap-ui-core.js"

    if config.source.is_archive and is_remote:
        if config.source.is_prebuild and wrapped.exists():
            return _relative(html_dir, wrapped)
        return _relative(html_dir, naked)
    if is_remote:
        return url
    return _relative(html_dir, config.root / url)


def entry_context(config: ProjectConfig, entry_html: Path) -> dict[str, Any]:
    html_dir = entry_html.parent
    roots = [*config.apps, *config.libraries, *config.assets]
    return {
        "title": config.title,
        "src": ui5_src_url(config, html_dir),
        "theme": config.theme,
        "resourceroots": json.dumps(
            {m.name: _relative(html_dir, config.dist_path(m.path)) for m in roots},
            separators=(",", ":"),
        ),
        "themeroots": json.dumps(
            {t.name: _relative(html_dir, config.dist_path(t.path) / "UI5") for t in config.themes},
            separators=(",", ":"),
        ),
    }


def entry_output_path(config: ProjectConfig) -> Path:
    out = config.dist_path(config.main)
    if out.suffix in (".j2", ".jinja", ".handlebars"):
        out = out.with_suffix("")
    if out.suffix != ".html":
        out = out.with_suffix(".html")
    return out


def render_entry(config: ProjectConfig) -> Path:
    """Render the entry template into the distribution directory."""
    template_path = config.src_path(config.main)
    if not template_path.is_file():
        raise RenderError(f"Entry template not found: {template_path}")

    env = Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    out = entry_output_path(config)
    try:
        template = env.from_string(template_path.read_text(encoding="utf-8"))
        html = template.render(**entry_context(config, out))
    except Exception as e:  # noqa: BLE001 - surface as RenderError
        raise RenderError(f"Failed rendering entry template: {template_path}") from e

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(html, encoding="utf-8", newline="\n")
    return out
