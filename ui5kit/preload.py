"""
preload.py

Responsibility: Serialize preload bundles for the framework's runtime loader.

A preload bundle maps module paths (`sap/m/Button.js`) to file contents and is
wrapped into a `jQuery.sap.registerPreloadedModules(...)` call.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

LIBRARY_PRELOAD_NAME = "library-preload.js"
COMPONENT_PRELOAD_NAME = "Component-preload.js"

PRELOAD_VERSION = "2.0"


def _namespace_path(namespace: str) -> str:
    return namespace.replace(".", "/")


def collect_modules(base: Path, files: Iterable[Path], namespace: str = "") -> dict[str, str]:
    """
    Map module paths to file contents.

    Keys are the namespace as path segments followed by the path relative to
    `base`; an empty namespace keys by the relative path alone.
    """
    prefix = _namespace_path(namespace)
    modules: dict[str, str] = {}
    for path in files:
        rel = path.relative_to(base).as_posix()
        key = f"{prefix}/{rel}" if prefix else rel
        modules[key] = path.read_text(encoding="utf-8")
    return dict(sorted(modules.items()))


def _register_call(payload: dict[str, object]) -> str:
    return f"jQuery.sap.registerPreloadedModules({json.dumps(payload, ensure_ascii=False)});"


def library_preload(namespace: str, modules: dict[str, str]) -> str:
    name = f"{namespace}.library-preload" if namespace else "library-preload"
    return _register_call({"version": PRELOAD_VERSION, "name": name, "modules": modules})


def component_preload(namespace: str, modules: dict[str, str]) -> str:
    name = f"{_namespace_path(namespace)}/Component-preload"
    return _register_call({"version": PRELOAD_VERSION, "name": name, "modules": modules})


def write_library_preload(destination_dir: Path, namespace: str, modules: dict[str, str]) -> Path:
    destination_dir.mkdir(parents=True, exist_ok=True)
    out = destination_dir / LIBRARY_PRELOAD_NAME
    out.write_text(library_preload(namespace, modules), encoding="utf-8")
    return out


def write_component_preload(destination_dir: Path, namespace: str, modules: dict[str, str]) -> Path:
    destination_dir.mkdir(parents=True, exist_ok=True)
    out = destination_dir / COMPONENT_PRELOAD_NAME
    out.write_text(component_preload(namespace, modules), encoding="utf-8")
    return out
