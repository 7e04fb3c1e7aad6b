"""
cachebust.py

Responsibility: Hash application bundle paths (content based) to enable cache busting.

e.g. `./webapps/my-app` becomes `./webapps/xdbq1b7n`, where the hash depends on
- `Component-preload.js` of the app, and
- the additional resources declared in its `manifest.json` (`sap.ui5.resources`).

The resource roots attribute of the HTML entry is rewritten with the hashes.
Bundle directories are renamed one by one; a failed rename aborts the run and
earlier renames are not rolled back.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from ui5kit.preload import COMPONENT_PRELOAD_NAME

logger = logging.getLogger("ui5kit.cachebust")

RESOURCE_ROOTS_MARKER = "data-sap-ui-resourceroots='"
MANIFEST_NAME = "manifest.json"

HASH_LENGTH = 8
BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


class CacheBustError(RuntimeError):
    pass


def _base62(data: bytes) -> str:
    # The digest is read as a little-endian number.
    number = int.from_bytes(data, "little")
    out: list[str] = []
    while number > 0:
        number, rem = divmod(number, 62)
        out.append(BASE62_ALPHABET[rem])
    return "".join(reversed(out))


def hash_digest(data: bytes) -> str:
    """
    Short content hash: sha512, base62 encoded, truncated to 8 characters.

    Lower-cased because the path part may or may not be case sensitive
    depending on the server.
    """
    return _base62(hashlib.sha512(data).digest())[:HASH_LENGTH].lower()


def extract_json_attribute(html: str, marker: str = RESOURCE_ROOTS_MARKER) -> tuple[int, int, str]:
    """
    Locate the single-quoted attribute value following `marker`.

    Returns (start, end, raw value) with `html[start:end] == raw`. The marker
    must occur exactly once and the value must be closed by a single quote.
    """
    count = html.count(marker)
    if count != 1:
        raise CacheBustError(f"Expected exactly one occurrence of {marker!r}, found {count}")
    start = html.index(marker) + len(marker)
    end = html.find("'", start)
    if end == -1:
        raise CacheBustError(f"Attribute {marker!r} is not terminated by a single quote")
    return start, end, html[start:end]


def _read_manifest(app_dir: Path) -> dict[str, Any]:
    path = app_dir / MANIFEST_NAME
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CacheBustError(f"Invalid manifest: {path}") from e
    return data if isinstance(data, dict) else {}


def bundle_contents(app_dir: Path) -> list[bytes]:
    """
    Collect the contents a bundle's hash depends on: manifest-declared
    resources in declaration order, then the component preload.
    """
    contents: list[bytes] = []
    resources = (_read_manifest(app_dir).get("sap.ui5") or {}).get("resources") or {}
    for entries in resources.values():
        for entry in entries or []:
            uri = entry.get("uri") if isinstance(entry, dict) else None
            if not uri:
                continue
            path = app_dir / uri
            if not path.is_file():
                logger.warning("Declared resource %s of %s not found, ignored for hashing", uri, app_dir)
                continue
            contents.append(path.read_bytes())

    preload = app_dir / COMPONENT_PRELOAD_NAME
    if preload.is_file():
        contents.append(preload.read_bytes())
    return contents


def _hashed_directory(app_dir: Path, app_path: str, new_name: str) -> Path:
    origin = app_path.rstrip("/").split("/")[-1]
    if app_dir.name != origin:
        raise CacheBustError(f"Resource root {app_path!r} does not end with directory {app_dir.name!r}")
    return app_dir.with_name(new_name)


def bust_html(html: str, html_dir: Path) -> str:
    """
    Rename every bundle directory referenced by the resource roots of `html`
    to its content hash and return the HTML with updated resource roots.
    """
    start, end, raw = extract_json_attribute(html)
    try:
        roots = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CacheBustError("Resource roots attribute is not valid JSON") from e
    if not isinstance(roots, dict):
        raise CacheBustError("Resource roots attribute must be a JSON object")

    updated: dict[str, str] = {}
    for name, app_path in roots.items():
        app_dir = (html_dir / app_path).resolve()
        contents = bundle_contents(app_dir)
        if not contents:
            logger.debug("No bundle content for %s, keeping %s", name, app_path)
            updated[name] = app_path
            continue

        new_hash = hash_digest(b"".join(contents))
        hashed_dir = _hashed_directory(app_dir, app_path, new_hash)
        app_dir.rename(hashed_dir)
        logger.debug("Renamed %s -> %s", app_dir, hashed_dir)
        updated[name] = new_hash

    return html[:start] + json.dumps(updated, separators=(",", ":"), ensure_ascii=False) + html[end:]


def bust_file(html_path: str | Path) -> Path:
    """Cache bust an HTML entry file in place."""
    path = Path(html_path)
    if not path.is_file():
        raise CacheBustError(f"HTML entry does not exist: {path}")
    html = path.read_text(encoding="utf-8")
    path.write_text(bust_html(html, path.parent), encoding="utf-8")
    logger.info("Successfully cache busted %s", path)
    logger.info("Resources that have not changed will still be fetched from the browser cache.")
    return path
