"""
compress.py

Responsibility: Pre-compress text resources of the distribution with gzip and
brotli so a static server can deliver `.gz` / `.br` siblings directly.
"""

from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import Callable, Iterable

import brotli

from ui5kit.files import iter_files

logger = logging.getLogger("ui5kit.compress")

COMPRESSIBLE_SUFFIXES = (".js", ".css", ".html", ".svg", ".xml", ".json", ".txt", ".properties")


def _precompress(root: Path, suffixes: Iterable[str], extension: str, compress: Callable[[bytes], bytes]) -> int:
    """
    Write `<file><extension>` next to every matching file below root.

    Files whose compressed form would not be smaller are skipped. Returns the
    number of files written.
    """
    wanted = tuple(suffixes)
    written = 0
    for path in iter_files(root):
        if not path.name.endswith(wanted):
            continue
        raw = path.read_bytes()
        packed = compress(raw)
        if len(packed) >= len(raw):
            continue
        path.with_name(path.name + extension).write_bytes(packed)
        written += 1
    logger.debug("Pre-compressed %d file(s) below %s (%s)", written, root, extension)
    return written


def gzip_tree(root: Path, suffixes: Iterable[str] = COMPRESSIBLE_SUFFIXES) -> int:
    return _precompress(root, suffixes, ".gz", lambda raw: gzip.compress(raw, compresslevel=9, mtime=0))


def brotli_tree(root: Path, suffixes: Iterable[str] = COMPRESSIBLE_SUFFIXES) -> int:
    return _precompress(root, suffixes, ".br", lambda raw: brotli.compress(raw, quality=11))
