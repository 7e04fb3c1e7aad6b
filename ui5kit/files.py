"""
files.py

Responsibility: Deterministic file enumeration and copying shared by the build steps.

Rules:
- Walk directories in sorted order to ensure deterministic output.
- Text files may be transformed on the way; binary files are copied byte-for-byte.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, Iterable


def is_binary_file(path: Path) -> bool:
    """
    Best-effort: treat a file as binary if it cannot be decoded as UTF-8.
    """
    try:
        path.read_text(encoding="utf-8")
        return False
    except UnicodeDecodeError:
        return True


def iter_files(root: Path) -> list[Path]:
    """
    Return all files under root, in deterministic lexicographic order
    (relative path ordering). A missing root yields no files.
    """
    files: list[Path] = []
    for dirpath, _dirs, filenames in os.walk(root):
        base = Path(dirpath)
        for name in filenames:
            files.append(base / name)
    files.sort(key=lambda p: p.relative_to(root).as_posix())
    return files


def sorted_subdirs(root: Path, prefix: str) -> list[Path]:
    return sorted(
        (p for p in root.iterdir() if p.is_dir() and p.name.startswith(prefix)),
        key=lambda p: p.name,
    )


def copy_file(
    src: Path,
    dst: Path,
    transform: Callable[[str], str] | None = None,
) -> None:
    """
    Copy src to dst, creating parent directories. With a transform, text content
    is rewritten through it (UTF-8, `\\n` newlines); otherwise bytes are copied.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    if transform is None or is_binary_file(src):
        shutil.copy2(src, dst)
        return
    dst.write_text(transform(src.read_text(encoding="utf-8")), encoding="utf-8", newline="\n")
    shutil.copystat(src, dst)


def matching(files: Iterable[Path], *suffixes: str) -> list[Path]:
    return [p for p in files if p.name.endswith(suffixes)]
