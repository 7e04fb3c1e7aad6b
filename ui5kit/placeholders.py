"""
placeholders.py

Responsibility: Substitute placeholder tokens (e.g. the copyright banner) in
text and files. Each rule replaces the first occurrence of its identifier only.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

COPYRIGHT_PLACEHOLDER = "${copyright}"

Rule = tuple[str, str]


def copyright_banner(version: str, build_time: str) -> str:
    return (
        "UI development toolkit for HTML5 (OpenUI5)\n"
        " * (c) Copyright 2009-2017 SAP SE or an SAP affiliate company.\n"
        " * Licensed under the Apache License, Version 2.0 - see LICENSE.txt.\n"
        f" * Custom build of OpenUI5 Version {version}, Buildtime {build_time}."
    )


def replace_placeholders(text: str, rules: Iterable[Rule]) -> str:
    for identifier, content in rules:
        text = text.replace(identifier, content, 1)
    return text


def replace_file_placeholders(path: Path, rules: Iterable[Rule]) -> None:
    text = path.read_text(encoding="utf-8")
    updated = replace_placeholders(text, rules)
    if updated != text:
        path.write_text(updated, encoding="utf-8", newline="\n")
