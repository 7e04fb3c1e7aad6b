"""
download.py

Responsibility: Isolate the download of the OpenUI5 source archive.

This module must be the only place that:
- Sends HTTP requests for framework archives
- Unpacks downloaded archives

A download that fails for any reason aborts the build; retries are left to the
caller.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import Callable

import requests

logger = logging.getLogger("ui5kit.download")

CHUNK_SIZE = 1 << 16

# (step, total steps, detail)
DownloadProgress = Callable[[int, int, str], None]


class DownloadError(RuntimeError):
    pass


def _fetch(url: str, destination: Path, on_progress: DownloadProgress | None, timeout: float) -> None:
    try:
        with requests.get(url, stream=True, timeout=timeout, headers={"User-Agent": "ui5kit"}) as r:
            if r.status_code >= 400:
                raise DownloadError(f"Download failed with HTTP {r.status_code}: {url}")
            total = int(r.headers.get("Content-Length") or 0)
            received = 0
            with destination.open("wb") as fh:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    fh.write(chunk)
                    received += len(chunk)
                    if on_progress is not None:
                        percent = f"{received * 100 // total}%" if total else f"{received} bytes"
                        on_progress(1, 2, f"download {percent}")
    except requests.RequestException as e:
        raise DownloadError(f"Download failed: {url}") from e


def _extract(archive: Path, destination: Path) -> None:
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    except zipfile.BadZipFile as e:
        raise DownloadError(f"Downloaded file is not a zip archive: {archive}") from e


def download_archive(
    url: str,
    download_dir: str | Path,
    version: str,
    *,
    on_progress: DownloadProgress | None = None,
    timeout: float = 60.0,
) -> Path:
    """
    Download the archive at `url` and unzip it into `<download_dir>/<version>`.

    Nothing is downloaded when that directory already exists.
    """
    if not url:
        raise DownloadError("No download URL provided")
    if not version:
        raise DownloadError("No UI5 version provided")

    target = Path(download_dir) / version
    if target.exists():
        logger.info("Download of UI5 %s skipped, directory %s already exists", version, target)
        return target

    started = time.monotonic()
    logger.info("Starting download of UI5 %s ... (unzip can take a couple of minutes)", version)
    target.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(dir=target.parent) as tmp:
        archive = Path(tmp) / f"{version}.zip"
        _fetch(url, archive, on_progress, timeout)
        if on_progress is not None:
            on_progress(2, 2, "unzip")
        extracted = Path(tmp) / "extracted"
        _extract(archive, extracted)
        shutil.move(str(extracted), str(target))

    logger.info("Finished download of UI5 %s after %.1f s (available at %s)", version, time.monotonic() - started, target)
    return target
