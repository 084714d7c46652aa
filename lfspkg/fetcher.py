# lfspkg/fetcher.py
"""
fetcher.py - source retrieval for lfspkg

Features:
- git sources (git://, git+https://, git@host:...) are cloned with the git client
- file:// URLs and absolute local paths are copied
- ftp:// URLs are downloaded with urllib, everything else with requests,
  both in a worker thread while the spinner runs; the worker is joined
  before fetch() returns
- md5 verification is a separate step (verify), run by the caller after a
  direct download
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
import subprocess
import urllib.request
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import unquote, urlparse

import requests

from lfspkg.config import Config
from lfspkg.errors import ChecksumMismatch, FetchFailure
from lfspkg.logging import get_logger
from lfspkg.ui import UI

logger = get_logger("fetcher")

VCS_RE = re.compile(r"^(git(\+[A-Za-z0-9]+)?://|git@[^:]+:)")


# -----------------------------------------------------------------------
# Utility helpers
# -----------------------------------------------------------------------
def is_vcs(locator: str) -> bool:
    return bool(VCS_RE.match(locator or ""))


def _vcs_url(locator: str) -> str:
    if locator.startswith("git+"):
        return locator[len("git+"):]
    return locator


def _local_path(locator: str) -> Optional[Path]:
    if locator.startswith("file://"):
        return Path(unquote(urlparse(locator).path))
    if "://" not in locator and os.path.isabs(locator):
        return Path(locator)
    return None


def md5_of_file(path: Union[str, Path]) -> str:
    h = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _write_chunks(path: Path, chunks: Iterable[bytes]):
    with open(path, "wb") as f:
        for chunk in chunks:
            if chunk:
                f.write(chunk)


def verify(path: Union[str, Path], expected_md5: str) -> str:
    """Check path against expected_md5 (hex, case-insensitive); raise ChecksumMismatch."""
    actual = md5_of_file(path)
    if actual != expected_md5.strip().lower():
        raise ChecksumMismatch(str(path), expected_md5.strip(), actual)
    logger.info("md5 verified for %s", path)
    return actual


# -----------------------------------------------------------------------
# Fetcher
# -----------------------------------------------------------------------
class Fetcher:
    def __init__(self, config: Config, ui: Optional[UI] = None):
        self.config = config
        self.ui = ui or UI.from_config(config)

    def fetch(self, locator: str, dest: Path) -> Path:
        """Retrieve locator into dest (a directory for git sources, a file otherwise)."""
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if is_vcs(locator):
            self.ui.msg(f"Cloning repository: {locator}")
            self._fetch_git(_vcs_url(locator), dest)
            return dest
        local = _local_path(locator)
        if local is not None:
            self.ui.msg(f"Copying: {local}")
            self._fetch_local(local, dest)
            return dest
        self.ui.msg(f"Downloading: {locator}")
        self.ui.run_with_spinner(self._fetch_http, args=[locator, dest], text=f"downloading {dest.name}")
        return dest

    def _fetch_git(self, url: str, dest: Path):
        try:
            proc = subprocess.run(["git", "clone", url, str(dest)], stdout=subprocess.PIPE,
                                  stderr=subprocess.PIPE, text=True)
        except OSError as e:
            raise FetchFailure(f"cannot run git: {e}")
        if proc.returncode != 0:
            logger.debug("git clone output: %s", proc.stderr)
            raise FetchFailure(f"git clone of {url} failed: {proc.stderr.strip()}")

    def _fetch_local(self, src: Path, dest: Path):
        if not src.is_file():
            raise FetchFailure(f"local source not found: {src}")
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            raise FetchFailure(f"cannot copy {src}: {e}")

    def _fetch_http(self, url: str, dest: Path):
        tmp = dest.with_name(dest.name + ".part")
        try:
            if urlparse(url).scheme.lower() == "ftp":
                # requests has no ftp adapter
                with urllib.request.urlopen(url, timeout=self.config.fetch_timeout) as resp:
                    _write_chunks(tmp, iter(lambda: resp.read(self.config.chunk_size), b""))
            else:
                with requests.get(url, stream=True, timeout=self.config.fetch_timeout) as resp:
                    resp.raise_for_status()
                    _write_chunks(tmp, resp.iter_content(chunk_size=self.config.chunk_size))
            os.replace(tmp, dest)
        except (requests.RequestException, OSError) as e:
            if tmp.exists():
                tmp.unlink()
            raise FetchFailure(f"download of {url} failed: {e}")
        logger.info("downloaded %s (%d bytes)", url, dest.stat().st_size)
