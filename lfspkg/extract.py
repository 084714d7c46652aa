# lfspkg/extract.py
"""
Archive extraction, dispatched purely on the file name suffix.

Recognized suffixes, checked in this order (first match wins):
.tar.gz/.tgz, .tar.bz2, .tar.xz, .tar, .zip, .7z
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from lfspkg.errors import ExtractFailure, UnsupportedFormat
from lfspkg.logging import get_logger

logger = get_logger("extract")

# (suffixes, kind, tarfile mode)
FORMATS: Tuple[Tuple[Tuple[str, ...], str, Optional[str]], ...] = (
    ((".tar.gz", ".tgz"), "tar", "r:gz"),
    ((".tar.bz2",), "tar", "r:bz2"),
    ((".tar.xz",), "tar", "r:xz"),
    ((".tar",), "tar", "r:*"),  # compression auto-detected, like tar -xf
    ((".zip",), "zip", None),
    ((".7z",), "7z", None),
)


def archive_suffix(name: str) -> Optional[str]:
    """The recognized suffix of name, or None."""
    lower = name.lower()
    for suffixes, _kind, _mode in FORMATS:
        for s in suffixes:
            if lower.endswith(s):
                return s
    return None


def _check_members(names: Iterable[str], dest: Path):
    root = os.path.realpath(dest)
    for name in names:
        target = os.path.realpath(os.path.join(root, name))
        if target != root and not target.startswith(root + os.sep):
            raise ExtractFailure(f"archive member escapes destination: {name}")


def _extract_tar(archive: Path, dest: Path, mode: str):
    try:
        with tarfile.open(archive, mode) as tar:
            members = tar.getmembers()
            _check_members((m.name for m in members), dest)
            _check_members((m.linkname for m in members if m.islnk()), dest)
            if hasattr(tarfile, "tar_filter"):
                tar.extractall(dest, filter="tar")
            else:
                tar.extractall(dest)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractFailure(f"cannot extract {archive}: {e}")


def _extract_zip(archive: Path, dest: Path):
    try:
        with zipfile.ZipFile(archive) as z:
            _check_members(z.namelist(), dest)
            for info in z.infolist():
                path = z.extract(info, dest)
                # zipfile drops the unix mode kept in the high bits of external_attr
                mode = (info.external_attr >> 16) & 0o7777
                if mode and not info.is_dir():
                    os.chmod(path, mode)
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractFailure(f"cannot extract {archive}: {e}")


def _extract_7z(archive: Path, dest: Path):
    if shutil.which("7z") is None:
        raise ExtractFailure("7z is required to extract .7z archives")
    proc = subprocess.run(["7z", "x", "-y", str(archive), f"-o{dest}"], stdout=subprocess.PIPE,
                          stderr=subprocess.STDOUT, text=True)
    if proc.returncode != 0:
        logger.debug("7z output: %s", proc.stdout)
        raise ExtractFailure(f"7z failed on {archive} (exit {proc.returncode})")


def extract(archive: Union[str, Path], dest: Union[str, Path]) -> Path:
    """Extract archive into dest (created if absent). Multi-root archives are kept as-is."""
    archive = Path(archive)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    lower = archive.name.lower()
    for suffixes, kind, mode in FORMATS:
        if not lower.endswith(suffixes):
            continue
        logger.info("extracting %s into %s", archive, dest)
        if kind == "tar":
            _extract_tar(archive, dest, mode)
        elif kind == "zip":
            _extract_zip(archive, dest)
        else:
            _extract_7z(archive, dest)
        return dest
    raise UnsupportedFormat(f"unsupported archive format: {archive.name}")
