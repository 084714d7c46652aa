# lfspkg/pkgtool.py
"""
pkgtool.py - post-install processing of a destination root

Features:
- strip_binaries: find ELF files by content (magic bytes) and strip them;
  best-effort, failures are logged and ignored
- quickpkg: archive the destination root contents into <name>-<ver>.tar.<ext>
  (xz, gz or bz2), with '.' as the archive root
"""

from __future__ import annotations

import os
import subprocess
import tarfile
from pathlib import Path
from typing import List, Sequence

from lfspkg.logging import get_logger

logger = get_logger("pkgtool")

ELF_MAGIC = b"\x7fELF"


# -----------------------------
# Strip
# -----------------------------
def is_elf(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            return f.read(4) == ELF_MAGIC
    except OSError:
        return False


def find_elf_files(root: Path) -> List[Path]:
    found: List[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for fn in filenames:
            p = Path(dirpath) / fn
            if p.is_symlink() or not p.is_file():
                continue
            if is_elf(p):
                found.append(p)
    return sorted(found)


def strip_binaries(root: Path, strip_command: Sequence[str] = ("strip", "--strip-unneeded")) -> List[Path]:
    """Strip every ELF file under root; returns the files strip succeeded on."""
    stripped: List[Path] = []
    for p in find_elf_files(root):
        try:
            proc = subprocess.run(list(strip_command) + [str(p)], stdout=subprocess.PIPE,
                                  stderr=subprocess.STDOUT, text=True)
        except OSError as e:
            logger.debug("strip: cannot run %s: %s", strip_command[0], e)
            break
        if proc.returncode == 0:
            stripped.append(p)
        else:
            logger.debug("strip: %s failed: %s", p, proc.stdout.strip())
    logger.info("stripped %d file(s) under %s", len(stripped), root)
    return stripped


# -----------------------------
# Packaging
# -----------------------------
def package_name(pkgname: str, pkgver: str, compression: str = "xz") -> str:
    return f"{pkgname}-{pkgver}.tar.{compression}"


def quickpkg(destdir: Path, out_path: Path, compression: str = "xz") -> Path:
    """Archive the contents of destdir into out_path (like tar -C destdir -c .)."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_name(out_path.name + ".tmp")
    try:
        with tarfile.open(tmp, f"w:{compression}") as tar:
            tar.add(str(destdir), arcname=".")
        os.replace(tmp, out_path)
    except BaseException:
        if tmp.exists():
            tmp.unlink()
        raise
    logger.info("package created: %s", out_path)
    return out_path
