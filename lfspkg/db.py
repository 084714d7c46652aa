# lfspkg/db.py
"""
Package registry: a flat, append-only log with one line per installation::

    <pkgname> <pkgver> <pkgdir>

Names are not unique. Reinstalling appends another line; remove() deletes
every line whose first field equals the name. There is no locking: the tool
assumes one operator on one machine.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, NamedTuple, Optional, Union

from lfspkg.logging import get_logger

logger = get_logger("db")

NONE_INSTALLED = "No packages installed"


class RegistryEntry(NamedTuple):
    pkgname: str
    pkgver: str
    pkgdir: str

    def to_line(self) -> str:
        return f"{self.pkgname} {self.pkgver} {self.pkgdir}"

    @classmethod
    def from_line(cls, line: str) -> Optional["RegistryEntry"]:
        parts = line.split()
        if len(parts) < 3:
            return None
        return cls(parts[0], parts[1], parts[2])


def _first_field(line: str) -> str:
    parts = line.split(None, 1)
    return parts[0] if parts else ""


class Registry:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_lines(self) -> List[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f]
        except FileNotFoundError:
            return []

    def append(self, pkgname: str, pkgver: str, pkgdir: str) -> RegistryEntry:
        entry = RegistryEntry(pkgname, pkgver, pkgdir)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(entry.to_line() + "\n")
        logger.info("registered %s", entry.to_line())
        return entry

    def remove(self, name: str) -> int:
        """Delete every line whose first field is name; returns how many were removed."""
        if not self.path.exists():
            return 0
        lines = self._read_lines()
        keep = [line for line in lines if _first_field(line) != name]
        removed = len(lines) - len(keep)
        if removed == 0:
            return 0
        fd, tmp = tempfile.mkstemp(prefix=".installed.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in keep)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.info("unregistered %d entr%s for %s", removed, "y" if removed == 1 else "ies", name)
        return removed

    def lines(self) -> List[str]:
        return [line for line in self._read_lines() if line.strip()]

    def matching(self, name: str) -> List[str]:
        return [line for line in self.lines() if _first_field(line) == name]

    def list(self) -> List[str]:
        """All lines verbatim, or a one-line placeholder when nothing is registered."""
        return self.lines() or [NONE_INSTALLED]

    def find(self, name: str) -> List[str]:
        """Lines registered for name, or a one-line placeholder."""
        return self.matching(name) or [f"{name} is not installed"]

    def entries(self) -> List[RegistryEntry]:
        out = []
        for line in self.lines():
            entry = RegistryEntry.from_line(line)
            if entry is not None:
                out.append(entry)
        return out

    def lookup(self, name: str) -> List[RegistryEntry]:
        return [e for e in self.entries() if e.pkgname == name]
