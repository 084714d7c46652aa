# lfspkg/remove.py
"""
remove command: unregister a package name and delete what it left under the
package root (its pkgdir directories and its package archives).

Matching is anchored on the name: "foo" removes "foo", registered pkgdirs,
and entries starting with "foo-<digit>" or "foo-<registered version>"
(e.g. "foo-1.0-1", "foo-1.0.tar.xz"), never "foobar..." or "foo-utils".
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Set

from lfspkg.buildsystem import wipe
from lfspkg.config import Config
from lfspkg.db import Registry
from lfspkg.errors import LfspkgError
from lfspkg.logging import get_logger

logger = get_logger("remove")


def _candidate_paths(config: Config, name: str, pkgdirs: Set[str], versions: Set[str]) -> List[Path]:
    root = config.pkg_root
    if not root.is_dir():
        return []
    versioned = re.compile(re.escape(name) + r"-\d")
    wanted: List[Path] = []
    for entry in sorted(root.iterdir()):
        n = entry.name
        if n == name or n in pkgdirs or versioned.match(n):
            wanted.append(entry)
        elif any(n.startswith(f"{name}-{v}") for v in versions):
            wanted.append(entry)
    return wanted


def remove_package(config: Config, name: str, registry: Optional[Registry] = None) -> List[Path]:
    """Unregister name and delete its package-root paths; returns the deleted paths."""
    if not name or "/" in name or name in (".", ".."):
        raise LfspkgError(f"invalid package name '{name}'")
    registry = registry or Registry(config.registry_path)
    entries = registry.lookup(name)
    registry.remove(name)

    pkgdirs = {e.pkgdir for e in entries if "/" not in e.pkgdir and e.pkgdir not in (".", "..")}
    versions = {e.pkgver for e in entries}
    removed: List[Path] = []
    for p in _candidate_paths(config, name, pkgdirs, versions):
        wipe(p)
        logger.info("removed %s", p)
        removed.append(p)
    return removed
