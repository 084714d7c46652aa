"""
Shared test fixtures and helpers.
"""

from __future__ import annotations

import hashlib
import io
import logging
import tarfile
from pathlib import Path
from typing import Dict

import pytest

from lfspkg.config import Config, from_dict
from lfspkg.ui import UI


def make_tarball(path: Path, topdir: str, files: Dict[str, str], mode: str = "w:gz") -> Path:
    """Write a tar archive whose members live under topdir/."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode) as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{topdir}/{name}" if topdir else name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


def md5(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()


def write_recipe(path: Path, **fields: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{k}=[{v}]\n" for k, v in fields.items()), encoding="utf-8")
    return path


TEST_SETTINGS = {
    "build": {"jobs": 2, "shell": "sh"},
    "install": {"fakeroot": "", "strip": False},
    "logging": {"color": False, "file": None},
    "ui": {"spinner": False},
}


@pytest.fixture
def root(tmp_path: Path) -> Path:
    r = tmp_path / "root"
    r.mkdir()
    return r


@pytest.fixture
def cfg(root: Path) -> Config:
    return from_dict(TEST_SETTINGS, root=root)


@pytest.fixture
def ui() -> UI:
    return UI(color=False, spinner=False)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Keep the user's config and environment out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("LFSPKG_CONFIG", raising=False)
    monkeypatch.delenv("LFSPKG_ROOT", raising=False)
    yield
    lg = logging.getLogger("lfspkg")
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()
    lg.propagate = True
