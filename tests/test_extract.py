"""
Tests for suffix-dispatched archive extraction.
"""

from __future__ import annotations

import io
import os
import tarfile
import zipfile
from pathlib import Path

import pytest

from lfspkg.errors import ExtractFailure, UnsupportedFormat
from lfspkg.extract import archive_suffix, extract

from tests.conftest import make_tarball


@pytest.mark.parametrize("name,mode", [
    ("foo-1.0.tar.gz", "w:gz"),
    ("foo-1.0.tgz", "w:gz"),
    ("foo-1.0.tar.bz2", "w:bz2"),
    ("foo-1.0.tar.xz", "w:xz"),
    ("foo-1.0.tar", "w"),
])
def test_tar_variants(tmp_path: Path, name, mode):
    archive = make_tarball(tmp_path / name, "foo-1.0", {"README": "hello"}, mode=mode)
    dest = tmp_path / "out"
    extract(archive, dest)
    assert (dest / "foo-1.0" / "README").read_text() == "hello"


def test_plain_tar_suffix_detects_compression(tmp_path: Path):
    archive = make_tarball(tmp_path / "foo-1.0.tar", "foo-1.0", {"a": "1"}, mode="w:gz")
    extract(archive, tmp_path / "out")
    assert (tmp_path / "out" / "foo-1.0" / "a").exists()


def test_zip(tmp_path: Path):
    archive = tmp_path / "foo-1.0.zip"
    with zipfile.ZipFile(archive, "w") as z:
        z.writestr("foo-1.0/main.c", "int main(){}")
    extract(archive, tmp_path / "out")
    assert (tmp_path / "out" / "foo-1.0" / "main.c").read_text() == "int main(){}"


def test_multi_root_kept_as_is(tmp_path: Path):
    archive = make_tarball(tmp_path / "multi.tar.gz", "", {"a.txt": "a", "b/c.txt": "c"})
    dest = tmp_path / "out"
    extract(archive, dest)
    assert sorted(p.name for p in dest.iterdir()) == ["a.txt", "b"]


@pytest.mark.parametrize("name", ["foo-1.0.rar", "foo-1.0.tar.zst", "foo", "foo.gz"])
def test_unsupported_only_creates_dest(tmp_path: Path, name):
    archive = tmp_path / name
    archive.write_bytes(b"data")
    dest = tmp_path / "out"
    with pytest.raises(UnsupportedFormat):
        extract(archive, dest)
    assert dest.is_dir()
    assert list(dest.iterdir()) == []


def test_corrupt_archive(tmp_path: Path):
    archive = tmp_path / "foo-1.0.tar.gz"
    archive.write_bytes(b"not a tarball")
    with pytest.raises(ExtractFailure):
        extract(archive, tmp_path / "out")


def test_member_escaping_dest_rejected(tmp_path: Path):
    archive = tmp_path / "evil.tar"
    with tarfile.open(archive, "w") as tar:
        info = tarfile.TarInfo("../escaped.txt")
        info.size = 1
        tar.addfile(info, io.BytesIO(b"x"))
    with pytest.raises(ExtractFailure):
        extract(archive, tmp_path / "out")
    assert not (tmp_path / "escaped.txt").exists()


@pytest.mark.parametrize("name,suffix", [
    ("a.tar.gz", ".tar.gz"),
    ("a.TGZ", ".tgz"),
    ("a.tar.bz2", ".tar.bz2"),
    ("a.tar.xz", ".tar.xz"),
    ("a.tar", ".tar"),
    ("a.zip", ".zip"),
    ("a.7z", ".7z"),
    ("a.tar.zst", None),
])
def test_archive_suffix(name, suffix):
    assert archive_suffix(name) == suffix


def test_zip_keeps_unix_modes(tmp_path: Path):
    archive = tmp_path / "foo-1.0.zip"
    with zipfile.ZipFile(archive, "w") as z:
        script = zipfile.ZipInfo("foo-1.0/configure")
        script.external_attr = (0o100755 << 16)
        z.writestr(script, "#!/bin/sh\necho configured > configured\n")
        z.writestr("foo-1.0/README", "plain")
    extract(archive, tmp_path / "out")
    assert (tmp_path / "out" / "foo-1.0" / "configure").stat().st_mode & 0o777 == 0o755
    assert os.access(tmp_path / "out" / "foo-1.0" / "configure", os.X_OK)
