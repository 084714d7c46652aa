"""
Tests for the install pipeline: DESTDIR handling, packaging and registration.
"""

from __future__ import annotations

import tarfile

import pytest

from lfspkg.buildsystem import BuildSystem
from lfspkg.db import Registry
from lfspkg.errors import HookFailure, NotBuilt
from lfspkg.installer import Installer, destdir_for
from lfspkg.pkgtool import ELF_MAGIC, find_elf_files, package_name, quickpkg, strip_binaries

from tests.test_buildsystem import NoNetworkFetcher, foo_recipe, seed_source


def built(cfg, ui, **overrides):
    r = foo_recipe(**overrides)
    seed_source(cfg, r)
    BuildSystem(cfg, ui, fetcher=NoNetworkFetcher(cfg, ui)).build(r)
    return r


class TestInstall:
    def test_not_built(self, cfg, ui):
        with pytest.raises(NotBuilt) as ei:
            Installer(cfg, ui).install(foo_recipe())
        assert "lfspkg build" in str(ei.value)
        assert not (cfg.pkg_root / "foo-1.0-1").exists()
        assert not cfg.registry_path.exists()

    def test_without_install_hook(self, cfg, ui):
        r = built(cfg, ui)
        res = Installer(cfg, ui).install(r)
        assert res.destdir == cfg.pkg_root / "foo-1.0-1"
        assert res.destdir.is_dir() and list(res.destdir.iterdir()) == []
        assert res.package == cfg.pkg_root / "foo-1.0.tar.xz"
        assert res.package.is_file()
        assert cfg.registry_path.read_text() == "foo 1.0 foo-1.0-1\n"

    def test_hook_writes_into_destdir(self, cfg, ui):
        r = built(cfg, ui, install='mkdir -p "$DESTDIR/usr/bin" && cp built "$DESTDIR/usr/bin/foo"')
        res = Installer(cfg, ui).install(r)
        assert (res.destdir / "usr" / "bin" / "foo").is_file()
        with tarfile.open(res.package, "r:xz") as tar:
            names = tar.getnames()
        assert "./usr/bin/foo" in names

    def test_install_hook_sees_recipe_fields(self, cfg, ui):
        r = built(cfg, ui, install='echo "$pkgver" > "$DESTDIR/$pkgdir.ver"')
        res = Installer(cfg, ui).install(r)
        assert (res.destdir / "foo-1.0-1.ver").read_text() == "1.0\n"

    def test_toolchain_skips_package(self, cfg, ui):
        r = built(cfg, ui, install='touch "$DESTDIR/x"')
        res = Installer(cfg, ui).install(r, toolchain=True)
        assert res.package is None
        assert not (cfg.pkg_root / "foo-1.0.tar.xz").exists()
        assert (res.destdir / "x").is_file()
        assert Registry(cfg.registry_path).find("foo") == ["foo 1.0 foo-1.0-1"]

    def test_toolchain_from_config(self, cfg, ui):
        r = built(cfg, ui)
        res = Installer(cfg.with_overrides(toolchain=True), ui).install(r)
        assert res.package is None

    def test_compression_setting(self, cfg, ui):
        r = built(cfg, ui)
        res = Installer(cfg.with_overrides(compression="gz"), ui).install(r)
        assert res.package == cfg.pkg_root / "foo-1.0.tar.gz"
        with tarfile.open(res.package, "r:gz") as tar:
            assert tar.getnames() == ["."]

    def test_reinstall_wipes_destdir_and_appends(self, cfg, ui):
        r = built(cfg, ui, install='touch "$DESTDIR/new"')
        stale = cfg.pkg_root / "foo-1.0-1" / "stale"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        inst = Installer(cfg, ui)
        inst.install(r)
        inst.install(r)
        assert not stale.exists()
        assert (destdir_for(cfg, r) / "new").is_file()
        assert Registry(cfg.registry_path).find("foo") == ["foo 1.0 foo-1.0-1"] * 2

    def test_hook_failure_not_registered(self, cfg, ui):
        r = built(cfg, ui, install="exit 1")
        with pytest.raises(HookFailure) as ei:
            Installer(cfg, ui).install(r)
        assert ei.value.stage == "install"
        assert not (cfg.pkg_root / "foo-1.0.tar.xz").exists()
        assert Registry(cfg.registry_path).list() == ["No packages installed"]

    def test_strip_failures_ignored(self, cfg, ui):
        r = built(cfg, ui, install='printf "\\177ELF" > "$DESTDIR/bin"')
        res = Installer(cfg.with_overrides(strip_command=("false",)), ui).install(r, strip=True)
        assert res.stripped == []
        assert res.package.is_file()
        assert Registry(cfg.registry_path).find("foo") == ["foo 1.0 foo-1.0-1"]


class TestPkgtool:
    def test_find_elf_by_content(self, tmp_path):
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "libx.so").write_bytes(ELF_MAGIC + b"\0" * 12)
        (tmp_path / "script.sh").write_text("#!/bin/sh\n")
        (tmp_path / "link").symlink_to(tmp_path / "lib" / "libx.so")
        assert find_elf_files(tmp_path) == [tmp_path / "lib" / "libx.so"]

    def test_strip_binaries(self, tmp_path):
        elf = tmp_path / "prog"
        elf.write_bytes(ELF_MAGIC + b"\0" * 12)
        assert strip_binaries(tmp_path, ("true",)) == [elf]
        assert strip_binaries(tmp_path, ("false",)) == []
        assert strip_binaries(tmp_path, ("lfspkg-no-such-strip",)) == []

    def test_package_name(self):
        assert package_name("foo", "1.0") == "foo-1.0.tar.xz"
        assert package_name("foo", "1.0", "bz2") == "foo-1.0.tar.bz2"

    def test_quickpkg_roots_at_dot(self, tmp_path):
        dest = tmp_path / "dest"
        (dest / "etc").mkdir(parents=True)
        (dest / "etc" / "foo.conf").write_text("x=1\n")
        out = quickpkg(dest, tmp_path / "out" / "foo-1.0.tar.bz2", "bz2")
        with tarfile.open(out, "r:bz2") as tar:
            assert sorted(tar.getnames()) == [".", "./etc", "./etc/foo.conf"]
        assert not (tmp_path / "out" / "foo-1.0.tar.bz2.tmp").exists()


class TestDestdirSymlink:
    def test_symlinked_destdir_replaced_not_followed(self, cfg, ui, tmp_path):
        r = built(cfg, ui, install='touch "$DESTDIR/new"')
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        (elsewhere / "keep").write_text("mine")
        cfg.pkg_root.mkdir(parents=True, exist_ok=True)
        (cfg.pkg_root / "foo-1.0-1").symlink_to(elsewhere)
        res = Installer(cfg, ui).install(r)
        assert not res.destdir.is_symlink()
        assert (res.destdir / "new").is_file()
        assert (elsewhere / "keep").read_text() == "mine"
