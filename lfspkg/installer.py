# lfspkg/installer.py
"""
Install pipeline: turns an existing build into an installed, optionally
packaged, registered package.

  1. wipe and recreate pkg/<pkgdir> (the destination root, DESTDIR)
  2. run the install hook in the working directory under fakeroot
  3. strip ELF files (best-effort) unless disabled
  4. archive DESTDIR into pkg/<pkgname>-<pkgver>.tar.<ext> unless toolchain mode
  5. append "<pkgname> <pkgver> <pkgdir>" to the registry

install() never builds. Without a working directory it raises NotBuilt and
leaves the destination root alone. Any failure in steps 2 and 4 aborts before
registration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from lfspkg.buildsystem import build_log_for, ensure_dirs, wipe, workdir_for
from lfspkg.config import Config
from lfspkg.db import Registry, RegistryEntry
from lfspkg.errors import NotBuilt
from lfspkg.logging import get_logger
from lfspkg.pkgtool import package_name, quickpkg, strip_binaries
from lfspkg.recipe import Recipe
from lfspkg.shell import hook_env, resolve_wrapper, run_shell
from lfspkg.ui import UI

logger = get_logger("installer")


@dataclass
class InstallResult:
    destdir: Path
    package: Optional[Path]
    entry: RegistryEntry
    stripped: List[Path] = field(default_factory=list)


def destdir_for(config: Config, recipe: Recipe) -> Path:
    return config.pkg_root / recipe.pkgdir


class Installer:
    def __init__(self, config: Config, ui: Optional[UI] = None, registry: Optional[Registry] = None):
        self.config = config
        self.ui = ui or UI.from_config(config)
        self.registry = registry or Registry(config.registry_path)

    def prepare_destdir(self, recipe: Recipe) -> Path:
        destdir = destdir_for(self.config, recipe)
        wipe(destdir)
        destdir.mkdir(parents=True)
        return destdir

    def run_install_hook(self, recipe: Recipe, work: Path, destdir: Path):
        fragment = recipe.hook("install")
        if not fragment:
            logger.info("%s has no install hook; %s stays empty", recipe.name_ver, destdir)
            return
        self.ui.msg(f"install: {recipe.name_ver} -> {destdir}")
        env = hook_env(self.config, recipe.pkgname, recipe.pkgver, work, destdir=destdir, pkgdir=recipe.pkgdir)
        run_shell(fragment, work, env, stage="install", shell=self.config.shell,
                  wrapper=resolve_wrapper(self.config.fakeroot), logfile=build_log_for(self.config, recipe))

    def install(self, recipe: Recipe, strip: Optional[bool] = None, toolchain: Optional[bool] = None) -> InstallResult:
        recipe.validate()
        strip = self.config.strip if strip is None else strip
        toolchain = self.config.toolchain if toolchain is None else toolchain

        work = workdir_for(self.config, recipe)
        if not work.is_dir():
            raise NotBuilt(recipe.pkgname, recipe.pkgver)
        ensure_dirs(self.config)

        destdir = self.prepare_destdir(recipe)
        self.run_install_hook(recipe, work, destdir)

        stripped: List[Path] = []
        if strip:
            stripped = strip_binaries(destdir, self.config.strip_command)

        package = None
        if not toolchain:
            out = self.config.pkg_root / package_name(recipe.pkgname, recipe.pkgver, self.config.compression)
            package = quickpkg(destdir, out, self.config.compression)
            self.ui.ok(f"Package created: {package}")
        else:
            logger.info("toolchain mode: leaving %s unpackaged", destdir)

        entry = self.registry.append(recipe.pkgname, recipe.pkgver, recipe.pkgdir)
        return InstallResult(destdir=destdir, package=package, entry=entry, stripped=stripped)
