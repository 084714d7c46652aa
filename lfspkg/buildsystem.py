# lfspkg/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - build pipeline of lfspkg

API:
  bs = BuildSystem(config)
  workdir = bs.build(recipe)

Stages, in order:
  1. ensure build/log/package/source directories
  2. fetch the source unless cached, verify md5 after a direct download
  3. wipe build/<pkgname>-<pkgver> and extract the source into build/
  4. fetch, verify and apply the optional patch (patch -p1)
  5. preconfig, prepare and build hooks, each only if set

Every build is a clean build: the working directory is always recreated.
A cached source archive is reused as-is (no md5 re-check on a cache hit).
Nothing is installed here; see installer.py.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Optional

from lfspkg.config import Config
from lfspkg.errors import PatchFailure
from lfspkg.extract import archive_suffix, extract
from lfspkg.fetcher import Fetcher, is_vcs, verify
from lfspkg.logging import get_logger
from lfspkg.recipe import Recipe
from lfspkg.shell import hook_env, run_shell
from lfspkg.ui import UI

logger = get_logger("buildsystem")

BUILD_STAGES = ("preconfig", "prepare", "build")


# --- path helpers ---
def workdir_for(config: Config, recipe: Recipe) -> Path:
    return config.build_root / recipe.name_ver


def source_path_for(config: Config, recipe: Recipe) -> Path:
    """Cache location of the recipe's source: a clone directory or <name>-<ver><suffix>."""
    if is_vcs(recipe.pkgurl):
        return config.src_root / recipe.name_ver
    basename = recipe.pkgurl.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    suffix = archive_suffix(basename) or ".tar"
    return config.src_root / f"{recipe.name_ver}{suffix}"


def patch_path_for(config: Config, recipe: Recipe) -> Path:
    return config.src_root / f"{recipe.name_ver}.patch"


def build_log_for(config: Config, recipe: Recipe) -> Path:
    return config.log_root / f"{recipe.name_ver}.log"


def wipe(path: Path):
    """Remove path whatever it is; a symlink is unlinked, never followed."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def ensure_dirs(config: Config):
    for d in config.standard_dirs():
        d.mkdir(parents=True, exist_ok=True)


def apply_patch(patch_file: Path, workdir: Path):
    if not workdir.is_dir():
        raise PatchFailure(f"working directory {workdir} does not exist")
    try:
        proc = subprocess.run(["patch", "-p1", "-i", str(patch_file)], cwd=str(workdir), stdin=subprocess.DEVNULL,
                              stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
    except OSError as e:
        raise PatchFailure(f"cannot run patch: {e}")
    if proc.returncode != 0:
        logger.debug("patch output: %s", proc.stdout)
        raise PatchFailure(f"patch {patch_file.name} failed (exit {proc.returncode}): {proc.stdout.strip()}")
    logger.info("applied patch %s", patch_file.name)


# --- main BuildSystem class ---
class BuildSystem:
    def __init__(self, config: Config, ui: Optional[UI] = None, fetcher: Optional[Fetcher] = None):
        self.config = config
        self.ui = ui or UI.from_config(config)
        self.fetcher = fetcher or Fetcher(config, self.ui)

    def fetch_source(self, recipe: Recipe) -> Path:
        src = source_path_for(self.config, recipe)
        if src.exists():
            logger.info("using cached source %s", src)
            return src
        self.fetcher.fetch(recipe.pkgurl, src)
        if not is_vcs(recipe.pkgurl):
            verify(src, recipe.md5sum)
        return src

    def unpack(self, recipe: Recipe, src: Path) -> Path:
        work = workdir_for(self.config, recipe)
        if work.exists() or work.is_symlink():
            logger.info("removing previous working directory %s", work)
            wipe(work)
        if src.is_dir():
            shutil.copytree(src, work, symlinks=True)
        else:
            extract(src, self.config.build_root)
        if not work.is_dir():
            logger.warning("archive %s did not create %s; hooks will fail", src.name, work)
            self.ui.warn(f"{src.name} did not unpack to {work.name}/")
        return work

    def patch(self, recipe: Recipe, work: Path):
        patch_file = patch_path_for(self.config, recipe)
        self.fetcher.fetch(recipe.patchurl, patch_file)
        verify(patch_file, recipe.patchmd5)
        apply_patch(patch_file, work)

    def run_hooks(self, recipe: Recipe, work: Path):
        env = hook_env(self.config, recipe.pkgname, recipe.pkgver, work, pkgdir=recipe.pkgdir)
        logfile = build_log_for(self.config, recipe)
        for stage in BUILD_STAGES:
            fragment = recipe.hook(stage)
            if not fragment:
                continue
            self.ui.msg(f"{stage}: {recipe.name_ver}")
            run_shell(fragment, work, env, stage=stage, shell=self.config.shell, logfile=logfile)

    def build(self, recipe: Recipe) -> Path:
        recipe.validate()
        ensure_dirs(self.config)
        src = self.fetch_source(recipe)
        work = self.unpack(recipe, src)
        if recipe.patchurl:
            self.patch(recipe, work)
        self.run_hooks(recipe, work)
        logger.info("%s built in %s", recipe.name_ver, work)
        return work

    def clean(self) -> int:
        """Remove everything under the build root; returns the number of entries removed."""
        root = self.config.build_root
        if not root.is_dir():
            return 0
        count = 0
        for entry in root.iterdir():
            wipe(entry)
            count += 1
        logger.info("cleaned %d entries from %s", count, root)
        return count
