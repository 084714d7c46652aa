#!/usr/bin/env python3
# lfspkg/cli.py
"""
lfspkg CLI

  lfspkg build <recipe>      fetch, verify, extract, patch and run build hooks
  lfspkg install <recipe>    install a previous build into pkg/<pkgdir>, package, register
  lfspkg clean               wipe the build root
  lfspkg remove <pkg>        unregister a package and delete its files under pkg/
  lfspkg list                show the registry
  lfspkg info <pkg>          show registry entries of one package
  lfspkg new <category>      write a template recipe to repo/<category>/model.recipe

Any lfspkg error, or an OS error from a filesystem step, prints a message on
stderr and exits with status 1.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Dict, List, Optional

from lfspkg import __version__
from lfspkg.buildsystem import BuildSystem
from lfspkg.config import Config, load_config
from lfspkg.db import Registry
from lfspkg.errors import LfspkgError
from lfspkg.installer import Installer
from lfspkg.logging import get_logger, setup_logging
from lfspkg.recipe import load_recipe, new_recipe
from lfspkg.remove import remove_package
from lfspkg.ui import UI

logger = get_logger("cli")

ARG_NAMES = {
    "build": "recipe",
    "install": "recipe",
    "remove": "pkg",
    "info": "pkg",
    "new": "category",
}


# -----------------------
# Command handlers
# -----------------------
def cmd_build(cfg: Config, ui: UI, args) -> None:
    recipe = load_recipe(args.arg)
    BuildSystem(cfg, ui).build(recipe)
    ui.ok(f"{recipe.pkgname} {recipe.pkgver} built (not installed)")


def cmd_install(cfg: Config, ui: UI, args) -> None:
    recipe = load_recipe(args.arg)
    result = Installer(cfg, ui).install(recipe, strip=args.strip, toolchain=args.toolchain)
    ui.ok(f"{recipe.pkgname} {recipe.pkgver} installed in {result.destdir}")


def cmd_clean(cfg: Config, ui: UI, args) -> None:
    BuildSystem(cfg, ui).clean()
    ui.ok("Build root cleaned")


def cmd_remove(cfg: Config, ui: UI, args) -> None:
    remove_package(cfg, args.arg)
    ui.ok(f"{args.arg} removed")


def cmd_list(cfg: Config, ui: UI, args) -> None:
    for line in Registry(cfg.registry_path).list():
        ui.line(line)


def cmd_info(cfg: Config, ui: UI, args) -> None:
    for line in Registry(cfg.registry_path).find(args.arg):
        ui.line(line)


def cmd_new(cfg: Config, ui: UI, args) -> None:
    path = new_recipe(cfg.repo_root, args.arg)
    ui.ok(f"Template created at {path}")


COMMANDS: Dict[str, Callable[[Config, UI, argparse.Namespace], None]] = {
    "build": cmd_build,
    "install": cmd_install,
    "clean": cmd_clean,
    "remove": cmd_remove,
    "list": cmd_list,
    "info": cmd_info,
    "new": cmd_new,
}


# -----------------------
# Argparse wiring
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="lfspkg",
        usage="%(prog)s [options] {build <recipe>|install <recipe>|clean|remove <pkg>|list|info <pkg>|new <category>}",
        description="Minimal source-based package build/install tool",
    )
    ap.add_argument("command", nargs="?", help="command to run")
    ap.add_argument("arg", nargs="?", help="recipe path, package name or category")
    ap.add_argument("--root", help="working root (default: $LFSPKG_ROOT or the current directory)")
    ap.add_argument("--config", help="config file (YAML or JSON)")
    ap.add_argument("-j", "--jobs", type=int, help="parallel jobs passed to hooks (default: CPU count)")
    ap.add_argument("--strip", dest="strip", action="store_true", default=None, help="strip installed binaries")
    ap.add_argument("--no-strip", dest="strip", action="store_false", help="do not strip installed binaries")
    ap.add_argument("--toolchain", dest="toolchain", action="store_true", default=None,
                    help="toolchain package: install without packaging")
    ap.add_argument("--no-toolchain", dest="toolchain", action="store_false",
                    help="package the install even if the config sets install.toolchain")
    ap.add_argument("--no-color", action="store_true", help="disable colored output")
    ap.add_argument("--no-spinner", action="store_true", help="disable spinner animations")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command or "")
    if handler is None:
        parser.print_usage(sys.stdout)
        return 0
    if args.command in ARG_NAMES and not args.arg:
        parser.print_usage(sys.stderr)
        sys.stderr.write(f"lfspkg: {args.command} requires <{ARG_NAMES[args.command]}>\n")
        return 2
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be >= 1")

    ui = UI(color=not args.no_color, spinner=not args.no_spinner)
    try:
        cfg = load_config(root=args.root, explicit_path=args.config)
        cfg = cfg.with_overrides(
            jobs=args.jobs,
            color=False if args.no_color else None,
            spinner=False if args.no_spinner else None,
        )
        ui = UI.from_config(cfg)
        setup_logging(cfg, verbose=args.verbose)
        handler(cfg, ui, args)
    except LfspkgError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        ui.error(str(e))
        return 1
    except OSError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        ui.error(f"{args.command}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
