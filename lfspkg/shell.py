# lfspkg/shell.py
"""
Run recipe hooks: an opaque shell fragment, executed verbatim in a directory
with a fixed set of extra environment bindings, optionally behind a wrapper
command (fakeroot). Output is streamed to stdout and appended to a log file.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional

from lfspkg.config import Config
from lfspkg.errors import HookFailure
from lfspkg.logging import get_logger

logger = get_logger("shell")


def hook_env(config: Config, pkgname: str, pkgver: str, workdir: Path,
             destdir: Optional[Path] = None, pkgdir: str = "") -> Dict[str, str]:
    env = dict(os.environ)
    env.update({
        "PKGNAME": pkgname,
        "PKGVER": pkgver,
        "PKGDIR": pkgdir,
        # recipes may also refer to their own fields
        "pkgname": pkgname,
        "pkgver": pkgver,
        "pkgdir": pkgdir,
        "SRCDIR": str(workdir),
        "JOBS": str(config.jobs),
        "NPROC": str(config.jobs),
        "MAKEFLAGS": f"-j{config.jobs}",
    })
    if destdir is not None:
        env["DESTDIR"] = str(destdir)
    return env


def resolve_wrapper(wrapper: Optional[str]) -> List[str]:
    """Command prefix for the privilege-dropping wrapper; empty when unset or not installed."""
    if not wrapper:
        return []
    argv = wrapper.split()
    if shutil.which(argv[0]) is None:
        logger.warning("%s not found in PATH; running install hook without it", argv[0])
        return []
    return argv


def run_shell(fragment: str, cwd: Path, env: Dict[str, str], *, stage: str,
              shell: str = "bash", wrapper: Optional[List[str]] = None,
              logfile: Optional[Path] = None) -> int:
    """Run fragment with cwd as working directory; raise HookFailure on non-zero exit."""
    cmd = list(wrapper or []) + [shell, "-c", fragment]
    logger.info("running %s hook in %s", stage, cwd)
    logger.debug("RUN: %s", cmd)
    if not Path(cwd).is_dir():
        raise HookFailure(stage, None, f"working directory {cwd} does not exist")

    log_f = None
    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        log_f = open(logfile, "a", encoding="utf-8")
        log_f.write(f"==> {stage}: {fragment}\n")
    try:
        try:
            proc = subprocess.Popen(cmd, cwd=str(cwd), env=env, stdout=subprocess.PIPE,
                                    stderr=subprocess.STDOUT, text=True, errors="replace", bufsize=1)
        except OSError as e:
            raise HookFailure(stage, None, str(e))
        with proc:
            for line in proc.stdout:
                sys.stdout.write(line)
                if log_f:
                    log_f.write(line)
            rc = proc.wait()
    finally:
        if log_f:
            log_f.close()

    if rc != 0:
        raise HookFailure(stage, rc)
    return rc
