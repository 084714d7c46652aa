# lfspkg/config.py
# -*- coding: utf-8 -*-
"""
lfspkg configuration loader

Features:
- Read YAML/JSON config from the first file found (explicit path, env override,
  working root, user config)
- Merge with authoritative DEFAULTS, normalize/coerce types (human sizes to bytes)
- Validate structure and types: unknown keys warn, bad values raise ConfigError
- Build one immutable Config value at process start; per-invocation overrides
  (strip, toolchain, jobs, color) produce a new value via with_overrides()
"""

from __future__ import annotations

import os
import json
import logging
import dataclasses
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from lfspkg.errors import ConfigError

logger = logging.getLogger("lfspkg.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "paths": {
        "build": "build",
        "pkg": "pkg",
        "logs": "logs",
        "repo": "repo",
        "sources": "sources",
    },
    "build": {
        "jobs": None,  # None -> os.cpu_count()
        "shell": "bash",
    },
    "install": {
        "strip": True,
        "strip_command": ["strip", "--strip-unneeded"],
        "fakeroot": "fakeroot",
        "toolchain": False,
    },
    "package": {
        "compression": "xz",
    },
    "fetcher": {
        "timeout": 60,
        "chunk_size": 65536,
    },
    "logging": {
        "level": "INFO",
        "color": True,
        "file": "lfspkg.log",  # relative to paths.logs
        "max_size": "5M",
        "backups": 3,
    },
    "ui": {
        "spinner": True,
    },
}

COMPRESSIONS = ("xz", "gz", "bz2")
REGISTRY_FILE = "installed.log"


# ----------------------------
# Immutable config value
# ----------------------------
@dataclass(frozen=True)
class Config:
    root: Path
    build_root: Path
    pkg_root: Path
    log_root: Path
    repo_root: Path
    src_root: Path
    jobs: int = 1
    shell: str = "bash"
    strip: bool = True
    strip_command: Tuple[str, ...] = ("strip", "--strip-unneeded")
    fakeroot: Optional[str] = "fakeroot"
    toolchain: bool = False
    compression: str = "xz"
    fetch_timeout: int = 60
    chunk_size: int = 65536
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_max_bytes: int = 5 * 1024 * 1024
    log_backups: int = 3
    color: bool = True
    spinner: bool = True
    source: Optional[Path] = None  # config file the values came from
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def registry_path(self) -> Path:
        return self.log_root / REGISTRY_FILE

    def standard_dirs(self) -> List[Path]:
        return [self.build_root, self.log_root, self.pkg_root, self.src_root]

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the given fields replaced; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)


# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "K": 1024, "MB": 1024**2, "M": 1024**2, "GB": 1024**3, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                return int(float(s[: -len(suffix)].strip()) * mul)
        return int(float(s))
    except ValueError:
        raise ConfigError(f"cannot parse size '{val}'")


def _expand_path(val: Union[str, Path], base: Path) -> Path:
    p = Path(os.path.expandvars(os.path.expanduser(str(val))))
    if not p.is_absolute():
        p = base / p
    return p.resolve()


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res


def _find_candidates(root: Path, explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    if explicit:
        candidates.append(Path(explicit))
    env = os.environ.get("LFSPKG_CONFIG")
    if env:
        candidates.append(Path(env))
    candidates.extend([
        root / "lfspkg.yaml",
        root / "lfspkg.yml",
        root / "lfspkg.json",
        Path.home() / ".config" / "lfspkg" / "config.yaml",
    ])
    return candidates


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(txt)
        else:
            data = yaml.safe_load(txt)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping at top level")
    return data


def _validate_structure(cfg: Dict[str, Any]) -> List[str]:
    """Return warnings for unknown keys; raise ConfigError for unusable values."""
    warnings: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            warnings.append(f"unknown top-level config key: {k}")
    for section, defaults in DEFAULTS.items():
        val = cfg.get(section)
        if not isinstance(val, dict):
            raise ConfigError(f"config section '{section}' must be a mapping")
        for k in val.keys():
            if k not in defaults:
                warnings.append(f"unknown config key: {section}.{k}")
    jobs = cfg["build"].get("jobs")
    if jobs is not None and (not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1):
        raise ConfigError("build.jobs must be an integer >= 1")
    comp = cfg["package"].get("compression")
    if comp not in COMPRESSIONS:
        raise ConfigError(f"package.compression must be one of {', '.join(COMPRESSIONS)}")
    strip_cmd = cfg["install"].get("strip_command")
    if isinstance(strip_cmd, str):
        cfg["install"]["strip_command"] = strip_cmd.split()
    elif not isinstance(strip_cmd, list) or not strip_cmd:
        raise ConfigError("install.strip_command must be a command list")
    return warnings


def detect_jobs() -> int:
    return os.cpu_count() or 1


# ----------------------------
# Loading
# ----------------------------
def find_config_file(root: Path, explicit: Optional[str] = None) -> Optional[Path]:
    if explicit and not Path(explicit).exists():
        raise ConfigError(f"config file not found: {explicit}")
    for p in _find_candidates(root, explicit):
        if p.is_file():
            return p
    return None


def from_dict(data: Dict[str, Any], root: Union[str, Path, None] = None, source: Optional[Path] = None) -> Config:
    """Merge data with DEFAULTS and build a Config rooted at root."""
    root_path = Path(root or os.environ.get("LFSPKG_ROOT") or os.getcwd()).expanduser().resolve()
    merged = _deep_merge(DEFAULTS, data or {})
    for issue in _validate_structure(merged):
        logger.warning("config: %s", issue)

    paths = merged["paths"]
    log_root = _expand_path(paths["logs"], root_path)
    log_cfg = merged["logging"]
    log_file = _expand_path(log_cfg["file"], log_root) if log_cfg.get("file") else None
    fakeroot = merged["install"].get("fakeroot") or None

    return Config(
        root=root_path,
        build_root=_expand_path(paths["build"], root_path),
        pkg_root=_expand_path(paths["pkg"], root_path),
        log_root=log_root,
        repo_root=_expand_path(paths["repo"], root_path),
        src_root=_expand_path(paths["sources"], root_path),
        jobs=merged["build"].get("jobs") or detect_jobs(),
        shell=str(merged["build"].get("shell") or "bash"),
        strip=bool(merged["install"]["strip"]),
        strip_command=tuple(merged["install"]["strip_command"]),
        fakeroot=fakeroot,
        toolchain=bool(merged["install"]["toolchain"]),
        compression=merged["package"]["compression"],
        fetch_timeout=int(merged["fetcher"]["timeout"]),
        chunk_size=int(merged["fetcher"]["chunk_size"]),
        log_level=str(log_cfg.get("level", "INFO")).upper(),
        log_file=log_file,
        log_max_bytes=_human_size_to_bytes(log_cfg.get("max_size")) or 5 * 1024 * 1024,
        log_backups=int(log_cfg.get("backups", 3)),
        color=bool(log_cfg.get("color", True)),
        spinner=bool(merged["ui"]["spinner"]),
        source=source,
        raw=merged,
    )


def load_config(root: Union[str, Path, None] = None, explicit_path: Optional[str] = None) -> Config:
    """
    Find, parse and merge the config file (if any) and return a Config value.
    The working root defaults to $LFSPKG_ROOT, then the current directory.
    """
    root_path = Path(root or os.environ.get("LFSPKG_ROOT") or os.getcwd()).expanduser().resolve()
    cfg_path = find_config_file(root_path, explicit_path)
    data: Dict[str, Any] = {}
    if cfg_path:
        data = _load_file(cfg_path)
    cfg = from_dict(data, root=root_path, source=cfg_path)
    logger.debug("config: loaded (from=%s, root=%s)", cfg_path or "<defaults>", root_path)
    return cfg
