# lfspkg/recipe.py
"""
Recipe model and loader.

A recipe is a text file of ``key=[value]`` lines::

    pkgname=[zlib]
    pkgver=[1.3.1]
    pkgdir=[zlib-1.3.1-1]
    pkgurl=[https://zlib.net/zlib-1.3.1.tar.gz]
    md5sum=[9855b6d802d7fe5b7bd5b196a2271655]
    build=[./configure --prefix=/usr && make -j$JOBS]
    install=[make DESTDIR=$DESTDIR install]

Any other line is ignored. Values run to the last ``]`` on the line and are
kept verbatim; hook values are executed as shell fragments by the pipelines.

Required fields are checked lazily: parsing never fails because a field is
missing, Recipe.validate() does, and the pipelines call it before touching
the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from lfspkg.errors import MalformedRecipe, MissingField
from lfspkg.fetcher import is_vcs

LINE_RE = re.compile(r"^\s*([A-Za-z0-9_]+)=\[(.*)\]")

REQUIRED = ("pkgname", "pkgver", "pkgdir", "pkgurl")
HOOKS = ("preconfig", "prepare", "build", "install")
FIELDS = REQUIRED + ("md5sum", "patchurl", "patchmd5") + HOOKS

TEMPLATE = """\
pkgdir=[example-1.0-1]
pkgname=[example]
pkgver=[1.0]
pkgurl=[http://example.org/example-1.0.tar.gz]
md5sum=[xxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx]

preconfig=[mkdir -p build]
prepare=[cd build && ../configure --prefix=/usr]
build=[cd build && make -j$JOBS]
install=[cd build && make DESTDIR=$DESTDIR install]
"""


@dataclass
class Recipe:
    pkgname: str = ""
    pkgver: str = ""
    pkgdir: str = ""
    pkgurl: str = ""
    md5sum: str = ""
    patchurl: str = ""
    patchmd5: str = ""
    preconfig: str = ""
    prepare: str = ""
    build: str = ""
    install: str = ""
    extra: Dict[str, str] = field(default_factory=dict)
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def name_ver(self) -> str:
        return f"{self.pkgname}-{self.pkgver}"

    def hook(self, stage: str) -> str:
        if stage not in HOOKS:
            raise KeyError(stage)
        return getattr(self, stage).strip()

    def fields(self) -> Dict[str, str]:
        """Recognized fields that are set, followed by the extra keys."""
        out = {k: getattr(self, k) for k in FIELDS if getattr(self, k)}
        out.update(self.extra)
        return out

    def validate(self) -> "Recipe":
        """Raise MissingField/MalformedRecipe unless the recipe is usable by the pipelines."""
        missing: List[str] = [k for k in REQUIRED if not getattr(self, k).strip()]
        if self.pkgurl and not is_vcs(self.pkgurl) and not self.md5sum.strip():
            missing.append("md5sum")
        if self.patchurl and not self.patchmd5.strip():
            missing.append("patchmd5")
        if missing:
            raise MissingField(missing)
        for key in ("pkgname", "pkgver", "pkgdir"):
            _check_path_safe(key, getattr(self, key))
        return self

    def to_text(self) -> str:
        return "".join(f"{k}=[{v}]\n" for k, v in self.fields().items())


def _check_path_safe(key: str, value: str):
    if value in (".", "..") or "/" in value or "\0" in value or any(c.isspace() for c in value):
        raise MalformedRecipe(f"{key} '{value}' must be one path component without whitespace")


def parse_recipe(text: str, path: Optional[Path] = None) -> Recipe:
    recipe = Recipe(path=path)
    for line in text.splitlines():
        m = LINE_RE.match(line)
        if not m:
            continue
        key, value = m.group(1), m.group(2)
        if key in FIELDS:
            setattr(recipe, key, value)
        else:
            recipe.extra[key] = value
    return recipe


def load_recipe(path: Union[str, Path]) -> Recipe:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedRecipe(f"cannot read recipe {p}: {e}")
    return parse_recipe(text, path=p)


def new_recipe(repo_root: Path, category: str) -> Path:
    """Write the template recipe to repo_root/category/model.recipe."""
    target_dir = (repo_root / category).resolve()
    root = repo_root.resolve()
    if not category or target_dir == root or root not in target_dir.parents:
        raise MalformedRecipe(f"invalid recipe category '{category}'")
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / "model.recipe"
    target.write_text(TEMPLATE, encoding="utf-8")
    return target
