# lfspkg/errors.py
"""
Error taxonomy for lfspkg.

Every error below is fatal for the command that raised it: the CLI prints the
message and exits non-zero. Nothing is retried or rolled back.
"""

from __future__ import annotations

from typing import Optional


class LfspkgError(Exception):
    """Base class for all lfspkg errors."""


class ConfigError(LfspkgError):
    pass


class MalformedRecipe(LfspkgError):
    """Recipe could not be read, or a field is invalid."""


class MissingField(MalformedRecipe):
    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__("recipe is missing required field(s): " + ", ".join(self.fields))


class FetchFailure(LfspkgError):
    pass


class ChecksumMismatch(LfspkgError):
    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"md5 mismatch for {path}: expected {expected}, got {actual}")


class UnsupportedFormat(LfspkgError):
    pass


class ExtractFailure(LfspkgError):
    pass


class PatchFailure(LfspkgError):
    pass


class HookFailure(LfspkgError):
    def __init__(self, stage: str, returncode: Optional[int], detail: str = ""):
        self.stage = stage
        self.returncode = returncode
        msg = f"hook '{stage}' failed"
        if returncode is not None:
            msg += f" with exit code {returncode}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class NotBuilt(LfspkgError):
    def __init__(self, pkgname: str, pkgver: str):
        self.pkgname = pkgname
        self.pkgver = pkgver
        super().__init__(
            f"package {pkgname}-{pkgver} has not been built yet; "
            f"run 'lfspkg build <recipe>' first"
        )
