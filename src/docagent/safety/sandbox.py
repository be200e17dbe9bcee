"""Lexical path sandbox for tool-driven filesystem access.

Paths requested by the model are joined to a capability root, normalized and
checked without touching the filesystem. Symlinked components inside the root
are not followed, so an escape through a symlink is not detected here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class AccessDenied(ValueError):
    """Raised when a requested path falls outside the allowed root."""


class Capability(str, Enum):
    ENUMERATE = "enumerate"
    READ = "read"
    WRITE = "write"


def _contain(root: str, candidate: str) -> str:
    try:
        relative = os.path.relpath(candidate, root)
    except ValueError as exc:
        raise AccessDenied(f"cannot relate {candidate} to {root}") from exc
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        raise AccessDenied(f"{candidate} is outside {root}")
    return candidate


def resolve(root: str | os.PathLike[str], requested: str) -> Path:
    """Return the absolute path for ``requested`` beneath ``root``.

    Raises AccessDenied if the normalized path escapes the root.
    """
    clean_root = os.path.normpath(os.path.abspath(root))
    candidate = os.path.normpath(os.path.join(clean_root, requested))
    return Path(_contain(clean_root, candidate))


def is_within(root: str | os.PathLike[str], requested: str) -> bool:
    try:
        resolve(root, requested)
    except AccessDenied:
        return False
    return True


@dataclass(frozen=True)
class SandboxLayout:
    """Filesystem layout of a package as seen by the documentation tools."""

    package_root: Path
    write_dir: str = os.path.join("_dev", "build", "docs")
    target_name: str = "README.md"
    excluded: tuple[str, ...] = ("docs",)

    def __post_init__(self) -> None:
        root = Path(os.path.normpath(os.path.abspath(self.package_root)))
        object.__setattr__(self, "package_root", root)
        write_root = os.path.normpath(os.path.join(root, self.write_dir))
        relative = os.path.relpath(write_root, root)
        if relative in {os.curdir, os.pardir} or relative.startswith(os.pardir + os.sep):
            raise ValueError(
                f"write directory {self.write_dir!r} must be a strict subdirectory of the package root"
            )

    @property
    def write_root(self) -> Path:
        return Path(os.path.normpath(os.path.join(self.package_root, self.write_dir)))

    @property
    def target_path(self) -> Path:
        return self.write_root / self.target_name

    @property
    def target_relpath(self) -> str:
        return os.path.relpath(self.target_path, self.package_root).replace(os.sep, "/")

    def root_for(self, capability: Capability) -> Path:
        if capability is Capability.WRITE:
            return self.write_root
        return self.package_root

    def relpath(self, path: Path) -> str:
        relative = os.path.relpath(path, self.package_root)
        return "" if relative == os.curdir else relative.replace(os.sep, "/")

    def is_excluded(self, relpath: str) -> bool:
        normalized = os.path.normpath(relpath).replace(os.sep, "/") if relpath else ""
        for prefix in self.excluded:
            if normalized == prefix or normalized.startswith(prefix + "/"):
                return True
        return False

    def resolve(self, capability: Capability, requested: str) -> Path:
        """Resolve a model-supplied path (relative to the package root) for a capability."""
        try:
            candidate = resolve(self.package_root, requested)
            if capability is Capability.WRITE:
                return Path(_contain(str(self.write_root), str(candidate)))
        except AccessDenied as exc:
            if capability is Capability.WRITE:
                raise AccessDenied("access denied: path outside allowed directory") from exc
            raise AccessDenied("access denied: path outside package root") from exc
        if self.is_excluded(self.relpath(candidate)):
            raise AccessDenied("access denied: invalid path")
        return candidate
