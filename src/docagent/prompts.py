"""Prompt bodies for the documentation session."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from docagent.preserve import DEFAULT_MARKERS
from docagent.util.logging import get_logger


logger = get_logger(__name__)


MANIFEST_NAME = "manifest.yml"


class ManifestError(ValueError):
    """Raised when the package manifest is missing or invalid."""


class PackageManifest(BaseModel):
    name: str
    title: str = ""
    type: str = ""
    version: str = ""
    description: str = ""


def read_package_manifest(package_root: str | Path) -> PackageManifest:
    path = Path(package_root) / MANIFEST_NAME
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(f"package manifest not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"failed to read {path}: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ManifestError(f"failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path} must be a mapping.")
    try:
        return PackageManifest.model_validate(
            {key: str(data[key]) for key in PackageManifest.model_fields if data.get(key) is not None}
        )
    except ValidationError as exc:
        raise ManifestError(f"invalid package manifest {path}: {exc}") from exc


def find_package_root(start: str | Path) -> Path | None:
    """Walk up from ``start`` to the first directory holding a manifest."""
    current = Path(start).resolve()
    for candidate in (current, *current.parents):
        if (candidate / MANIFEST_NAME).is_file():
            return candidate
    return None


_MARKER_LINES = "\n".join(f"  {marker.start} ... {marker.end}" for marker in DEFAULT_MARKERS)

_PACKAGE_CONTEXT = """Package information:
- Name: {name}
- Title: {title}
- Type: {type}
- Version: {version}
- Description: {description}
"""

INITIAL_PROMPT = (
    "You are a technical writer documenting a package.\n\n"
    + _PACKAGE_CONTEXT
    + """
Use the list_directory and read_file tools to study the package: its manifest,
data streams, fields, sample events and configuration. Then write the complete
documentation with write_file to {target}.

Rules:
- Only {target} may be written; other writes will be rejected.
- If {target} already exists, read it first. Copy every region delimited by
  these markers verbatim, markers included:
{markers}
- Write the whole file in one write_file call; partial writes replace the file.
- When the file is written, reply with a short summary and no tool calls to
  indicate that you are finished.
"""
)

REVISION_PROMPT = (
    "You are revising the documentation of a package.\n\n"
    + _PACKAGE_CONTEXT
    + """
The current documentation is in {target}. Read it, apply the requested changes
and write the full updated file back with write_file. Keep everything that the
changes do not touch, and copy every region delimited by these markers
verbatim, markers included:
{markers}

Requested changes:
{changes}

When the file is written, reply with a short summary and no tool calls.
"""
)

LIMIT_HIT_PROMPT = (
    "Your previous answer hit the maximum response length. Generate the\n"
    "documentation section by section instead.\n\n"
    + _PACKAGE_CONTEXT
    + """
Steps:
1. Read {target} if it exists, keeping every region delimited by these markers
   verbatim:
{markers}
2. Write an outline with the section headings to {target}.
3. For each section, read the current file, add that section's content and
   write the full file back. Keep each response short.
4. When every section is written, reply with a short summary and no tool calls.
"""
)

ERROR_RETRY_CHANGES = (
    "The previous attempt encountered an error. Please try a different approach "
    "to analyze the package and create/update the documentation."
)


def not_written_changes(target: str) -> str:
    return (
        f"You haven't written the {Path(target).name} file yet. Please write the "
        f"{Path(target).name} file in the {Path(target).parent.as_posix()}/ directory "
        "based on your analysis. This is required to complete the task."
    )


class PromptBuilder:
    """Builds session prompts from the package manifest."""

    def __init__(self, package_root: str | Path, target: str) -> None:
        self.package_root = Path(package_root)
        self.target = target

    def manifest(self) -> PackageManifest:
        try:
            return read_package_manifest(self.package_root)
        except ManifestError as exc:
            logger.warning("%s; using the directory name as package name", exc)
            return PackageManifest(name=self.package_root.name)

    def _fields(self, manifest: PackageManifest) -> dict[str, str]:
        return {**manifest.model_dump(), "target": self.target, "markers": _MARKER_LINES}

    def initial(self) -> str:
        return INITIAL_PROMPT.format(**self._fields(self.manifest()))

    def revision(self, changes: str) -> str:
        return REVISION_PROMPT.format(changes=changes, **self._fields(self.manifest()))

    def limit_hit(self) -> str:
        return LIMIT_HIT_PROMPT.format(**self._fields(self.manifest()))

    def error_retry(self) -> str:
        return self.revision(ERROR_RETRY_CHANGES)

    def not_written(self) -> str:
        return self.revision(not_written_changes(self.target))
