"""Package filesystem tools scoped by the sandbox layout.

Reads and listings see the whole package except the generated ``docs/``
output; writes are confined to the documentation build directory.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from docagent.safety.sandbox import Capability, SandboxLayout
from docagent.tools.base import Tool, ToolResult

# JSON allows unpaired surrogate escapes; they cannot be encoded as UTF-8.
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


class PathInput(BaseModel):
    path: str = Field(
        default="",
        description="Path relative to the package root (empty string for the package root)",
    )


class WriteFileInput(BaseModel):
    path: str = Field(description="File path relative to the package root")
    content: str = Field(description="Content to write to the file")


class ListDirectoryTool(Tool):
    name = "list_directory"
    description = "List files and directories in a given path within the package"
    input_schema = PathInput

    def __init__(self, layout: SandboxLayout) -> None:
        self.layout = layout

    def execute(self, data: BaseModel) -> ToolResult:
        payload = PathInput.model_validate(data)
        target = self.layout.resolve(Capability.ENUMERATE, payload.path)
        try:
            entries = sorted(os.scandir(target), key=lambda entry: entry.name)
        except OSError as exc:
            return ToolResult(error=f"failed to read directory: {exc.strerror or exc}")
        lines = [f"Contents of {payload.path}:"]
        for entry in entries:
            if self.layout.is_excluded(self.layout.relpath(Path(entry.path))):
                continue
            if entry.is_dir():
                lines.append(f"  {entry.name}/ (directory)")
                continue
            try:
                size = entry.stat().st_size
            except OSError:
                lines.append(f"  {entry.name} (file)")
            else:
                lines.append(f"  {entry.name} (file, {size} bytes)")
        return ToolResult(content="\n".join(lines) + "\n")


class ReadFileTool(Tool):
    name = "read_file"
    description = "Read the contents of a file within the package."
    input_schema = PathInput

    def __init__(self, layout: SandboxLayout) -> None:
        self.layout = layout

    def execute(self, data: BaseModel) -> ToolResult:
        payload = PathInput.model_validate(data)
        target = self.layout.resolve(Capability.READ, payload.path)
        try:
            content = target.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return ToolResult(error=f"not found: {payload.path}")
        except OSError as exc:
            return ToolResult(error=f"failed to read file: {exc.strerror or exc}")
        return ToolResult(content=content)


class WriteFileTool(Tool):
    name = "write_file"
    input_schema = WriteFileInput

    def __init__(self, layout: SandboxLayout) -> None:
        self.layout = layout
        write_dir = layout.relpath(layout.write_root)
        self.description = (
            "Write content to a file within the package. "
            f"This tool can only write in {write_dir}/."
        )

    def execute(self, data: BaseModel) -> ToolResult:
        payload = WriteFileInput.model_validate(data)
        target = self.layout.resolve(Capability.WRITE, payload.path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return ToolResult(error=f"failed to create directory: {exc.strerror or exc}")
        encoded = _LONE_SURROGATE.sub("\ufffd", payload.content).encode("utf-8")
        try:
            _replace_file(target, encoded)
        except OSError as exc:
            return ToolResult(error=f"failed to write file: {exc.strerror or exc}")
        return ToolResult(content=f"Successfully wrote {len(encoded)} bytes to {payload.path}")


def _replace_file(target: Path, data: bytes) -> None:
    handle = tempfile.NamedTemporaryFile(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
    )
    try:
        with handle:
            handle.write(data)
        os.chmod(handle.name, 0o644)
        os.replace(handle.name, target)
    except OSError:
        Path(handle.name).unlink(missing_ok=True)
        raise


def package_tools(layout: SandboxLayout) -> list[Tool]:
    return [ListDirectoryTool(layout), ReadFileTool(layout), WriteFileTool(layout)]
