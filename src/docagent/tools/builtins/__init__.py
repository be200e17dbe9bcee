"""Builtin package tools."""

from docagent.tools.builtins.filesystem import (
    ListDirectoryTool,
    ReadFileTool,
    WriteFileTool,
    package_tools,
)

__all__ = [
    "ListDirectoryTool",
    "ReadFileTool",
    "WriteFileTool",
    "package_tools",
]
