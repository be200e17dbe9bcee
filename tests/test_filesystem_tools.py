from __future__ import annotations

import json
import os
import stat

import pytest

from docagent.safety.sandbox import SandboxLayout
from docagent.tools.builtins import ListDirectoryTool, ReadFileTool, WriteFileTool, package_tools


@pytest.fixture
def layout(tmp_path):
    (tmp_path / "manifest.yml").write_text("name: nginx\n", encoding="utf-8")
    (tmp_path / "data_stream" / "access").mkdir(parents=True)
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "README.md").write_text("generated", encoding="utf-8")
    return SandboxLayout(package_root=tmp_path)


def _args(**kwargs) -> str:
    return json.dumps(kwargs)


def test_list_directory_hides_excluded_docs(layout):
    result = ListDirectoryTool(layout).invoke(_args(path=""))
    assert result.ok
    lines = result.content.splitlines()
    assert lines[0] == "Contents of :"
    assert "  data_stream/ (directory)" in lines
    assert "  manifest.yml (file, 12 bytes)" in lines
    assert not any("docs" in line for line in lines[1:])


def test_list_directory_defaults_to_root(layout):
    result = ListDirectoryTool(layout).invoke("{}")
    assert "manifest.yml" in result.content


def test_list_directory_errors(layout):
    tool = ListDirectoryTool(layout)
    assert tool.invoke(_args(path="missing")).error.startswith("failed to read directory")
    assert tool.invoke(_args(path="docs")).error == "access denied: invalid path"
    assert tool.invoke(_args(path="..")).error == "access denied: path outside package root"


def test_read_file(layout):
    tool = ReadFileTool(layout)
    assert tool.invoke(_args(path="manifest.yml")).content == "name: nginx\n"
    assert tool.invoke(_args(path="nope.yml")).error == "not found: nope.yml"
    assert tool.invoke(_args(path="docs/README.md")).error == "access denied: invalid path"
    assert tool.invoke(_args(path="data_stream")).error.startswith("failed to read file")


def test_write_file_creates_target(layout):
    tool = WriteFileTool(layout)
    result = tool.invoke(_args(path="_dev/build/docs/README.md", content="# Nginx ✓\n"))
    assert result.ok
    assert result.content == "Successfully wrote 12 bytes to _dev/build/docs/README.md"
    assert layout.target_path.read_text(encoding="utf-8") == "# Nginx ✓\n"
    assert stat.S_IMODE(os.stat(layout.target_path).st_mode) == 0o644
    assert [p.name for p in layout.write_root.iterdir()] == ["README.md"]


def test_write_file_replaces_content(layout):
    tool = WriteFileTool(layout)
    tool.invoke(_args(path="_dev/build/docs/README.md", content="first version"))
    tool.invoke(_args(path="_dev/build/docs/README.md", content="second"))
    assert layout.target_path.read_text(encoding="utf-8") == "second"


@pytest.mark.parametrize(
    "path",
    ["manifest.yml", "docs/README.md", "../escape.md", "_dev/build/docs/../README.md", "/tmp/x.md"],
)
def test_write_file_rejects_paths_outside_write_root(layout, path):
    result = WriteFileTool(layout).invoke(_args(path=path, content="x"))
    assert result.error == "access denied: path outside allowed directory"
    assert (layout.package_root / "manifest.yml").read_text(encoding="utf-8") == "name: nginx\n"


def test_malformed_arguments_are_reported(layout):
    tool = WriteFileTool(layout)
    assert tool.invoke("{not json").error.startswith("failed to parse arguments")
    assert tool.invoke(_args(path="_dev/build/docs/README.md")).error.startswith(
        "failed to parse arguments"
    )


def test_write_description_names_write_dir(layout):
    assert "_dev/build/docs/" in WriteFileTool(layout).description


def test_package_tools_schemas(layout):
    tools = package_tools(layout)
    assert [tool.name for tool in tools] == ["list_directory", "read_file", "write_file"]
    schema = tools[2].schema()
    assert schema.parameters["required"] == ["path", "content"]
    assert "title" not in schema.parameters
    assert "title" not in schema.parameters["properties"]["path"]


@pytest.mark.parametrize(
    "tool_class, arguments",
    [
        (ListDirectoryTool, {"path": "data\u0000stream"}),
        (ReadFileTool, {"path": "a\u0000b"}),
        (WriteFileTool, {"path": "_dev/build/docs/a\u0000b.md", "content": "x"}),
    ],
)
def test_null_byte_paths_become_errors(layout, tool_class, arguments):
    error = tool_class(layout).invoke(json.dumps(arguments)).error
    assert error.startswith("invalid argument: ")
    assert "null" in error


def test_lone_surrogate_is_written_as_replacement_character(layout):
    result = WriteFileTool(layout).invoke('{"path": "_dev/build/docs/README.md", "content": "x\\ud800y"}')
    assert result.content == "Successfully wrote 5 bytes to _dev/build/docs/README.md"
    assert layout.target_path.read_bytes() == "x�y".encode("utf-8")
