import pytest

from appinsight import system
from appinsight.system import ToolInfo


def _make_tool(directory, name):
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


def test_check_tool_missing(monkeypatch, tmp_path):
    monkeypatch.setenv("PATH", str(tmp_path))
    info = system.check_tool("ipatool")
    assert info.available is False
    assert info.to_dict() == {"available": False}


def test_check_tool_found(monkeypatch, tmp_path):
    tool = _make_tool(tmp_path, "ipatool")
    monkeypatch.setenv("PATH", str(tmp_path))
    info = system.check_tool("ipatool")
    assert info.available is True
    assert info.path == str(tool)
    assert info.to_dict() == {"available": True, "path": str(tool)}


def test_run_doctor_all_tools_present(monkeypatch, tmp_path):
    for name in ("ipatool", "plutil", "strings"):
        _make_tool(tmp_path, name)
    monkeypatch.setenv("PATH", str(tmp_path))
    result = system.run_doctor("0.1.0")
    assert result.ok is True
    assert result.command == "doctor"
    assert result.version == "0.1.0"
    assert result.tools.plutil.path == str(tmp_path / "plutil")


def test_run_doctor_missing_tool(monkeypatch, tmp_path):
    _make_tool(tmp_path, "ipatool")
    _make_tool(tmp_path, "plutil")
    monkeypatch.setenv("PATH", str(tmp_path))
    result = system.run_doctor("0.1.0")
    assert result.ok is False
    assert result.tools.strings == ToolInfo(available=False)
    assert result.tools.ipatool.available is True


def test_doctor_to_dict_shape(monkeypatch, tmp_path):
    monkeypatch.setenv("PATH", str(tmp_path))
    data = system.run_doctor("9.9").to_dict()
    assert list(data) == ["ok", "command", "environment", "tools", "version"]
    assert list(data["tools"]) == ["ipatool", "plutil", "strings"]
    assert list(data["environment"]) == ["os", "arch"]
    assert data["environment"]["os"] == data["environment"]["os"].lower()
    assert data["version"] == "9.9"


@pytest.mark.parametrize(
    "tool, message",
    [
        ("ipatool", "ipatool is not installed. Install it via: brew install majd/repo/ipatool"),
        (
            "plutil",
            "plutil is not found. It should be available on macOS by default at /usr/bin/plutil",
        ),
        (
            "strings",
            "strings is not found. Install Xcode Command Line Tools: xcode-select --install",
        ),
        ("unzip", "unzip is not installed. Please install it before proceeding."),
    ],
)
def test_missing_tool_error(tool, message):
    assert system.missing_tool_error(tool) == message