"""Environment checks for the external tools the commands rely on."""

from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass
from typing import Any

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


@dataclass
class ToolInfo:
    """Whether a tool was found on PATH, and where."""

    available: bool
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"available": self.available}
        if self.path:
            out["path"] = self.path
        return out


@dataclass
class Environment:
    """Operating system and CPU architecture."""

    os: str
    arch: str

    def to_dict(self) -> dict[str, Any]:
        return {"os": self.os, "arch": self.arch}


@dataclass
class ToolMap:
    """Availability of each tool the commands use."""

    ipatool: ToolInfo
    plutil: ToolInfo
    strings: ToolInfo

    def to_dict(self) -> dict[str, Any]:
        return {
            "ipatool": self.ipatool.to_dict(),
            "plutil": self.plutil.to_dict(),
            "strings": self.strings.to_dict(),
        }


@dataclass
class DoctorResult:
    """The outcome of an environment check."""

    ok: bool
    command: str
    environment: Environment
    tools: ToolMap
    version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "command": self.command,
            "environment": self.environment.to_dict(),
            "tools": self.tools.to_dict(),
            "version": self.version,
        }


def check_tool(name: str) -> ToolInfo:
    """Look ``name`` up on PATH."""
    path = shutil.which(name)
    if path is None:
        return ToolInfo(available=False)
    return ToolInfo(available=True, path=path)


def _current_environment() -> Environment:
    machine = platform.machine().lower()
    return Environment(
        os=platform.system().lower(),
        arch=_ARCH_NAMES.get(machine, machine),
    )


def run_doctor(version: str) -> DoctorResult:
    """Check the environment and every required tool."""
    tools = ToolMap(
        ipatool=check_tool("ipatool"),
        plutil=check_tool("plutil"),
        strings=check_tool("strings"),
    )
    all_ok = tools.ipatool.available and tools.plutil.available and tools.strings.available
    return DoctorResult(
        ok=all_ok,
        command="doctor",
        environment=_current_environment(),
        tools=tools,
        version=version,
    )


def missing_tool_error(tool: str) -> str:
    """Return an installation hint for a missing tool."""
    if tool == "ipatool":
        return f"{tool} is not installed. Install it via: brew install majd/repo/ipatool"
    if tool == "plutil":
        return (
            f"{tool} is not found. It should be available on macOS by default "
            "at /usr/bin/plutil"
        )
    if tool == "strings":
        return (
            f"{tool} is not found. Install Xcode Command Line Tools: "
            "xcode-select --install"
        )
    return f"{tool} is not installed. Please install it before proceeding."