"""JSON envelopes for command results and helpers that emit them."""

from __future__ import annotations

import dataclasses
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Characters escaped the same way a browser-safe JSON encoder does.
_ESCAPE_TABLE = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def to_jsonable(data: Any) -> Any:
    """Convert result objects, dataclasses and containers into plain JSON values."""
    if not isinstance(data, type):
        to_dict = getattr(data, "to_dict", None)
        if callable(to_dict):
            return to_jsonable(to_dict())
        if dataclasses.is_dataclass(data):
            return to_jsonable(dataclasses.asdict(data))
    if isinstance(data, dict):
        return {str(key): to_jsonable(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, float) and data.is_integer() and abs(data) < 1e21:
        return int(data)
    return data


def _encode(data: Any) -> str:
    text = json.dumps(to_jsonable(data), indent=2, ensure_ascii=False)
    return text.translate(_ESCAPE_TABLE)


@dataclass
class Result:
    """The envelope printed by every command."""

    ok: bool
    command: str
    error: str = ""
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ok": self.ok, "command": self.command}
        if self.error:
            out["error"] = self.error
        if self.data is not None:
            out["data"] = to_jsonable(self.data)
        return out


def new_ok(command: str, data: Any) -> Result:
    """Build a successful result carrying ``data``."""
    return Result(ok=True, command=command, data=data)


def new_error(command: str, err: str) -> Result:
    """Build a failed result carrying an error message."""
    return Result(ok=False, command=command, error=err)


def print_json(result: Result) -> None:
    """Print ``result`` as indented JSON followed by a newline."""
    sys.stdout.write(_encode(result) + "\n")
    sys.stdout.flush()


def write_to_file(result: Result, path: str | Path) -> None:
    """Write ``result`` as indented JSON to ``path``."""
    Path(path).write_text(_encode(result), encoding="utf-8")


def write_data_to_file(data: Any, path: str | Path) -> None:
    """Write any JSON-convertible ``data`` as indented JSON to ``path``."""
    Path(path).write_text(_encode(data), encoding="utf-8")