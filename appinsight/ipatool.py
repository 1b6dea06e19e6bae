"""Searching and downloading App Store apps through the ipatool command."""

from __future__ import annotations

import hashlib
import json
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any

_INSTALL_HINT = "ipatool is not installed. Install it via: brew install majd/repo/ipatool"
_LOGIN_HINT = "ipatool is not logged in. Please run: ipatool auth login"
ENCRYPTED_REMINDER = (
    "App Store IPA is usually encrypted. Only visible structure analysis is available."
)


class IpatoolError(Exception):
    """Raised when ipatool cannot be run or its output cannot be used."""


@dataclass
class SearchResult:
    """One app found by a search."""

    name: str
    bundle_id: str
    version: str
    track_id: int
    price: Any
    raw: dict[str, Any] = field(default_factory=dict)
    developer: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "bundleId": self.bundle_id,
            "version": self.version,
        }
        if self.developer:
            out["developer"] = self.developer
        out["trackId"] = self.track_id
        out["price"] = self.price
        out["raw"] = dict(self.raw)
        return out


@dataclass
class SearchResponse:
    """All apps found by a search."""

    ok: bool
    command: str
    count: int
    results: list[SearchResult]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "command": self.command,
            "count": self.count,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass
class FetchResponse:
    """A downloaded IPA and its checksum."""

    ok: bool
    command: str
    bundle_id: str
    ipa_path: str
    file_size: int
    sha256: str
    encrypted_reminder: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "command": self.command,
            "bundleId": self.bundle_id,
            "ipaPath": self.ipa_path,
            "fileSize": self.file_size,
            "sha256": self.sha256,
            "encryptedReminder": self.encrypted_reminder,
        }


def _run(args: list[str], action: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(["ipatool", *args], capture_output=True, check=False)
    except FileNotFoundError:
        raise IpatoolError(_INSTALL_HINT) from None
    except OSError as exc:
        if "not found" in str(exc):
            raise IpatoolError(_INSTALL_HINT) from None
        raise IpatoolError(f"ipatool {action} failed: {exc}") from exc


def _decode(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _parse_object(stdout: str, message: str) -> dict[str, Any]:
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise IpatoolError(f"{message}: {exc}\nraw output: {stdout}") from None
    if not isinstance(data, dict):
        raise IpatoolError(f"{message}: expected a JSON object\nraw output: {stdout}")
    return data


def _expect(value: Any, kind: type, default: Any, name: str, stdout: str, message: str) -> Any:
    if value is None:
        return default
    if kind is int and isinstance(value, bool) or not isinstance(value, kind):
        raise IpatoolError(f"{message}: field {name!r} has the wrong type\nraw output: {stdout}")
    return value


def search(keyword: str, limit: int) -> SearchResponse:
    """Search the App Store for ``keyword``, returning at most ``limit`` apps when positive."""
    args = ["search", keyword, "--format", "json"]
    if limit > 0:
        args += ["--limit", str(limit)]

    proc = _run(args, "search")
    stdout = _decode(proc.stdout)
    if proc.returncode != 0:
        stderr = _decode(proc.stderr)
        if "not found" in stderr:
            raise IpatoolError(_INSTALL_HINT)
        raise IpatoolError(f"ipatool search failed: {stderr}")

    message = "failed to parse ipatool output as JSON"
    data = _parse_object(stdout, message)
    apps = _expect(data.get("apps"), list, [], "apps", stdout, message)

    results = []
    for app in apps:
        if app is None:
            app = {}
        if not isinstance(app, dict):
            raise IpatoolError(f"{message}: app entry is not an object\nraw output: {stdout}")
        track_id = _expect(app.get("id"), int, 0, "id", stdout, message)
        bundle_id = _expect(app.get("bundleID"), str, "", "bundleID", stdout, message)
        name = _expect(app.get("name"), str, "", "name", stdout, message)
        version = _expect(app.get("version"), str, "", "version", stdout, message)
        price = app.get("price")
        results.append(
            SearchResult(
                name=name,
                bundle_id=bundle_id,
                version=version,
                track_id=track_id,
                price=price,
                raw={
                    "id": track_id,
                    "bundleID": bundle_id,
                    "name": name,
                    "version": version,
                    "price": price,
                },
            )
        )

    return SearchResponse(ok=True, command="search", count=len(results), results=results)


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


def _sha256(path: str) -> str:
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(1 << 20), b""):
                digest.update(chunk)
    except OSError:
        return ""
    return digest.hexdigest()


def fetch(bundle_id: str, output_dir: str, purchase: bool) -> FetchResponse:
    """Download the IPA of ``bundle_id`` into ``output_dir``."""
    args = ["download", "--bundle-identifier", bundle_id]
    if purchase:
        args.append("--purchase")
    if output_dir:
        args += ["--output", output_dir]
    args += ["--format", "json"]

    proc = _run(args, "download")
    stdout = _decode(proc.stdout)
    if proc.returncode != 0:
        stderr = _decode(proc.stderr)
        if "not found" in stderr:
            raise IpatoolError(_INSTALL_HINT)
        if any(word in stderr for word in ("not authenticated", "login", "auth")):
            raise IpatoolError(_LOGIN_HINT)
        raise IpatoolError(f"ipatool download failed: {stderr}")

    message = "failed to parse ipatool download output"
    data = _parse_object(stdout, message)
    ipa_path = _expect(data.get("path"), str, "", "path", stdout, message)

    return FetchResponse(
        ok=True,
        command="fetch-ios",
        bundle_id=bundle_id,
        ipa_path=ipa_path,
        file_size=_file_size(ipa_path),
        sha256=_sha256(ipa_path),
        encrypted_reminder=ENCRYPTED_REMINDER,
    )