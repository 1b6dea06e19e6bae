"""Data model of an IPA analysis and its JSON form."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field, fields
from typing import Any


def _json(key: str, kind: Any, **kwargs: Any) -> Any:
    return field(metadata={"json": key, "kind": kind}, **kwargs)


def _str(key: str) -> Any:
    return _json(key, str, default="")


def _bool(key: str) -> Any:
    return _json(key, bool, default=False)


def _int(key: str) -> Any:
    return _json(key, int, default=0)


def _list(key: str, item: Any = str) -> Any:
    return _json(key, ("list", item), default_factory=list)


def _nested(key: str, cls: type) -> Any:
    return _json(key, cls, default_factory=cls)


@dataclass
class EncryptionInfo:
    likely_encrypted: bool = _bool("likelyEncrypted")
    reason: str = _str("reason")


@dataclass
class BundleInfo:
    name: str = _str("name")
    bundle_id: str = _str("bundleId")
    version: str = _str("version")
    build: str = _str("build")
    minimum_os_version: str = _str("minimumOSVersion")
    device_families: list[str] = _list("deviceFamilies")


@dataclass
class PermissionDetail:
    key: str = _str("key")
    description: str = _str("description")
    risk: str = _str("risk")


@dataclass
class PermissionsInfo:
    photo_library: bool = _bool("photoLibrary")
    camera: bool = _bool("camera")
    microphone: bool = _bool("microphone")
    location: bool = _bool("location")
    contacts: bool = _bool("contacts")
    calendars: bool = _bool("calendars")
    tracking: bool = _bool("tracking")
    speech_recognition: bool = _bool("speechRecognition")
    face_id: bool = _bool("faceID")
    bluetooth: bool = _bool("bluetooth")
    motion: bool = _bool("motion")
    details: list[PermissionDetail] = _list("details", PermissionDetail)


@dataclass
class FrameworksInfo:
    system: list[str] = _list("system")
    third_party_hints: list[str] = _list("thirdPartyHints")


@dataclass
class ResourcesInfo:
    asset_catalogs: int = _int("assetCatalogs")
    storyboards: int = _int("storyboards")
    nibs: int = _int("nibs")
    strings_files: int = _int("stringsFiles")
    json_files: int = _int("jsonFiles")
    ml_models: int = _int("mlModels")
    fonts: int = _int("fonts")
    images: int = _int("images")
    audio_files: int = _int("audioFiles")
    app_extensions: int = _int("appExtensions")


@dataclass
class TechStackInference:
    possible_languages: list[str] = _list("possibleLanguages")
    possible_frameworks: list[str] = _list("possibleFrameworks")
    possible_sdks: list[str] = _list("possibleSDKs")
    capabilities: list[str] = _list("capabilities")


@dataclass
class LLMContext:
    summary: str = _str("summary")
    recommended_questions: list[str] = _list("recommendedQuestions")


@dataclass
class AnalysisResult:
    """Everything learned from one IPA."""

    ok: bool = _bool("ok")
    command: str = _str("command")
    target: str = _str("target")
    platform: str = _str("platform")
    encryption: EncryptionInfo = _nested("encryption", EncryptionInfo)
    bundle: BundleInfo = _nested("bundle", BundleInfo)
    permissions: PermissionsInfo = _nested("permissions", PermissionsInfo)
    url_schemes: list[str] = _list("urlSchemes")
    query_schemes: list[str] = _list("querySchemes")
    background_modes: list[str] = _list("backgroundModes")
    frameworks: FrameworksInfo = _nested("frameworks", FrameworksInfo)
    resources: ResourcesInfo = _nested("resources", ResourcesInfo)
    tech_stack_inference: TechStackInference = _nested("techStackInference", TechStackInference)
    llm_context: LLMContext = _nested("llmContext", LLMContext)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, with camelCase keys."""
        return _dump(self)

    @classmethod
    def from_dict(cls, data: Any) -> AnalysisResult:
        """Build a result from its JSON form; missing fields take their defaults."""
        return _load(cls, data, "analysis")


_TYPE_NAMES = {str: "string", bool: "boolean", int: "integer"}


def _dump(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.metadata["json"]: _dump(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _zero(kind: Any) -> Any:
    if isinstance(kind, tuple):
        return []
    if dataclasses.is_dataclass(kind):
        return kind()
    return kind()


def _convert(kind: Any, value: Any, where: str) -> Any:
    if value is None:
        return _zero(kind)
    if isinstance(kind, tuple):
        _, item = kind
        if not isinstance(value, list):
            raise ValueError(f"field {where}: expected an array, got {type(value).__name__}")
        return [_convert(item, entry, f"{where}[{pos}]") for pos, entry in enumerate(value)]
    if dataclasses.is_dataclass(kind):
        return _load(kind, value, where)
    wrong = isinstance(value, bool) if kind is int else False
    if wrong or not isinstance(value, kind):
        raise ValueError(
            f"field {where}: expected {_TYPE_NAMES.get(kind, kind.__name__)}, "
            f"got {type(value).__name__}"
        )
    return value


def _load(cls: type, data: Any, where: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"{where}: expected an object, got {type(data).__name__}")
    kwargs = {}
    for f in fields(cls):
        key = f.metadata["json"]
        value = data.get(key)
        if value is None:
            continue
        kwargs[f.name] = _convert(f.metadata["kind"], value, f"{where}.{key}")
    return cls(**kwargs)