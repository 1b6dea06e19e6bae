"""Unpacking an IPA and inferring what it contains from its visible structure."""

from __future__ import annotations

import os
import plistlib
import subprocess
import tempfile
import zipfile
from pathlib import Path
from typing import Any

from appinsight.models import (
    AnalysisResult,
    BundleInfo,
    EncryptionInfo,
    FrameworksInfo,
    LLMContext,
    PermissionDetail,
    PermissionsInfo,
    ResourcesInfo,
    TechStackInference,
)

ENCRYPTION_REASON = "App Store IPA is usually encrypted. Binary-level analysis is limited."


class AnalysisError(Exception):
    """Raised when an IPA cannot be unpacked or read."""


# Info.plist key -> (PermissionsInfo attribute, risk level)
_PERMISSION_KEYS: dict[str, tuple[str, str]] = {
    "NSCameraUsageDescription": ("camera", "high"),
    "NSMicrophoneUsageDescription": ("microphone", "high"),
    "NSPhotoLibraryUsageDescription": ("photo_library", "medium"),
    "NSPhotoLibraryAddUsageDescription": ("photo_library", "medium"),
    "NSLocationWhenInUseUsageDescription": ("location", "high"),
    "NSLocationAlwaysAndWhenInUseUsageDescription": ("location", "high"),
    "NSContactsUsageDescription": ("contacts", "high"),
    "NSCalendarsUsageDescription": ("calendars", "medium"),
    "NSUserTrackingUsageDescription": ("tracking", "high"),
    "NSSpeechRecognitionUsageDescription": ("speech_recognition", "medium"),
    "NSFaceIDUsageDescription": ("face_id", "low"),
    "NSBluetoothAlwaysUsageDescription": ("bluetooth", "medium"),
    "NSMotionUsageDescription": ("motion", "medium"),
}

_THIRD_PARTY_HINTS: dict[str, str] = {
    "Flutter": "Flutter",
    "App": "Flutter",
    "Hermes": "React Native",
    "React": "React Native",
    "UnityFramework": "Unity",
    "Capacitor": "Capacitor/Hybrid",
    "Cordova": "Cordova/Hybrid",
    "FirebaseCore": "Firebase",
    "FirebaseAnalytics": "Firebase",
    "FirebaseCrashlytics": "Firebase",
    "FirebaseMessaging": "Firebase",
    "FirebaseRemoteConfig": "Firebase",
    "Sentry": "Sentry",
    "RevenueCat": "RevenueCat",
}

_SYSTEM_CAPABILITIES: dict[str, str] = {
    "Vision": "可能使用 Apple Vision 框架",
    "CoreImage": "可能做图像处理",
    "CoreML": "可能使用本地 AI 模型",
    "Metal": "可能使用 GPU 加速",
    "AVFoundation": "可能处理相机、视频、音频",
    "StoreKit": "可能有内购",
    "ARKit": "可能使用 AR 功能",
    "MapKit": "可能使用地图",
    "WebKit": "可能内嵌网页",
    "HealthKit": "可能访问健康数据",
    "HomeKit": "可能控制智能家居",
    "CloudKit": "可能使用 iCloud 同步",
    "CoreLocation": "可能使用定位服务",
    "CoreBluetooth": "可能使用蓝牙",
    "Photos": "可能访问相册",
    "Contacts": "可能访问通讯录",
}

_APPLE_PREFIXES = (
    "UI", "NS", "Core", "AV", "CF", "GL", "Metal", "Vision", "Map", "Store", "AR",
    "Web", "Health", "Home", "Cloud", "Photo", "Contact", "Event", "Local", "Audio",
    "Video", "Game", "Scene", "Swift", "Foundation", "Network", "Security", "Quartz",
    "Sprite", "Watch", "Pass", "Social", "Media", "Ad", "Car", "Class", "Intents",
    "Siri", "User", "Device", "Background", "Push", "Natural",
)

_HYBRID_HINTS = ("Capacitor/Hybrid", "Cordova/Hybrid")
_SDK_HINTS = ("Firebase", "Sentry", "RevenueCat")

_IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".pdf", ".svg"}
_AUDIO_EXTS = {".mp3", ".wav", ".m4a", ".aac", ".caf", ".ogg"}
_FONT_EXTS = {".ttf", ".otf", ".ttc"}
_SINGLE_EXTS = {
    ".car": "asset_catalogs",
    ".storyboardc": "storyboards",
    ".nib": "nibs",
    ".strings": "strings_files",
    ".json": "json_files",
    ".mlmodelc": "ml_models",
    ".appex": "app_extensions",
}


def _extension(name: str) -> str:
    """Return the suffix from the last dot of ``name``, dot included."""
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _plist_string(plist: dict[str, Any], key: str) -> str:
    value = plist.get(key)
    return value if isinstance(value, str) else ""


def _plist_strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def analyze(ipa_path: str | os.PathLike[str]) -> AnalysisResult:
    """Unpack the IPA at ``ipa_path`` and analyse its visible contents."""
    target = os.fspath(ipa_path)
    if not os.path.exists(target):
        raise AnalysisError(f"IPA file not found: {target}")
    if not target.lower().endswith(".ipa"):
        raise AnalysisError(f"invalid file extension, expected .ipa: {target}")

    with tempfile.TemporaryDirectory(prefix="appinsight-") as tmp_dir:
        try:
            with zipfile.ZipFile(target) as archive:
                archive.extractall(tmp_dir)
        except (zipfile.BadZipFile, OSError) as exc:
            raise AnalysisError(f"failed to unzip IPA: {exc}") from exc

        payload = Path(tmp_dir) / "Payload"
        try:
            entries = sorted(os.scandir(payload), key=lambda entry: entry.name)
        except OSError as exc:
            raise AnalysisError(f"failed to read Payload directory: {exc}") from exc

        app_path = next(
            (
                Path(entry.path)
                for entry in entries
                if entry.is_dir(follow_symlinks=False) and entry.name.endswith(".app")
            ),
            None,
        )
        if app_path is None:
            raise AnalysisError("no .app directory found in Payload")

        try:
            plist = read_info_plist(app_path)
        except AnalysisError as exc:
            raise AnalysisError(f"failed to read Info.plist: {exc}") from exc

        bundle = extract_bundle_info(plist)
        permissions = extract_permissions(plist)
        frameworks = scan_frameworks(app_path)
        resources = scan_resources(app_path)
        tech = infer_tech_stack(frameworks, resources, permissions)

        return AnalysisResult(
            ok=True,
            command="analyze-ipa",
            target=target,
            platform="ios",
            encryption=EncryptionInfo(likely_encrypted=True, reason=ENCRYPTION_REASON),
            bundle=bundle,
            permissions=permissions,
            url_schemes=extract_url_schemes(plist),
            query_schemes=extract_query_schemes(plist),
            background_modes=extract_background_modes(plist),
            frameworks=frameworks,
            resources=resources,
            tech_stack_inference=tech,
            llm_context=build_llm_context(bundle, permissions, frameworks, tech),
        )


def read_info_plist(app_path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read the Info.plist of an unpacked ``.app`` bundle."""
    plist_path = Path(app_path) / "Info.plist"
    if not plist_path.exists():
        raise AnalysisError(f"Info.plist not found at {plist_path}")
    try:
        with plist_path.open("rb") as handle:
            data = plistlib.load(handle)
    except (plistlib.InvalidFileException, ValueError, OSError) as exc:
        raise AnalysisError(f"failed to parse Info.plist: {exc}") from exc
    if not isinstance(data, dict):
        raise AnalysisError("failed to parse Info.plist: top level is not a dictionary")
    return data


def extract_bundle_info(plist: dict[str, Any]) -> BundleInfo:
    """Collect the app's name, identifiers, versions and device families."""
    families: list[str] = []
    raw = plist.get("UIDeviceFamily")
    if isinstance(raw, list):
        for value in raw:
            text = _format_value(value)
            if text == "1":
                families.append("iPhone")
            elif text == "2":
                families.append("iPad")
            else:
                families.append(f"Unknown({text})")

    return BundleInfo(
        name=_plist_string(plist, "CFBundleDisplayName"),
        bundle_id=_plist_string(plist, "CFBundleIdentifier"),
        version=_plist_string(plist, "CFBundleShortVersionString"),
        build=_plist_string(plist, "CFBundleVersion"),
        minimum_os_version=_plist_string(plist, "MinimumOSVersion"),
        device_families=families,
    )


def extract_permissions(plist: dict[str, Any]) -> PermissionsInfo:
    """Find the privacy usage descriptions the app declares."""
    info = PermissionsInfo()
    for key, (attribute, risk) in _PERMISSION_KEYS.items():
        description = _plist_string(plist, key)
        if not description:
            continue
        setattr(info, attribute, True)
        info.details.append(PermissionDetail(key=key, description=description, risk=risk))
    return info


def extract_url_schemes(plist: dict[str, Any]) -> list[str]:
    """List the URL schemes the app registers."""
    url_types = plist.get("CFBundleURLTypes")
    if not isinstance(url_types, list):
        return []
    return [
        scheme
        for item in url_types
        if isinstance(item, dict)
        for scheme in _plist_strings(item.get("CFBundleURLSchemes"))
    ]


def extract_query_schemes(plist: dict[str, Any]) -> list[str]:
    """List the URL schemes the app may query."""
    return _plist_strings(plist.get("LSApplicationQueriesSchemes"))


def extract_background_modes(plist: dict[str, Any]) -> list[str]:
    """List the background modes the app declares."""
    return _plist_strings(plist.get("UIBackgroundModes"))


def scan_frameworks(app_path: str | os.PathLike[str]) -> FrameworksInfo:
    """Sort the bundled frameworks into Apple ones and third-party hints."""
    info = FrameworksInfo()
    try:
        names = sorted(entry.name for entry in os.scandir(Path(app_path) / "Frameworks"))
    except OSError:
        return info

    seen_hints: set[str] = set()
    for name in names:
        ext = _extension(name)
        base = name[: -len(ext)] if ext else name
        if is_apple_framework(base):
            info.system.append(base)
        elif base in _THIRD_PARTY_HINTS:
            hint = _THIRD_PARTY_HINTS[base]
            if hint not in seen_hints:
                seen_hints.add(hint)
                info.third_party_hints.append(hint)
        else:
            info.third_party_hints.append(base)
    return info


def is_apple_framework(name: str) -> bool:
    """Tell whether ``name`` looks like an Apple framework."""
    return name.startswith(_APPLE_PREFIXES)


def _walk_files(root: Path):
    """Yield the names of every non-directory entry below ``root``."""
    for dirpath, dirnames, filenames in os.walk(root, onerror=lambda _err: None):
        yield from filenames
        # Symlinked directories are not descended into and count as entries.
        yield from (d for d in dirnames if os.path.islink(os.path.join(dirpath, d)))


def scan_resources(app_path: str | os.PathLike[str]) -> ResourcesInfo:
    """Count the resource files in the bundle by kind."""
    info = ResourcesInfo()
    for filename in _walk_files(Path(app_path)):
        name = filename.lower()
        ext = _extension(name)
        if ext in _SINGLE_EXTS:
            attribute = _SINGLE_EXTS[ext]
            setattr(info, attribute, getattr(info, attribute) + 1)
        elif ext in _FONT_EXTS:
            info.fonts += 1
        elif ext in _IMAGE_EXTS:
            info.images += 1
        elif ext in _AUDIO_EXTS:
            info.audio_files += 1
        if name.endswith(".appex"):
            info.app_extensions += 1
    return info


def infer_tech_stack(
    frameworks: FrameworksInfo,
    resources: ResourcesInfo,
    permissions: PermissionsInfo,
) -> TechStackInference:
    """Guess languages, frameworks, SDKs and capabilities from what was found."""
    found_frameworks: list[str] = []
    sdks: list[str] = []
    has_flutter = has_react_native = has_unity = has_hybrid = False

    for hint in frameworks.third_party_hints:
        if hint == "Flutter":
            has_flutter = True
            found_frameworks.append(hint)
        elif hint == "React Native":
            has_react_native = True
            found_frameworks.append(hint)
        elif hint == "Unity":
            has_unity = True
            found_frameworks.append(hint)
        elif hint in _HYBRID_HINTS:
            has_hybrid = True
            found_frameworks.append(hint)
        elif hint in _SDK_HINTS:
            sdks.append(hint)

    languages = [
        language
        for present, language in (
            (has_flutter, "Dart"),
            (has_react_native, "JavaScript/TypeScript"),
            (has_unity, "C#"),
            (has_hybrid, "HTML/CSS/JavaScript"),
        )
        if present
    ]
    if not languages:
        languages.append("Swift/Objective-C (推测)")

    capabilities = [
        _SYSTEM_CAPABILITIES[name] for name in frameworks.system if name in _SYSTEM_CAPABILITIES
    ]
    if resources.ml_models > 0:
        capabilities.append("可能使用 Core ML 本地模型")
    if permissions.tracking:
        capabilities.append("可能做用户追踪/广告归因")
    if permissions.camera and permissions.microphone:
        capabilities.append("可能做视频录制/通话")
    if permissions.location:
        capabilities.append("可能使用定位服务")

    return TechStackInference(
        possible_languages=languages or ["Unknown"],
        possible_frameworks=found_frameworks or ["Native iOS (推测)"],
        possible_sdks=sdks,
        capabilities=capabilities,
    )


def build_llm_context(
    bundle: BundleInfo,
    permissions: PermissionsInfo,
    frameworks: FrameworksInfo,
    tech: TechStackInference,
) -> LLMContext:
    """Build a one-paragraph summary of the app and suggested follow-up questions."""
    summary = (
        f"{bundle.name} (Bundle ID: {bundle.bundle_id}, Version: {bundle.version}) "
        f"是一个 iOS 应用。技术栈推测: [{' '.join(tech.possible_frameworks)}]。"
        f"使用了 {len(frameworks.system)} 个系统 Framework 和 "
        f"{len(frameworks.third_party_hints)} 个第三方 SDK。"
        f"声明了 {len(permissions.details)} 项权限。"
    )

    questions = [f"{bundle.name} 使用了哪些第三方 SDK？各自的作用是什么？"]
    if tech.possible_frameworks:
        joined = "、".join(tech.possible_frameworks)
        questions.append(f"{bundle.name} 是否真的使用了 {joined}？如何确认？")
    if permissions.tracking:
        questions.append(f"{bundle.name} 的用户追踪实现方式是什么？")
    if permissions.camera or permissions.microphone:
        questions.append(f"{bundle.name} 的相机/麦克风权限用于什么功能？")
    questions.append("结合 App Store 截图和用户评论，可以推断出哪些核心功能？")

    return LLMContext(summary=summary, recommended_questions=questions)


def extract_strings(binary_path: str | os.PathLike[str], max_lines: int) -> list[str]:
    """Run ``strings`` on a file and return the first ``max_lines`` lines."""
    if max_lines < 0:
        raise ValueError(f"max_lines must not be negative: {max_lines}")
    command = ["strings", os.fspath(binary_path)]
    try:
        completed = subprocess.run(command, capture_output=True, check=True)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise AnalysisError(f"strings command failed: {exc}") from exc
    text = completed.stdout.decode("utf-8", errors="replace")
    return text.split("\n")[:max_lines]