import json

import pytest

from appinsight.models import (
    AnalysisResult,
    BundleInfo,
    EncryptionInfo,
    FrameworksInfo,
    PermissionDetail,
    PermissionsInfo,
    ResourcesInfo,
    TechStackInference,
)
from appinsight.report import (
    ReportError,
    generate_html,
    generate_markdown,
    load_analysis,
    write_report,
)


@pytest.fixture
def sample():
    return AnalysisResult(
        ok=True,
        command="analyze-ipa",
        target="demo.ipa",
        platform="ios",
        encryption=EncryptionInfo(
            likely_encrypted=True,
            reason="App Store IPA is usually encrypted. Binary-level analysis is limited.",
        ),
        bundle=BundleInfo(
            name="Demo",
            bundle_id="com.example.demo",
            version="1.2.3",
            build="45",
            minimum_os_version="15.0",
            device_families=["iPhone", "iPad"],
        ),
        permissions=PermissionsInfo(
            camera=True,
            photo_library=True,
            face_id=True,
            details=[
                PermissionDetail("NSCameraUsageDescription", "Take photos", "high"),
                PermissionDetail("NSPhotoLibraryUsageDescription", "Pick photos", "medium"),
                PermissionDetail("NSFaceIDUsageDescription", "Unlock", "low"),
            ],
        ),
        url_schemes=["demo"],
        query_schemes=["weixin"],
        background_modes=["audio"],
        frameworks=FrameworksInfo(system=["CoreML"], third_party_hints=["Flutter", "Firebase"]),
        resources=ResourcesInfo(ml_models=3, images=7),
        tech_stack_inference=TechStackInference(
            possible_languages=["Dart"],
            possible_frameworks=["Flutter"],
            possible_sdks=["Firebase"],
            capabilities=["可能使用本地 AI 模型"],
        ),
    )


def test_markdown_empty_analysis_uses_fallback_texts():
    md = generate_markdown(AnalysisResult())
    assert md.startswith("# AppInsight 分析报告\n\n## 1. 基础信息\n\n")
    assert "未发现声明的敏感权限。\n\n" in md
    assert "未检测到系统 Framework。\n\n" in md
    assert "未检测到第三方 SDK。\n\n" in md
    assert "基于当前分析，未发现明显的特殊实现方式。\n\n" in md
    assert "### URL Schemes" not in md
    assert "**AI 能力**" not in md
    assert md.endswith("*本报告由 AppInsight CLI 自动生成，仅供开发者技术分析参考。*\n")


def test_markdown_contains_details(sample):
    md = generate_markdown(sample)
    assert "| Bundle ID | com.example.demo |\n" in md
    assert "| 支持设备 | iPhone, iPad |\n" in md
    assert "| `NSCameraUsageDescription` | Take photos | high |\n" in md
    assert "- CoreML\n" in md
    assert "| Core ML 模型 | 3 |\n" in md
    assert "### URL Schemes\n\n- `demo`\n\n" in md
    assert "### Query Schemes\n\n- `weixin`\n\n" in md
    assert "### Background Modes\n\n- `audio`\n\n" in md
    assert "- **可能的 SDK**: Firebase\n" in md
    assert "- **技术路线**: 可能使用了 Flutter、Firebase 等第三方技术。\n" in md
    assert "**AI 能力**" in md


def test_markdown_sections_are_in_order(sample):
    md = generate_markdown(sample)
    positions = [md.index(f"## {n}.") for n in range(1, 10)]
    assert positions == sorted(positions)


def test_html_escapes_user_values(sample):
    sample.bundle.name = "<A&B>"
    sample.bundle.bundle_id = "it's \"q\""
    page = generate_html(sample)
    assert "<title>AppInsight 分析报告 - &lt;A&amp;B&gt;</title>" in page
    assert "<code>it&#39;s &#34;q&#34;</code>" in page
    assert "<A&B>" not in page


def test_html_risk_tags(sample):
    page = generate_html(sample)
    assert '<span class="tag tag-high">high</span>' in page
    assert '<span class="tag tag-medium">medium</span>' in page
    assert '<span class="tag tag-low">low</span>' in page


def test_html_structure(sample):
    page = generate_html(sample)
    assert page.startswith("<!DOCTYPE html>\n")
    assert page.endswith("</body>\n</html>\n")
    assert "<tr><td>Core ML 模型</td><td>3</td></tr>\n" in page
    assert "<h3>URL Schemes</h3>\n<ul>\n<li><code>demo</code></li>\n</ul>\n" in page
    assert page.count("<li>") >= 6


def test_html_empty_analysis_fallbacks():
    page = generate_html(AnalysisResult())
    assert "<p>未发现声明的敏感权限。</p>\n" in page
    assert "<p>未检测到系统 Framework。</p>\n" in page
    assert "可能的 SDK" not in page
    assert "<h3>Query Schemes</h3>" not in page


def test_load_analysis_round_trip(tmp_path, sample):
    path = tmp_path / "analysis.json"
    path.write_text(json.dumps(sample.to_dict()), encoding="utf-8")
    loaded = load_analysis(path)
    assert loaded == sample
    assert generate_markdown(loaded) == generate_markdown(sample)


def test_load_analysis_missing_file(tmp_path):
    with pytest.raises(ReportError, match="failed to read analysis file"):
        load_analysis(tmp_path / "missing.json")


def test_load_analysis_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ReportError, match="failed to parse analysis JSON"):
        load_analysis(path)


def test_load_analysis_wrong_field_type(tmp_path):
    path = tmp_path / "wrong.json"
    path.write_text(json.dumps({"bundle": {"name": 5}}), encoding="utf-8")
    with pytest.raises(ReportError, match="failed to parse analysis JSON"):
        load_analysis(path)


def test_write_report_round_trip(tmp_path, sample):
    content = generate_markdown(sample)
    path = tmp_path / "report.md"
    write_report(content, path)
    assert path.read_text(encoding="utf-8") == content