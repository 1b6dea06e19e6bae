"""Markdown and HTML reports built from an analysis result."""

from __future__ import annotations

import json
import os
from pathlib import Path

from appinsight.models import AnalysisResult


class ReportError(Exception):
    """Raised when an analysis file cannot be read or parsed."""


# Same escapes as a standard HTML text escaper: & ' < > "
_HTML_ESCAPES = str.maketrans(
    {"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"}
)

_SUGGESTIONS = (
    "结合 App Store 截图，对照权限和 Framework 推断功能模块。",
    "阅读用户评论，了解核心功能和用户痛点。",
    "查看更新记录，追踪功能迭代方向。",
    "访问官网和文档，了解产品定位和技术博客。",
    "手动体验 App 并录屏，结合分析结果做功能映射。",
)

_HTML_HEAD_START = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>AppInsight 分析报告 - """

_HTML_HEAD_END = """</title>
<style>
  :root {
    --bg: #ffffff;
    --surface: #f8f9fa;
    --border: #e1e4e8;
    --text: #24292e;
    --text-secondary: #586069;
    --accent: #0366d6;
    --risk-high: #d73a49;
    --risk-medium: #e36209;
    --risk-low: #28a745;
    --table-header-bg: #f6f8fa;
  }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Helvetica, Arial, sans-serif;
    color: var(--text);
    background: var(--bg);
    line-height: 1.6;
    padding: 2rem;
    max-width: 960px;
    margin: 0 auto;
  }
  h1 { font-size: 1.75rem; margin-bottom: 1rem; padding-bottom: 0.5rem; border-bottom: 2px solid var(--accent); }
  h2 { font-size: 1.35rem; margin-top: 2rem; margin-bottom: 0.75rem; padding-bottom: 0.3rem; border-bottom: 1px solid var(--border); }
  h3 { font-size: 1.1rem; margin-top: 1.25rem; margin-bottom: 0.5rem; }
  table { width: 100%; border-collapse: collapse; margin: 0.75rem 0; font-size: 0.9rem; }
  th, td { padding: 0.5rem 0.75rem; border: 1px solid var(--border); text-align: left; }
  th { background: var(--table-header-bg); font-weight: 600; }
  tr:nth-child(even) { background: var(--surface); }
  ul { padding-left: 1.5rem; margin: 0.5rem 0; }
  li { margin: 0.25rem 0; }
  code { background: var(--surface); padding: 0.15rem 0.4rem; border-radius: 4px; font-size: 0.85em; font-family: "SF Mono", Consolas, "Liberation Mono", Menlo, monospace; }
  .risk-high { color: var(--risk-high); font-weight: 600; }
  .risk-medium { color: var(--risk-medium); font-weight: 600; }
  .risk-low { color: var(--risk-low); font-weight: 600; }
  .notice { background: #fff8e1; border-left: 4px solid #f9a825; padding: 0.75rem 1rem; margin: 0.75rem 0; border-radius: 4px; font-size: 0.9rem; }
  .info { background: #e8f4fd; border-left: 4px solid var(--accent); padding: 0.75rem 1rem; margin: 0.75rem 0; border-radius: 4px; font-size: 0.9rem; }
  .footer { margin-top: 2rem; padding-top: 1rem; border-top: 1px solid var(--border); color: var(--text-secondary); font-size: 0.85rem; text-align: center; }
  .tag { display: inline-block; padding: 0.15rem 0.5rem; border-radius: 12px; font-size: 0.8rem; font-weight: 500; margin: 0.1rem 0.2rem; }
  .tag-high { background: #fdecea; color: var(--risk-high); }
  .tag-medium { background: #fff3e0; color: var(--risk-medium); }
  .tag-low { background: #e8f5e9; color: var(--risk-low); }
</style>
</head>
<body>
"""

_RISK_TAGS = {"high": "tag-high", "medium": "tag-medium"}


def _esc(text: str) -> str:
    return text.translate(_HTML_ESCAPES)


def _resource_rows(analysis: AnalysisResult) -> list[tuple[str, int]]:
    res = analysis.resources
    return [
        ("Asset Catalog (.car)", res.asset_catalogs),
        ("Storyboard (.storyboardc)", res.storyboards),
        ("Nib (.nib)", res.nibs),
        ("Strings 文件", res.strings_files),
        ("JSON 文件", res.json_files),
        ("Core ML 模型", res.ml_models),
        ("字体文件", res.fonts),
        ("图片文件", res.images),
        ("音频文件", res.audio_files),
        ("App Extension", res.app_extensions),
    ]


def _scheme_sections(analysis: AnalysisResult) -> list[tuple[str, list[str]]]:
    return [
        ("URL Schemes", analysis.url_schemes),
        ("Query Schemes", analysis.query_schemes),
        ("Background Modes", analysis.background_modes),
    ]


def generate_markdown(analysis: AnalysisResult) -> str:
    """Render ``analysis`` as a Markdown report."""
    bundle = analysis.bundle
    perms = analysis.permissions
    fws = analysis.frameworks
    tech = analysis.tech_stack_inference
    out: list[str] = []
    add = out.append

    add("# AppInsight 分析报告\n\n")

    add("## 1. 基础信息\n\n")
    add("| 字段 | 值 |\n")
    add("|------|----|\n")
    add(f"| App 名称 | {bundle.name} |\n")
    add(f"| Bundle ID | {bundle.bundle_id} |\n")
    add(f"| 版本 | {bundle.version} |\n")
    add(f"| Build | {bundle.build} |\n")
    add(f"| 最低系统版本 | {bundle.minimum_os_version} |\n")
    add(f"| 支持设备 | {', '.join(bundle.device_families)} |\n")
    add("\n")

    add("## 2. 分析限制\n\n")
    add(f"- **加密状态**: {analysis.encryption.reason}\n")
    add("- 该 IPA 很可能是 App Store 加密 IPA，无法可靠做代码级反编译和核心算法提取。\n")
    add("- 本报告只基于可见元数据、资源、权限、Framework 和文件结构推断。\n")
    add("- 所有推断均需进一步验证，不应作为确定结论。\n\n")

    add("## 3. 权限分析\n\n")
    if not perms.details:
        add("未发现声明的敏感权限。\n\n")
    else:
        add("| 权限 Key | 用途描述 | 风险等级 |\n")
        add("|----------|----------|----------|\n")
        for detail in perms.details:
            add(f"| `{detail.key}` | {detail.description} | {detail.risk} |\n")
        add("\n")

    add("## 4. Framework 分析\n\n")
    add("### 系统 Framework\n\n")
    if not fws.system:
        add("未检测到系统 Framework。\n\n")
    else:
        out.extend(f"- {name}\n" for name in fws.system)
        add("\n")

    add("### 可能的第三方 SDK\n\n")
    if not fws.third_party_hints:
        add("未检测到第三方 SDK。\n\n")
    else:
        out.extend(f"- {name}\n" for name in fws.third_party_hints)
        add("\n")

    add("## 5. 资源结构分析\n\n")
    add("| 资源类型 | 数量 |\n")
    add("|----------|------|\n")
    out.extend(f"| {label} | {count} |\n" for label, count in _resource_rows(analysis))
    add("\n")

    for title, items in _scheme_sections(analysis):
        if items:
            add(f"### {title}\n\n")
            out.extend(f"- `{item}`\n" for item in items)
            add("\n")

    add("## 6. 技术栈推断\n\n")
    add(f"- **可能的语言**: {', '.join(tech.possible_languages)}\n")
    add(f"- **可能的框架**: {', '.join(tech.possible_frameworks)}\n")
    if tech.possible_sdks:
        add(f"- **可能的 SDK**: {', '.join(tech.possible_sdks)}\n")
    add("\n")
    add("> **注意**: 以上技术栈为基于 Framework 和资源结构的推测，可能不完全准确。需要进一步验证。\n\n")

    add("## 7. 可能的实现方式\n\n")
    if tech.capabilities:
        add("基于权限、Framework 和资源分析，该应用可能具备以下能力：\n\n")
        out.extend(f"- {cap}\n" for cap in tech.capabilities)
        add("\n")
    else:
        add("基于当前分析，未发现明显的特殊实现方式。\n\n")

    add("## 8. 对开发者的借鉴价值\n\n")
    add(
        f"- **功能结构**: {bundle.name} 声明了 {len(perms.details)} 项权限，"
        f"使用了 {len(fws.system)} 个系统 Framework。\n"
    )
    if fws.third_party_hints:
        add(f"- **技术路线**: 可能使用了 {'、'.join(fws.third_party_hints)} 等第三方技术。\n")
    if analysis.resources.ml_models > 0:
        add("- **AI 能力**: 包含 Core ML 模型，可能集成了本地 AI 推理能力，值得借鉴。\n")
    add("- **无法确认的部分**: 由于 IPA 加密，无法确认具体代码实现、架构模式、网络请求细节等。\n\n")

    add("## 9. 后续分析建议\n\n")
    for number, suggestion in enumerate(_SUGGESTIONS, start=1):
        add(f"{number}. {suggestion}\n")
    add("6. 使用 `strings` 工具进一步提取二进制中的可读字符串，寻找 API 端点、类名等线索。\n\n")

    add("---\n\n")
    add("*本报告由 AppInsight CLI 自动生成，仅供开发者技术分析参考。*\n")

    return "".join(out)


def generate_html(analysis: AnalysisResult) -> str:
    """Render ``analysis`` as a standalone HTML page."""
    bundle = analysis.bundle
    perms = analysis.permissions
    fws = analysis.frameworks
    tech = analysis.tech_stack_inference
    out: list[str] = [_HTML_HEAD_START, _esc(bundle.name), _HTML_HEAD_END]
    add = out.append

    add("<h1>AppInsight 分析报告</h1>\n")

    add("<h2>1. 基础信息</h2>\n")
    add("<table>\n")
    add("<tr><th>字段</th><th>值</th></tr>\n")
    add(f"<tr><td>App 名称</td><td>{_esc(bundle.name)}</td></tr>\n")
    add(f"<tr><td>Bundle ID</td><td><code>{_esc(bundle.bundle_id)}</code></td></tr>\n")
    add(f"<tr><td>版本</td><td>{_esc(bundle.version)}</td></tr>\n")
    add(f"<tr><td>Build</td><td>{_esc(bundle.build)}</td></tr>\n")
    add(f"<tr><td>最低系统版本</td><td>{_esc(bundle.minimum_os_version)}</td></tr>\n")
    add(f"<tr><td>支持设备</td><td>{_esc(', '.join(bundle.device_families))}</td></tr>\n")
    add("</table>\n")

    add("<h2>2. 分析限制</h2>\n")
    add(
        f'<div class="notice"><strong>加密状态</strong>：{_esc(analysis.encryption.reason)}'
        "<br>该 IPA 很可能是 App Store 加密 IPA，无法可靠做代码级反编译和核心算法提取。"
        "<br>本报告只基于可见元数据、资源、权限、Framework 和文件结构推断。"
        "<br>所有推断均需进一步验证，不应作为确定结论。</div>\n"
    )

    add("<h2>3. 权限分析</h2>\n")
    if not perms.details:
        add("<p>未发现声明的敏感权限。</p>\n")
    else:
        add("<table>\n")
        add("<tr><th>权限 Key</th><th>用途描述</th><th>风险等级</th></tr>\n")
        for detail in perms.details:
            tag_class = _RISK_TAGS.get(detail.risk, "tag-low")
            add(
                f"<tr><td><code>{_esc(detail.key)}</code></td>"
                f"<td>{_esc(detail.description)}</td>"
                f'<td><span class="tag {tag_class}">{_esc(detail.risk)}</span></td></tr>\n'
            )
        add("</table>\n")

    add("<h2>4. Framework 分析</h2>\n")
    add("<h3>系统 Framework</h3>\n")
    if not fws.system:
        add("<p>未检测到系统 Framework。</p>\n")
    else:
        add("<ul>\n")
        out.extend(f"<li>{_esc(name)}</li>\n" for name in fws.system)
        add("</ul>\n")

    add("<h3>可能的第三方 SDK</h3>\n")
    if not fws.third_party_hints:
        add("<p>未检测到第三方 SDK。</p>\n")
    else:
        add("<ul>\n")
        out.extend(f"<li>{_esc(name)}</li>\n" for name in fws.third_party_hints)
        add("</ul>\n")

    add("<h2>5. 资源结构分析</h2>\n")
    add("<table>\n")
    add("<tr><th>资源类型</th><th>数量</th></tr>\n")
    out.extend(
        f"<tr><td>{label}</td><td>{count}</td></tr>\n" for label, count in _resource_rows(analysis)
    )
    add("</table>\n")

    for title, items in _scheme_sections(analysis):
        if items:
            add(f"<h3>{title}</h3>\n<ul>\n")
            out.extend(f"<li><code>{_esc(item)}</code></li>\n" for item in items)
            add("</ul>\n")

    add("<h2>6. 技术栈推断</h2>\n")
    add("<table>\n")
    add(f"<tr><td>可能的语言</td><td>{_esc(', '.join(tech.possible_languages))}</td></tr>\n")
    add(f"<tr><td>可能的框架</td><td>{_esc(', '.join(tech.possible_frameworks))}</td></tr>\n")
    if tech.possible_sdks:
        add(f"<tr><td>可能的 SDK</td><td>{_esc(', '.join(tech.possible_sdks))}</td></tr>\n")
    add("</table>\n")
    add('<div class="info">以上技术栈为基于 Framework 和资源结构的推测，可能不完全准确。需要进一步验证。</div>\n')

    add("<h2>7. 可能的实现方式</h2>\n")
    if tech.capabilities:
        add("<p>基于权限、Framework 和资源分析，该应用可能具备以下能力：</p>\n<ul>\n")
        out.extend(f"<li>{_esc(cap)}</li>\n" for cap in tech.capabilities)
        add("</ul>\n")
    else:
        add("<p>基于当前分析，未发现明显的特殊实现方式。</p>\n")

    add("<h2>8. 对开发者的借鉴价值</h2>\n")
    add("<ul>\n")
    add(
        f"<li><strong>功能结构</strong>：{_esc(bundle.name)} 声明了 {len(perms.details)} 项权限，"
        f"使用了 {len(fws.system)} 个系统 Framework。</li>\n"
    )
    if fws.third_party_hints:
        add(
            f"<li><strong>技术路线</strong>：可能使用了 "
            f"{_esc('、'.join(fws.third_party_hints))} 等第三方技术。</li>\n"
        )
    if analysis.resources.ml_models > 0:
        add("<li><strong>AI 能力</strong>：包含 Core ML 模型，可能集成了本地 AI 推理能力，值得借鉴。</li>\n")
    add("<li><strong>无法确认的部分</strong>：由于 IPA 加密，无法确认具体代码实现、架构模式、网络请求细节等。</li>\n")
    add("</ul>\n")

    add("<h2>9. 后续分析建议</h2>\n")
    add("<ol>\n")
    suggestions = (
        *_SUGGESTIONS,
        "使用 strings 工具进一步提取二进制中的可读字符串，寻找 API 端点、类名等线索。",
    )
    out.extend(f"<li>{_esc(text)}</li>\n" for text in suggestions)
    add("</ol>\n")

    add('<div class="footer">本报告由 AppInsight CLI 自动生成，仅供开发者技术分析参考。</div>\n')
    add("</body>\n</html>\n")

    return "".join(out)


def load_analysis(path: str | os.PathLike[str]) -> AnalysisResult:
    """Load an analysis result previously written as JSON."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ReportError(f"failed to read analysis file: {exc}") from exc
    try:
        data = json.loads(raw)
        if data is None:
            return AnalysisResult()
        return AnalysisResult.from_dict(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ReportError(f"failed to parse analysis JSON: {exc}") from exc


def write_report(content: str, path: str | os.PathLike[str]) -> None:
    """Write report text to ``path``."""
    Path(path).write_text(content, encoding="utf-8", newline="")