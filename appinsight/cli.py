"""Command-line entry point for the iOS app analysis tool."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from appinsight import analyzer, ipatool, report
from appinsight.analyzer import AnalysisError
from appinsight.ipatool import IpatoolError
from appinsight.output import Result, new_error, new_ok, print_json, write_data_to_file
from appinsight.report import ReportError
from appinsight.system import check_tool, missing_tool_error, run_doctor

VERSION = "0.1.0"

_DESCRIPTION = (
    "AppInsight CLI is a developer-oriented iOS App analysis tool. It can search and "
    "download App Store IPAs, analyze visible information including Info.plist, "
    "permissions, frameworks, resources, and generate structured reports."
)

_REPORT_RENDERERS: dict[str, Callable[[report.AnalysisResult], str]] = {
    "markdown": report.generate_markdown,
    "html": report.generate_html,
}


class _Parser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def _emit(result: Result) -> int:
    print_json(result)
    return 0


def _run_doctor(args: argparse.Namespace) -> int:
    return _emit(new_ok("doctor", run_doctor(VERSION)))


def _run_search(args: argparse.Namespace) -> int:
    if not check_tool("ipatool").available:
        return _emit(new_error("search", missing_tool_error("ipatool")))
    try:
        response = ipatool.search(args.keyword, args.limit)
    except IpatoolError as exc:
        return _emit(new_error("search", str(exc)))
    return _emit(new_ok("search", response))


def _run_fetch(args: argparse.Namespace) -> int:
    if not args.bundle_id:
        return _emit(new_error("fetch-ios", "--bundle-id is required"))
    if not check_tool("ipatool").available:
        return _emit(new_error("fetch-ios", missing_tool_error("ipatool")))
    try:
        response = ipatool.fetch(args.bundle_id, args.output, args.purchase)
    except IpatoolError as exc:
        return _emit(new_error("fetch-ios", str(exc)))
    return _emit(new_ok("fetch-ios", response))


def _run_analyze(args: argparse.Namespace) -> int:
    if not check_tool("plutil").available:
        return _emit(new_error("analyze-ipa", missing_tool_error("plutil")))
    try:
        result = analyzer.analyze(args.ipa_path)
    except AnalysisError as exc:
        return _emit(new_error("analyze-ipa", str(exc)))
    if args.output:
        try:
            write_data_to_file(result, args.output)
        except OSError as exc:
            return _emit(new_error("analyze-ipa", f"failed to write output file: {exc}"))
    return _emit(new_ok("analyze-ipa", result))


def _run_report(args: argparse.Namespace) -> int:
    try:
        analysis = report.load_analysis(args.analysis_json)
    except ReportError as exc:
        return _emit(new_error("report", str(exc)))

    render = _REPORT_RENDERERS.get(args.format)
    if render is None:
        return _emit(
            new_error(
                "report",
                f"unsupported format: {args.format} (supported: markdown, html)",
            )
        )

    content = render(analysis)
    if args.output:
        try:
            report.write_report(content, args.output)
        except OSError as exc:
            return _emit(new_error("report", f"failed to write report: {exc}"))
    sys.stdout.write(content)
    sys.stdout.flush()
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--json",
        action="store_true",
        default=argparse.SUPPRESS,
        help="output in JSON format",
    )

    parser = _Parser(
        prog="appinsight",
        description=_DESCRIPTION,
    )
    parser.add_argument("--json", action="store_true", default=False, help="output in JSON format")
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    doctor = commands.add_parser(
        "doctor", parents=[common], help="Check environment and dependencies"
    )
    doctor.set_defaults(handler=_run_doctor)

    search = commands.add_parser(
        "search", parents=[common], help="Search App Store apps via ipatool"
    )
    search.add_argument("keyword")
    search.add_argument("--limit", type=int, default=10, help="max number of results")
    search.set_defaults(handler=_run_search)

    fetch = commands.add_parser(
        "fetch-ios", parents=[common], help="Download IPA from App Store via ipatool"
    )
    fetch.add_argument("--bundle-id", default="", help="bundle identifier of the app")
    fetch.add_argument(
        "--output", default="./downloads", help="output directory for downloaded IPA"
    )
    fetch.add_argument(
        "--purchase", action="store_true", help="purchase the app if needed"
    )
    fetch.set_defaults(handler=_run_fetch)

    analyze = commands.add_parser(
        "analyze-ipa", parents=[common], help="Analyze an IPA file for visible information"
    )
    analyze.add_argument("ipa_path", metavar="ipa-path")
    analyze.add_argument("--output", default="", help="write analysis result to file")
    analyze.set_defaults(handler=_run_analyze)

    report_cmd = commands.add_parser(
        "report", parents=[common], help="Generate a Markdown report from analysis JSON"
    )
    report_cmd.add_argument("analysis_json", metavar="analysis-json")
    report_cmd.add_argument(
        "--format", default="markdown", help="output format (markdown, html)"
    )
    report_cmd.add_argument("--output", default="", help="write report to file")
    report_cmd.set_defaults(handler=_run_report)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())