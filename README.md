# appinsight

A command-line tool for developers who want to see what an iOS app is made of.
It can search the App Store and download IPAs through `ipatool`, read the
visible parts of an IPA (Info.plist, declared permissions, URL schemes,
bundled frameworks, resources) and turn the result into a Markdown or HTML
report.

App Store IPAs are usually encrypted, so the analysis is limited to visible
structure and metadata; every inference about the tech stack is a guess that
needs confirming.

## Requirements

- Python 3.10 or later
- `ipatool` on `PATH` for `search` and `fetch-ios`
  (`brew install majd/repo/ipatool`)
- `plutil` on `PATH` for `analyze-ipa`: the command checks for it and refuses
  to run without it, although the IPA itself is unpacked and its Info.plist
  read in Python
- `strings` (Xcode Command Line Tools) for `appinsight.analyzer.extract_strings`

## Installation

```
pip install .
```

## Usage

Every command except `report` prints a JSON document of the form
`{"ok": true, "command": ..., "data": ...}`, or
`{"ok": false, "command": ..., "error": ...}` when something goes wrong. A
failure reported this way still exits with status 0; a malformed command line
exits with status 1. The `--json` option is accepted but changes nothing, as
output is always JSON.

Check which external tools are available, along with the OS and architecture:

```
appinsight doctor
```

Search the App Store (`--limit` defaults to 10):

```
appinsight search "photo editor" --limit 5
```

Download an IPA (log in first with `ipatool auth login`). The result holds
the path, file size and SHA-256 of the downloaded file; `--output` defaults to
`./downloads`:

```
appinsight fetch-ios --bundle-id com.example.app --output ./downloads
appinsight fetch-ios --bundle-id com.example.app --purchase
```

Analyse an IPA, optionally saving the analysis as JSON:

```
appinsight analyze-ipa ./downloads/Example.ipa --output analysis.json
```

Generate a report from a saved analysis:

```
appinsight report analysis.json
appinsight report analysis.json --format html --output report.html
```

Supported report formats are `markdown` (the default) and `html`; any other
value gives a JSON error. The report is printed to standard output and, with
`--output`, also written to a file.

## What the analysis contains

- bundle name, identifier, version, build, minimum OS and device families
- declared privacy permissions with a rough risk level
- URL schemes, queried schemes and background modes
- system frameworks and hints at third-party SDKs (Flutter, React Native,
  Unity, Capacitor, Cordova, Firebase, Sentry, RevenueCat and others)
- counts of asset catalogs, storyboards, nibs, strings, JSON, Core ML models,
  fonts, images, audio files and app extensions
- an inferred tech stack, likely capabilities, a summary and suggested
  follow-up questions

## Using it from Python

```python
from appinsight.analyzer import analyze
from appinsight.output import write_data_to_file
from appinsight.report import generate_markdown, load_analysis

result = analyze("Example.ipa")          # raises AnalysisError on failure
write_data_to_file(result, "analysis.json")
print(generate_markdown(load_analysis("analysis.json")))
```

`AnalysisResult.to_dict()` and `AnalysisResult.from_dict()` convert between
the result and its camelCase JSON form. `appinsight.ipatool.search()` and
`appinsight.ipatool.fetch()` raise `IpatoolError`; `load_analysis()` raises
`ReportError`.

## What it does not do

The analysis reads only what is visible in the unpacked bundle. It does not
decrypt, disassemble or otherwise inspect the app binary, so it cannot say
anything certain about the code, its architecture or its network traffic.

## Running the tests

```
pip install ".[test]"
pytest
```