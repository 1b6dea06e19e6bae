import json

from appinsight import output
from appinsight.output import Result


class _WithDict:
    def __init__(self, value):
        self.value = value

    def to_dict(self):
        return {"value": self.value}


def test_new_ok_builds_success_envelope():
    result = output.new_ok("doctor", {"a": 1})
    assert result.ok is True
    assert result.command == "doctor"
    assert result.to_dict() == {"ok": True, "command": "doctor", "data": {"a": 1}}


def test_new_error_omits_data():
    result = output.new_error("search", "boom")
    assert result.to_dict() == {"ok": False, "command": "search", "error": "boom"}


def test_empty_error_and_none_data_are_omitted():
    assert Result(ok=True, command="x").to_dict() == {"ok": True, "command": "x"}


def test_empty_list_data_is_kept():
    assert output.new_ok("x", []).to_dict()["data"] == []


def test_to_jsonable_uses_to_dict_recursively():
    data = {"items": [_WithDict(1), _WithDict([_WithDict("x")])]}
    assert output.to_jsonable(data) == {
        "items": [{"value": 1}, {"value": [{"value": "x"}]}]
    }


def test_to_jsonable_integral_float_becomes_int():
    converted = output.to_jsonable(2.0)
    assert converted == 2
    assert isinstance(converted, int)
    assert output.to_jsonable(2.5) == 2.5


def test_to_jsonable_tuple_becomes_list():
    assert output.to_jsonable(("a", "b")) == ["a", "b"]


def test_print_json_round_trip(capsys):
    output.print_json(output.new_ok("search", {"count": 0, "results": []}))
    text = capsys.readouterr().out
    assert text.endswith("\n")
    assert json.loads(text) == {
        "ok": True,
        "command": "search",
        "data": {"count": 0, "results": []},
    }


def test_print_json_uses_two_space_indent(capsys):
    output.print_json(output.new_error("x", "e"))
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "{"
    assert lines[1].startswith('  "ok"')


def test_print_json_escapes_html_characters(capsys):
    output.print_json(output.new_error("x", "<a&b>"))
    text = capsys.readouterr().out
    assert "\\u003ca\\u0026b\\u003e" in text
    assert json.loads(text)["error"] == "<a&b>"


def test_print_json_keeps_non_ascii(capsys):
    output.print_json(output.new_error("x", "可能"))
    assert "可能" in capsys.readouterr().out


def test_write_to_file_round_trip(tmp_path):
    target = tmp_path / "result.json"
    output.write_to_file(output.new_ok("report", {"k": "v"}), target)
    text = target.read_text(encoding="utf-8")
    assert not text.endswith("\n")
    assert json.loads(text) == {"ok": True, "command": "report", "data": {"k": "v"}}


def test_write_data_to_file_round_trip(tmp_path):
    target = tmp_path / "data.json"
    output.write_data_to_file(_WithDict({"nested": [1, 2]}), target)
    assert json.loads(target.read_text(encoding="utf-8")) == {"value": {"nested": [1, 2]}}