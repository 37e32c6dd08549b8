"""Unit tests for shared utilities (loopgen.utils).

Tests cover:
- split_words / kebab_case / pascal_case / camel_case
- sanitize_name
- load_json / dump_json / save_json
- relative_to
- Rich output helpers
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from loopgen.utils import (
    camel_case,
    console,
    dump_json,
    kebab_case,
    load_json,
    pascal_case,
    print_file_action,
    print_summary_table,
    relative_to,
    sanitize_name,
    save_json,
    split_words,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


class TestNames:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Test2.0", "test-2-0"),
            ("GetQuoteResponse", "get-quote-response"),
            ("RPCLiteralTest2.0Binding", "rpc-literal-test-2-0-binding"),
            ("get_quote", "get-quote"),
            ("already-kebab", "already-kebab"),
            ("myMethod", "my-method"),
            ("Größe", "größe"),
            ("Запрос", "запрос"),
            ("ЗапросДанных", "запрос-данных"),
            ("注文2", "注文-2"),
            ("__", ""),
        ],
    )
    def test_kebab_case(self, value, expected):
        assert kebab_case(value) == expected

    def test_split_words(self):
        assert split_words("RPCLiteralTest2.0Binding") == ["RPC", "Literal", "Test", "2", "0", "Binding"]

    def test_non_ascii_letters_are_kept_distinct(self):
        assert kebab_case("Größe") != kebab_case("Grße")
        assert split_words("GrößeAbfragen") == ["Größe", "Abfragen"]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("get-quote", "GetQuote"), ("getQuote", "GetQuote"), ("soap CalculatorSoap", "SoapCalculatorSoap")],
    )
    def test_pascal_case(self, value, expected):
        assert pascal_case(value) == expected

    def test_camel_case(self):
        assert camel_case("GetQuote") == "getQuote"
        assert camel_case("") == ""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("x.y", "x-y"), ("x@y", "x-y"), ("x y", "x-y"), ("  My App  ", "my-app"), ("a..b", "a-b"), ("my_app", "my_app")],
    )
    def test_sanitize_name(self, value, expected):
        assert sanitize_name(value) == expected


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


class TestJson:
    def test_load_preserves_key_order(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text('{"z": 1, "a": 2, "m": 3}', encoding="utf-8")
        assert list(load_json(path)) == ["z", "a", "m"]

    def test_load_rejects_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="must contain a JSON object"):
            load_json(path)

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)

    def test_dump_format(self):
        assert dump_json({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}\n'

    def test_dump_keeps_unicode(self):
        assert "é" in dump_json({"name": "café"})

    async def test_save_creates_parents(self, tmp_path):
        path = await save_json({"b": 1, "a": 2}, tmp_path / "x" / "y.json")
        assert path.read_text(encoding="utf-8") == '{\n  "b": 1,\n  "a": 2\n}\n'


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


class TestFiles:
    def test_relative_to(self, tmp_path):
        assert relative_to(tmp_path / "server" / "x.json", tmp_path) == str(Path("server") / "x.json")
        assert relative_to(Path("/elsewhere/x.json"), tmp_path) == str(Path("/elsewhere/x.json"))


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


class TestOutput:
    def test_print_file_action(self):
        with console.capture() as capture:
            print_file_action("create", "server/middleware.json")
        output = capture.get()
        assert "create" in output
        assert "server/middleware.json" in output

    def test_print_summary_table(self):
        with console.capture() as capture:
            print_summary_table([("Calculator", "CalculatorSoap")], columns=("Service", "Binding"), title="WSDL")
        output = capture.get()
        assert "Service" in output
        assert "CalculatorSoap" in output
