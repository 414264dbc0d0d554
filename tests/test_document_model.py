from __future__ import annotations

import json

import pytest

from config_engine.document import (
    ConfigDocument,
    ServerSpec,
    empty_document,
    format_json,
    is_effectively_empty,
    parse_document,
    serialize_document,
    validate_document,
)
from config_engine.errors import ParseError, ValidationError


def _doc() -> ConfigDocument:
    return ConfigDocument(
        servers={
            "files": ServerSpec(command="npx", args=("-y", "server-files", "/tmp")),
            "github": ServerSpec(command="docker", args=(), env={"TOKEN": "abc"}),
        }
    )


def test_serialize_then_parse_yields_equal_document() -> None:
    doc = _doc()
    result = parse_document(serialize_document(doc))
    assert result.document == doc
    assert result.normalized is False


def test_serialize_is_idempotent_and_pretty_printed() -> None:
    text = serialize_document(_doc())
    assert serialize_document(parse_document(text).document) == text
    assert text.startswith('{\n  "mcpServers": {')
    assert not text.endswith("\n")


def test_serialize_empty_document_keeps_server_map() -> None:
    assert json.loads(serialize_document(empty_document())) == {"mcpServers": {}}


def test_env_absent_and_env_empty_are_distinct() -> None:
    without = ConfigDocument(servers={"a": ServerSpec(command="x")})
    with_empty = ConfigDocument(servers={"a": ServerSpec(command="x", env={})})

    assert "env" not in json.loads(serialize_document(without))["mcpServers"]["a"]
    assert parse_document(serialize_document(with_empty)).document == with_empty


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '"string"', "42", ""])
def test_parse_rejects_non_object_text(text: str) -> None:
    with pytest.raises(ParseError):
        parse_document(text)


@pytest.mark.parametrize("text", ["{}", '{"mcpServers": []}', '{"mcpServers": null}'])
def test_parse_normalizes_missing_server_map(text: str) -> None:
    result = parse_document(text)
    assert result.normalized is True
    assert is_effectively_empty(result.document)
    assert result.issues


MALFORMED = {
    "mcpServers": {
        "bad": "oops",
        "args": {"command": "x", "args": "not-a-list"},
        "env": {"command": "y", "args": ["a", 1], "env": {"K": 5, "N": None}},
        "cmd": {"command": ["not", "a", "string"], "args": []},
    }
}


def test_parse_repairs_malformed_entries() -> None:
    result = parse_document(json.dumps(MALFORMED))
    servers = result.document.servers
    assert result.normalized is True
    assert servers["bad"].command is None
    assert servers["args"].args == ()
    assert servers["env"].args == ("a", "1")
    assert servers["env"].env == {"K": "5", "N": ""}
    assert servers["cmd"].command is None


def test_repaired_entries_serialize_unchanged() -> None:
    document = parse_document(json.dumps(MALFORMED)).document

    out = json.loads(serialize_document(document))

    assert out == MALFORMED
    assert parse_document(serialize_document(document)).document == document


def test_unknown_fields_are_preserved() -> None:
    text = json.dumps(
        {
            "mcpServers": {"a": {"command": "x", "args": [], "disabled": True}},
            "globalShortcut": "Ctrl+Space",
        }
    )
    out = json.loads(serialize_document(parse_document(text).document))
    assert out["globalShortcut"] == "Ctrl+Space"
    assert out["mcpServers"]["a"]["disabled"] is True


def test_validate_accepts_missing_args() -> None:
    doc = validate_document('{"mcpServers": {"a": {"command": "x"}}}')
    assert doc.servers["a"] == ServerSpec(command="x", args=())


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        "[]",
        "{}",
        '{"mcpServers": "x"}',
        '{"mcpServers": {"a": 1}}',
        '{"mcpServers": {"a": {"args": []}}}',
        '{"mcpServers": {"a": {"command": "x", "args": [1]}}}',
        '{"mcpServers": {"a": {"command": "x", "env": {"K": 1}}}}',
    ],
)
def test_validate_rejects_malformed_documents(text: str) -> None:
    with pytest.raises(ValidationError):
        validate_document(text)


def test_format_json_reindents() -> None:
    assert format_json('{"a":[1,2]}') == '{\n  "a": [\n    1,\n    2\n  ]\n}'
    with pytest.raises(ParseError):
        format_json("{")
