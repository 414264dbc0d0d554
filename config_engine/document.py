"""
Configuration document model.

A configuration document is the JSON content of a live client configuration
file: an object whose ``mcpServers`` field maps a server name to an invocation
spec ``{"command": str, "args": [str, ...], "env": {str: str}}``.

Two parsers are provided:

- :func:`parse_document` is lenient. It only fails when the text is not JSON or
  the top-level value is not an object. Anything else is repaired and the
  result is flagged as ``normalized``.
- :func:`validate_document` is strict. It is used when a user saves raw text,
  where a missing server map must be reported instead of silently repaired.

Unrecognized keys (top-level and per-server) are carried in ``extras`` and
written back by :func:`serialize_document`, so documents round-trip without
losing fields the engine does not understand.

Repairs made by the lenient parser only affect the typed view. The original
value of a repaired ``command``/``args``/``env`` field is kept in the entry's
``extras``, and a server entry that is not an object is kept verbatim, so
serializing a leniently parsed document writes those values back unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .errors import ParseError, ValidationError

SERVERS_KEY = "mcpServers"
JSON_INDENT = 2

_SERVER_KEYS = frozenset({"command", "args", "env"})


class _NotVerbatim:
    """Marker for entries that were JSON objects."""

    def __repr__(self) -> str:
        return "NOT_VERBATIM"


NOT_VERBATIM: Any = _NotVerbatim()


@dataclass(frozen=True, slots=True)
class ServerSpec:
    """
    Invocation spec for one server.

    Attributes
    ----------
    command:
        Executable to launch. None when the entry has no command field.
    args:
        Command-line arguments.
    env:
        Extra environment variables, or None when the field is absent.
    extras:
        Unrecognized fields of the entry, preserved in insertion order. Also
        holds the original value of any typed field the lenient parser had to
        repair; those values win on serialization.
    verbatim:
        The raw entry when it was not a JSON object, else NOT_VERBATIM.
    """

    command: str | None
    args: tuple[str, ...] = ()
    env: dict[str, str] | None = None
    extras: dict[str, Any] = field(default_factory=dict)
    verbatim: Any = NOT_VERBATIM

    def to_dict(self) -> Any:
        """
        Convert this spec to a JSON-serializable value.

        Returns
        -------
        Any
            A dict, or the verbatim entry when the source was not an object.
        """
        if self.verbatim is not NOT_VERBATIM:
            return self.verbatim
        payload: dict[str, Any] = {}
        if self.command is not None:
            payload["command"] = self.command
        payload["args"] = list(self.args)
        if self.env is not None:
            payload["env"] = dict(self.env)
        payload.update(self.extras)
        return payload


@dataclass(frozen=True, slots=True)
class ConfigDocument:
    """
    Parsed configuration document.

    Attributes
    ----------
    servers:
        Server name to invocation spec, in file order.
    extras:
        Top-level fields other than ``mcpServers``.
    """

    servers: dict[str, ServerSpec] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert this document to a JSON-serializable dict."""
        payload: dict[str, Any] = {
            SERVERS_KEY: {name: spec.to_dict() for name, spec in self.servers.items()}
        }
        payload.update(self.extras)
        return payload


@dataclass(frozen=True, slots=True)
class ParseResult:
    """
    Outcome of a lenient parse.

    Attributes
    ----------
    document:
        The parsed (and possibly repaired) document.
    normalized:
        True if anything had to be repaired to fit the document shape.
    issues:
        Human-readable description of each repair.
    """

    document: ConfigDocument
    normalized: bool = False
    issues: tuple[str, ...] = ()


def empty_document() -> ConfigDocument:
    """Return a document with an empty server map."""
    return ConfigDocument()


def is_effectively_empty(document: ConfigDocument) -> bool:
    """Return True if the document has no server entries."""
    return len(document.servers) == 0


def with_servers(document: ConfigDocument, servers: Mapping[str, ServerSpec]) -> ConfigDocument:
    """Return a copy of `document` whose server map is replaced by `servers`."""
    return replace(document, servers=dict(servers))


def _load_object(text: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError(
            f"Configuration must be a JSON object, got {type(payload).__name__}"
        )
    return payload


def _coerce_server(name: str, raw: Any, issues: list[str]) -> ServerSpec:
    if not isinstance(raw, dict):
        issues.append(f"server {name!r}: entry is not an object")
        return ServerSpec(command=None, verbatim=raw)

    # Original values of repaired fields, written back on serialization.
    kept: dict[str, Any] = {}

    command = raw.get("command")
    if command is not None and not isinstance(command, str):
        issues.append(f"server {name!r}: command is not a string")
        kept["command"] = command
        command = None

    raw_args = raw.get("args", [])
    args: list[str] = []
    if not isinstance(raw_args, list):
        issues.append(f"server {name!r}: args is not a list")
        kept["args"] = raw_args
    else:
        for item in raw_args:
            if not isinstance(item, str):
                issues.append(f"server {name!r}: non-string argument {item!r}")
                kept["args"] = raw_args
                item = json.dumps(item)
            args.append(item)

    env: dict[str, str] | None = None
    if "env" in raw:
        raw_env = raw["env"]
        if isinstance(raw_env, dict):
            env = {}
            for key, value in raw_env.items():
                if not isinstance(value, str):
                    issues.append(f"server {name!r}: env value for {key!r} is not a string")
                    kept["env"] = raw_env
                    value = "" if value is None else str(value)
                env[str(key)] = value
        else:
            issues.append(f"server {name!r}: env is not an object")
            kept["env"] = raw_env

    extras = {k: v for k, v in raw.items() if k not in _SERVER_KEYS or k in kept}
    return ServerSpec(command=command, args=tuple(args), env=env, extras=extras)


def parse_document(text: str) -> ParseResult:
    """
    Parse configuration text leniently.

    Parameters
    ----------
    text:
        Raw JSON text.

    Returns
    -------
    ParseResult
        Parsed document. ``normalized`` is True when the server map was
        missing or not an object (an empty map is substituted) or when an
        entry had to be repaired.

    Raises
    ------
    ParseError
        If the text is not valid JSON or the top-level value is not an object.
    """
    payload = _load_object(text)
    issues: list[str] = []

    raw_servers = payload.get(SERVERS_KEY)
    servers: dict[str, ServerSpec] = {}
    if not isinstance(raw_servers, dict):
        issues.append(f"{SERVERS_KEY} is missing or not an object")
    else:
        for name, raw in raw_servers.items():
            servers[str(name)] = _coerce_server(str(name), raw, issues)

    extras = {k: v for k, v in payload.items() if k != SERVERS_KEY}
    return ParseResult(
        document=ConfigDocument(servers=servers, extras=extras),
        normalized=bool(issues),
        issues=tuple(issues),
    )


def validate_document(text: str) -> ConfigDocument:
    """
    Parse configuration text strictly.

    Structural rules
    ----------------
    - The text is a JSON object with an ``mcpServers`` object.
    - Every entry is an object with a string ``command``.
    - ``args``, when present, is a list of strings (absent means empty).
    - ``env``, when present, maps strings to strings.

    Raises
    ------
    ValidationError
        On the first rule violated. Nothing is repaired.
    """
    try:
        payload = _load_object(text)
    except ParseError as exc:
        raise ValidationError(str(exc)) from exc

    raw_servers = payload.get(SERVERS_KEY)
    if not isinstance(raw_servers, dict):
        raise ValidationError(f"Configuration must contain an {SERVERS_KEY} object")

    for name, raw in raw_servers.items():
        if not isinstance(raw, dict):
            raise ValidationError(f"Server {name!r} must be an object")
        if not isinstance(raw.get("command"), str):
            raise ValidationError(f"Server {name!r} must have a string command")
        args = raw.get("args", [])
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise ValidationError(f"Server {name!r} args must be a list of strings")
        if "env" in raw:
            env = raw["env"]
            if not isinstance(env, dict) or not all(isinstance(v, str) for v in env.values()):
                raise ValidationError(f"Server {name!r} env must map strings to strings")

    result = parse_document(text)
    return result.document


def serialize_document(document: ConfigDocument) -> str:
    """
    Serialize a document to pretty-printed JSON.

    The server map is always present. Key order follows the document; output
    has no trailing newline.
    """
    return json.dumps(document.to_dict(), indent=JSON_INDENT, ensure_ascii=False)


def format_json(text: str) -> str:
    """
    Re-indent arbitrary JSON text without changing its content.

    Raises
    ------
    ParseError
        If the text is not valid JSON.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Cannot format: {exc}") from exc
    return json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False)
