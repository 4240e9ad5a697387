from __future__ import annotations

import copy
import json
from typing import Any, Protocol

import yaml

from .errors import ParseError
from .model import Block, Document, Tab, UnknownBlock
from .schema import TAB_FIELDS, VARIANTS, validate


class Codec(Protocol):
    name: str

    def serialize(self, document: Document) -> str: ...

    def load_data(self, text: str) -> Any: ...

    def parse(self, text: str) -> Document: ...


def to_wire(document: Document) -> list[Any]:
    """Convert a Document into plain JSON-compatible data."""
    return [block_to_wire(block) for block in document.blocks]


def block_to_wire(block: Block) -> Any:
    if isinstance(block, UnknownBlock):
        return copy.deepcopy(block.data)
    variant = VARIANTS[block.TYPE]
    data: dict[str, Any] = {"type": block.TYPE}
    for spec in variant.fields:
        value = getattr(block, spec.attr)
        if value is None:
            continue
        if spec.kind == "tabs":
            data[spec.wire] = [_tab_to_wire(tab) for tab in value]
        else:
            data[spec.wire] = copy.deepcopy(value)
    data.update(copy.deepcopy(block.extra))
    return data


def _tab_to_wire(tab: Tab) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for spec in TAB_FIELDS:
        value = getattr(tab, spec.attr)
        if value is None:
            continue
        if spec.kind == "blocks":
            data[spec.wire] = [block_to_wire(child) for child in value]
        else:
            data[spec.wire] = value
    data.update(copy.deepcopy(tab.extra))
    return data


def from_wire(data: Any) -> Document:
    return validate(data)


class JsonCodec:
    """The persisted wire format: a JSON array of block objects."""

    name = "json"

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def serialize(self, document: Document) -> str:
        return json.dumps(to_wire(document), indent=self.indent, ensure_ascii=False)

    def compact(self, document: Document) -> str:
        return json.dumps(to_wire(document), ensure_ascii=False, separators=(",", ":"))

    def load_data(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(exc.msg, line=exc.lineno, column=exc.colno) from exc

    def parse(self, text: str) -> Document:
        return validate(self.load_data(text))


class YamlCodec:
    """YAML rendition of the same block list, for authors who prefer it."""

    name = "yaml"

    def serialize(self, document: Document) -> str:
        return yaml.safe_dump(to_wire(document), sort_keys=False, allow_unicode=True)

    def load_data(self, text: str) -> Any:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            problem = getattr(exc, "problem", None) or str(exc)
            if mark is not None:
                raise ParseError(problem, line=mark.line + 1, column=mark.column + 1) from exc
            raise ParseError(problem) from exc
        return [] if data is None else data

    def parse(self, text: str) -> Document:
        return validate(self.load_data(text))


CODECS = {"json": JsonCodec, "yaml": YamlCodec}


def get_codec(name: str, indent: int | None = 2) -> Codec:
    if name == "json":
        return JsonCodec(indent=indent)
    if name == "yaml":
        return YamlCodec()
    raise ValueError(f"Unknown raw format {name!r}; expected one of {', '.join(CODECS)}")
