"""Block schema: the closed shape of every block variant on the wire.

``validate`` is the gate for full-document loads and explicit apply actions.
It returns typed ``Document`` values and raises ``ValidationError`` for the
first mismatch in document order. ``diagnose`` runs the same checks but
collects every mismatch for inline diagnostics, and ``decode_lenient`` is the
best-effort decoder used by render-only paths.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Sequence

from .errors import ValidationError
from .model import (
    NOTE_STYLES,
    Block,
    CodeBlock,
    DemoBlock,
    Document,
    EquationBlock,
    FigureBlock,
    Header,
    ImageResourceBlock,
    ListBlock,
    NoteBlock,
    Paragraph,
    Path,
    Tab,
    TabsBlock,
    UnknownBlock,
)


@dataclass(frozen=True)
class FieldSpec:
    wire: str
    attr: str
    kind: str
    required: bool = True


@dataclass(frozen=True)
class VariantSpec:
    cls: type
    fields: tuple[FieldSpec, ...]

    def wire_names(self) -> tuple[str, ...]:
        return tuple(spec.wire for spec in self.fields)


VARIANTS: dict[str, VariantSpec] = {
    "header": VariantSpec(
        Header,
        (FieldSpec("level", "level", "level"), FieldSpec("content", "content", "str")),
    ),
    "paragraph": VariantSpec(Paragraph, (FieldSpec("content", "content", "str"),)),
    "code": VariantSpec(
        CodeBlock,
        (FieldSpec("language", "language", "str"), FieldSpec("content", "content", "str")),
    ),
    "note": VariantSpec(
        NoteBlock,
        (FieldSpec("style", "style", "style"), FieldSpec("content", "content", "str")),
    ),
    "figure": VariantSpec(
        FigureBlock,
        (FieldSpec("src", "src", "str"), FieldSpec("caption", "caption", "str", required=False)),
    ),
    "equation": VariantSpec(
        EquationBlock,
        (FieldSpec("content", "content", "str"), FieldSpec("caption", "caption", "str", required=False)),
    ),
    "list": VariantSpec(
        ListBlock,
        (FieldSpec("ordered", "ordered", "bool"), FieldSpec("items", "items", "str_list")),
    ),
    "demo": VariantSpec(
        DemoBlock,
        (
            FieldSpec("demoType", "demo_type", "str"),
            FieldSpec("imageId", "image_id", "str", required=False),
            FieldSpec("args", "args", "mapping", required=False),
        ),
    ),
    "imageResource": VariantSpec(
        ImageResourceBlock,
        (
            FieldSpec("id", "resource_id", "str"),
            FieldSpec("src", "src", "str"),
            FieldSpec("alt", "alt", "str", required=False),
        ),
    ),
    "tabs": VariantSpec(
        TabsBlock,
        (
            FieldSpec("defaultValue", "default_value", "str", required=False),
            FieldSpec("tabs", "tabs", "tabs"),
        ),
    ),
}

TAB_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("value", "value", "str"),
    FieldSpec("label", "label", "str"),
    FieldSpec("description", "description", "str", required=False),
    FieldSpec("blocks", "blocks", "blocks"),
)


def validate(candidate: Any) -> Document:
    """Return ``candidate`` as a typed Document or raise the first ValidationError."""
    errors: list[ValidationError] = []
    blocks = _decode_document(candidate, errors, lenient=False)
    if errors:
        raise errors[0]
    return Document(blocks=blocks)


def diagnose(candidate: Any) -> list[ValidationError]:
    """Collect every structural mismatch in ``candidate``. Never raises."""
    errors: list[ValidationError] = []
    _decode_document(candidate, errors, lenient=False)
    return errors


def decode_lenient(candidate: Any) -> Document:
    """Decode whatever can be decoded; broken blocks become ``UnknownBlock``."""
    if not isinstance(candidate, (list, tuple)):
        return Document(blocks=[])
    return Document(blocks=_decode_sequence(candidate, (), [], lenient=True))


def decode_block(data: Any, path: Sequence[int] = ()) -> Block:
    """Strictly decode a single block mapping."""
    errors: list[ValidationError] = []
    block = _decode_block(data, tuple(path), errors, lenient=False)
    if errors or block is None:
        raise errors[0]
    return block


def wire_fields(block_type: str) -> tuple[str, ...]:
    return VARIANTS[block_type].wire_names()


def _decode_document(candidate: Any, errors: list[ValidationError], lenient: bool) -> List[Block]:
    if not isinstance(candidate, (list, tuple)):
        errors.append(
            ValidationError((), f"document must be a list of blocks, got {_type_name(candidate)}")
        )
        return []
    return _decode_sequence(candidate, (), errors, lenient)


def _decode_sequence(
    items: Sequence[Any], parent: Path, errors: list[ValidationError], lenient: bool
) -> List[Block]:
    blocks: List[Block] = []
    for index, item in enumerate(items):
        path = parent + (index,)
        if lenient:
            local: list[ValidationError] = []
            block = _decode_block(item, path, local, lenient=True)
            if block is None:
                reason = local[0].reason if local else "undecodable block"
                block = UnknownBlock(data=copy.deepcopy(item), reason=reason)
            blocks.append(block)
            continue
        block = _decode_block(item, path, errors, lenient=False)
        if block is not None:
            blocks.append(block)
    return blocks


def _decode_block(
    data: Any, path: Path, errors: list[ValidationError], lenient: bool
) -> Block | None:
    start = len(errors)
    if not isinstance(data, Mapping):
        errors.append(ValidationError(path, f"block must be an object, got {_type_name(data)}"))
        return None
    if "type" not in data:
        errors.append(ValidationError(path, "missing required field", "type"))
        return None
    tag = data["type"]
    if not isinstance(tag, str) or tag not in VARIANTS:
        errors.append(ValidationError(path, f"unknown block type {tag!r}", "type"))
        return None

    variant = VARIANTS[tag]
    extra = _unknown_fields(data, {"type", *variant.wire_names()}, path, errors, lenient, tag)
    kwargs = _decode_fields(data, variant.fields, path, errors, lenient)
    if len(errors) > start:
        return None
    return variant.cls(**kwargs, extra=extra)


def _decode_tabs(value: Any, path: Path, errors: list[ValidationError], lenient: bool) -> List[Tab]:
    if not isinstance(value, (list, tuple)):
        errors.append(ValidationError(path, f"expected a list of tabs, got {_type_name(value)}", "tabs"))
        return []
    tabs: List[Tab] = []
    declared = {spec.wire for spec in TAB_FIELDS}
    for index, entry in enumerate(value):
        tab_path = path + (index,)
        start = len(errors)
        if not isinstance(entry, Mapping):
            errors.append(ValidationError(tab_path, f"tab must be an object, got {_type_name(entry)}"))
            continue
        extra = _unknown_fields(entry, declared, tab_path, errors, lenient, "tab")
        kwargs = _decode_fields(entry, TAB_FIELDS, tab_path, errors, lenient)
        if len(errors) == start:
            tabs.append(Tab(**kwargs, extra=extra))
    return tabs


def _decode_fields(
    data: Mapping[str, Any],
    specs: Sequence[FieldSpec],
    path: Path,
    errors: list[ValidationError],
    lenient: bool,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for spec in specs:
        if spec.wire not in data:
            if spec.required:
                errors.append(ValidationError(path, "missing required field", spec.wire))
            continue
        value = data[spec.wire]
        if spec.kind == "tabs":
            kwargs[spec.attr] = _decode_tabs(value, path, errors, lenient)
        elif spec.kind == "blocks":
            if not isinstance(value, (list, tuple)):
                errors.append(
                    ValidationError(path, f"expected a list of blocks, got {_type_name(value)}", spec.wire)
                )
                continue
            kwargs[spec.attr] = _decode_sequence(value, path, errors, lenient)
        else:
            reason = _check_value(spec.kind, value)
            if reason is not None:
                errors.append(ValidationError(path, reason, spec.wire))
                continue
            kwargs[spec.attr] = _copy_value(value)
    return kwargs


def _unknown_fields(
    data: Mapping[str, Any],
    declared: set[str],
    path: Path,
    errors: list[ValidationError],
    lenient: bool,
    owner: str,
) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    for key in data:
        if key in declared:
            continue
        if lenient:
            extra[key] = copy.deepcopy(data[key])
        else:
            errors.append(ValidationError(path, f"unknown field for {owner!r}", str(key)))
    return extra


def _check_value(kind: str, value: Any) -> str | None:
    if kind == "str":
        if not isinstance(value, str):
            return f"expected a string, got {_type_name(value)}"
    elif kind == "level":
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 6:
            return f"level must be an integer between 1 and 6, got {value!r}"
    elif kind == "style":
        if value not in NOTE_STYLES:
            return f"style must be one of {', '.join(NOTE_STYLES)}, got {value!r}"
    elif kind == "bool":
        if not isinstance(value, bool):
            return f"expected a boolean, got {_type_name(value)}"
    elif kind == "str_list":
        if not isinstance(value, (list, tuple)):
            return f"expected a list of strings, got {_type_name(value)}"
        for item in value:
            if not isinstance(item, str):
                return f"list items must be strings, got {_type_name(item)}"
    elif kind == "mapping":
        if not isinstance(value, Mapping):
            return f"expected an object, got {_type_name(value)}"
        if not all(isinstance(key, str) for key in value):
            return "object keys must be strings"
    else:
        raise ValueError(f"Unknown field kind: {kind}")
    return None


def _copy_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    return value


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__
