"""Structural edits on block documents.

Every operation is copy-on-write: it returns a new ``Document`` value that
shares untouched subtrees with the old one and never mutates a block in
place. ``BlockTree`` is the single authoritative holder of the current value;
it commits each new value atomically, re-indexes block identities and only
then notifies subscribers.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Callable, Iterable, List

from .codec import block_to_wire
from .errors import PathError, ValidationError
from .model import Block, Document, Path, Tab, TabsBlock, UnknownBlock, new_block, new_uid
from .paths import FlatEntry, container, flatten, get_node, is_tab_path, normalize, resolve
from .schema import decode_block, wire_fields

logger = logging.getLogger(__name__)

TAB_EDITABLE = ("value", "label", "description")

Listener = Callable[[Document, str], None]


def insert_top(document: Document, block: Block, at_end: bool = True) -> Document:
    blocks = list(document.blocks)
    if at_end:
        blocks.append(block)
    else:
        blocks.insert(0, block)
    return replace(document, blocks=blocks)


def insert(document: Document, path: Iterable[int], block: Block) -> Document:
    """Insert ``block`` so that it ends up at ``path``."""
    path = normalize(path)
    if is_tab_path(path):
        raise PathError(path, "blocks can only be inserted at block positions")
    siblings = container(document, path)
    if path[-1] > len(siblings):
        raise PathError(path, f"insert index {path[-1]} is past the end ({len(siblings)})")

    def on_blocks(seq: List[Any], index: int) -> List[Any]:
        seq.insert(index, block)
        return seq

    return replace(document, blocks=_rewrite(document.blocks, path, on_blocks))


def add_tab(document: Document, tabs_path: Iterable[int], tab: Tab, index: int | None = None) -> Document:
    tabs_path = normalize(tabs_path)
    node = resolve(document, tabs_path)
    if not isinstance(node, TabsBlock):
        raise PathError(tabs_path, "block is not a tabs block")
    tabs = list(node.tabs)
    if index is None:
        tabs.append(tab)
    elif 0 <= index <= len(tabs):
        tabs.insert(index, tab)
    else:
        raise PathError(tabs_path + (index,), f"insert index {index} is past the end ({len(tabs)})")
    return _replace_node(document, tabs_path, replace(node, tabs=tabs))


def delete(document: Document, path: Iterable[int]) -> Document:
    """Remove the block or tab at ``path``; later siblings shift down by one."""
    path = normalize(path)
    resolve(document, path)

    def on_seq(seq: List[Any], index: int) -> List[Any]:
        del seq[index]
        return seq

    return replace(document, blocks=_rewrite(document.blocks, path, on_seq))


def update(document: Document, path: Iterable[int], fields: Mapping[str, Any]) -> Document:
    """Shallow-merge wire-named ``fields`` onto the node at ``path``."""
    path = normalize(path)
    node = resolve(document, path)
    if isinstance(node, Tab):
        updated: Block | Tab = _merge_tab(node, fields, path)
    else:
        updated = _merge_block(node, fields, path)
    return _replace_node(document, path, updated)


def move(document: Document, path: Iterable[int], offset: int) -> Document:
    """Shift the node at ``path`` by ``offset`` positions among its siblings."""
    path = normalize(path)
    resolve(document, path)
    target = path[-1] + offset
    if not 0 <= target < len(container(document, path)):
        raise PathError(path, f"cannot move by {offset}: target {target} is out of range")

    def on_seq(seq: List[Any], index: int) -> List[Any]:
        seq.insert(target, seq.pop(index))
        return seq

    return replace(document, blocks=_rewrite(document.blocks, path, on_seq))


def _replace_node(document: Document, path: Path, node: Block | Tab) -> Document:
    def on_seq(seq: List[Any], index: int) -> List[Any]:
        seq[index] = node
        return seq

    return replace(document, blocks=_rewrite(document.blocks, path, on_seq))


def _rewrite(blocks: List[Block], path: Path, on_seq: Callable[[List[Any], int], List[Any]]) -> List[Block]:
    """Copy the spine from ``blocks`` down to ``path`` and apply ``on_seq`` at the bottom.

    ``on_seq`` receives a fresh copy of the sibling list (blocks or tabs) and the
    last index of ``path``. The caller has already checked that the parent
    chain resolves.
    """
    head = path[0]
    if len(path) == 1:
        return on_seq(list(blocks), head)
    parent = blocks[head]
    assert isinstance(parent, TabsBlock)
    tabs = list(parent.tabs)
    if len(path) == 2:
        tabs = on_seq(tabs, path[1])
    else:
        tab = tabs[path[1]]
        tabs[path[1]] = replace(tab, blocks=_rewrite(tab.blocks, path[2:], on_seq))
    new_blocks = list(blocks)
    new_blocks[head] = replace(parent, tabs=tabs)
    return new_blocks


def _merge_block(block: Block, fields: Mapping[str, Any], path: Path) -> Block:
    if isinstance(block, UnknownBlock):
        current = dict(block.data) if isinstance(block.data, Mapping) else {}
    else:
        current = block_to_wire(block)
    old_type = current.get("type", block.TYPE)
    new_type = fields.get("type", old_type)

    if new_type == old_type:
        merged = {**current, **fields}
    else:
        try:
            template = block_to_wire(new_block(new_type))
        except ValueError:
            raise ValidationError(path, f"unknown block type {new_type!r}", "type") from None
        declared = set(wire_fields(new_type))
        kept = {key: value for key, value in current.items() if key in declared}
        merged = {**template, **kept, **fields}

    merged = {key: value for key, value in merged.items() if value is not None}
    updated = decode_block(merged, path)
    updated.uid = block.uid
    if isinstance(block, TabsBlock) and isinstance(updated, TabsBlock) and "tabs" not in fields:
        updated.tabs = block.tabs
    return updated


def _merge_tab(tab: Tab, fields: Mapping[str, Any], path: Path) -> Tab:
    changes: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in TAB_EDITABLE:
            raise ValidationError(path, "unknown or read-only field for 'tab'", str(key))
        if value is None and key == "description":
            changes[key] = None
            continue
        if not isinstance(value, str):
            raise ValidationError(path, "expected a string", key)
        changes[key] = value
    return replace(tab, **changes)


def clone(node: Block | Tab, fresh_ids: bool = True) -> Block | Tab:
    """Deep-copy a block or tab subtree, optionally minting new identities."""
    copied = copy.deepcopy(node)
    if fresh_ids:
        for item in _subtree(copied):
            item.uid = new_uid()
    return copied


def _subtree(node: Block | Tab) -> Iterable[Block | Tab]:
    yield node
    if isinstance(node, TabsBlock):
        for tab in node.tabs:
            yield from _subtree(tab)
    elif isinstance(node, Tab):
        for child in node.blocks:
            yield from _subtree(child)


def build_index(document: Document) -> dict[str, Path]:
    return {entry.node.uid: entry.path for entry in flatten(document)}


class BlockTree:
    """Authoritative holder of the current document value."""

    def __init__(self, document: Document | None = None) -> None:
        self._document = document if document is not None else Document()
        self._index = build_index(self._document)
        self._listeners: list[Listener] = []

    @property
    def document(self) -> Document:
        return self._document

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Positional access -------------------------------------------------------

    def get(self, path: Iterable[int]) -> Block | Tab | None:
        return get_node(self._document, path)

    def flatten(self) -> list[FlatEntry]:
        return flatten(self._document)

    def insert_top(self, block: Block, at_end: bool = True) -> Document:
        return self._commit(insert_top(self._document, self._own(block), at_end))

    def insert(self, path: Iterable[int], block: Block) -> Document:
        return self._commit(insert(self._document, path, self._own(block)))

    def add_tab(self, tabs_path: Iterable[int], tab: Tab, index: int | None = None) -> Document:
        return self._commit(add_tab(self._document, tabs_path, self._own(tab), index))

    def delete(self, path: Iterable[int]) -> Document:
        return self._commit(delete(self._document, path))

    def update(self, path: Iterable[int], fields: Mapping[str, Any]) -> Document:
        return self._commit(update(self._document, path, fields))

    def move(self, path: Iterable[int], offset: int) -> Document:
        return self._commit(move(self._document, path, offset))

    def replace(self, document: Document, source: str = "structural") -> Document:
        """Swap in a whole new document value."""
        return self._commit(document, source)

    # Identity-based access ---------------------------------------------------

    def path_of(self, uid: str) -> Path:
        try:
            return self._index[uid]
        except KeyError:
            raise PathError((), f"no node with id {uid!r}") from None

    def get_by_id(self, uid: str) -> Block | Tab | None:
        path = self._index.get(uid)
        return None if path is None else self.get(path)

    def delete_by_id(self, uid: str) -> Document:
        return self.delete(self.path_of(uid))

    def update_by_id(self, uid: str, fields: Mapping[str, Any]) -> Document:
        return self.update(self.path_of(uid), fields)

    def _own(self, node):
        if any(item.uid in self._index for item in _subtree(node)):
            return clone(node)
        return node

    def _commit(self, document: Document, source: str = "structural") -> Document:
        self._document = document
        self._index = build_index(document)
        logger.debug("Committed %s document with %d top-level blocks", source, len(document.blocks))
        for listener in list(self._listeners):
            listener(document, source)
        return document
