"""Positional addressing into a block document.

A path is a tuple of non-negative indices. Positions alternate between block
sequences and tab lists, so the length decides what a path addresses:

* odd length   -> a block: ``(top,)``, ``(top, tab, block)``, ...
* even length  -> a tab header inside a tabs block: ``(top, tab)``, ...

Paths are not stable across structural edits; re-derive them with
``flatten`` after every mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence

from .errors import PathError
from .model import Block, CodeBlock, Document, Header, NoteBlock, Path, Tab, TabsBlock


def normalize(path: Iterable[int]) -> Path:
    result = tuple(path)
    if not result:
        raise PathError(result, "path must not be empty")
    for index in result:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise PathError(result, f"path entries must be non-negative integers, got {index!r}")
    return result


def is_tab_path(path: Sequence[int]) -> bool:
    return len(path) % 2 == 0


def get_node(document: Document, path: Iterable[int]) -> Block | Tab | None:
    """Resolve ``path``; ``None`` when any step is out of range."""
    try:
        return resolve(document, path)
    except PathError:
        return None


def resolve(document: Document, path: Iterable[int]) -> Block | Tab:
    path = normalize(path)
    blocks: Sequence[Block] = document.blocks
    node: Block | Tab | None = None
    for depth, index in enumerate(path):
        if depth % 2 == 0:
            if index >= len(blocks):
                raise PathError(path[: depth + 1], f"no block at index {index}")
            node = blocks[index]
        else:
            if not isinstance(node, TabsBlock):
                raise PathError(path[:depth], "block is not a tabs block")
            if index >= len(node.tabs):
                raise PathError(path[: depth + 1], f"no tab at index {index}")
            node = node.tabs[index]
            blocks = node.blocks
    assert node is not None
    return node


def container(document: Document, path: Path) -> Sequence[Block] | Sequence[Tab]:
    """Return the sibling sequence that holds the node at ``path``."""
    if len(path) == 1:
        return document.blocks
    parent = resolve(document, path[:-1])
    if isinstance(parent, Tab):
        return parent.blocks
    if isinstance(parent, TabsBlock):
        return parent.tabs
    raise PathError(path[:-1], "block is not a tabs block")


@dataclass(frozen=True)
class FlatEntry:
    path: Path
    node: Block | Tab
    label: str

    @property
    def depth(self) -> int:
        return (len(self.path) - 1) // 2

    @property
    def is_tab(self) -> bool:
        return isinstance(self.node, Tab)


def flatten(document: Document) -> List[FlatEntry]:
    """List every block and tab header depth-first with its current path."""
    return list(_walk(document.blocks, ()))


def _walk(blocks: Sequence[Block], parent: Path) -> Iterator[FlatEntry]:
    for index, block in enumerate(blocks):
        path = parent + (index,)
        indent = "  " * (len(parent) // 2)
        yield FlatEntry(path, block, f"{indent}{'.'.join(map(str, path))}: {describe(block)}")
        if isinstance(block, TabsBlock):
            for tab_index, tab in enumerate(block.tabs):
                tab_path = path + (tab_index,)
                yield FlatEntry(tab_path, tab, f"{indent}  ↳ Tab: {tab.label}")
                yield from _walk(tab.blocks, tab_path)


def describe(block: Block) -> str:
    label = block.TYPE
    if isinstance(block, Header):
        label += f" (h{block.level})"
    elif isinstance(block, NoteBlock):
        label += f" ({block.style})"
    elif isinstance(block, CodeBlock):
        label += f" ({block.language})"
    elif isinstance(block, TabsBlock):
        label += f" ({len(block.tabs)} tabs)"
    return label
