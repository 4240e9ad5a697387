from __future__ import annotations

import io
import logging
import uuid
from collections.abc import MutableMapping
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Protocol
from urllib.parse import unquote, urlparse

from .model import Block, Document, ImageResourceBlock, TabsBlock

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, data: bytes, content_type: str | None = None) -> str: ...

    def resolve(self, reference: str) -> BinaryIO: ...

    def __contains__(self, reference: object) -> bool: ...


class InMemoryBlobStore:
    """Ephemeral ``blob:`` references that live as long as the store."""

    prefix = "blob:"

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str | None]] = {}

    def put(self, data: bytes, content_type: str | None = None) -> str:
        reference = f"{self.prefix}{uuid.uuid4().hex}"
        self._blobs[reference] = (bytes(data), content_type)
        return reference

    def resolve(self, reference: str) -> BinaryIO:
        try:
            data, _ = self._blobs[reference]
        except KeyError:
            raise FileNotFoundError(reference) from None
        return io.BytesIO(data)

    def content_type(self, reference: str) -> str | None:
        return self._blobs[reference][1] if reference in self._blobs else None

    def __contains__(self, reference: object) -> bool:
        return reference in self._blobs


class DirectoryBlobStore:
    """Blobs written to files under ``root``; references are ``file:`` URIs."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def put(self, data: bytes, content_type: str | None = None) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / uuid.uuid4().hex
        target.write_bytes(data)
        return target.resolve().as_uri()

    def resolve(self, reference: str) -> BinaryIO:
        return self._path(reference).open("rb")

    def __contains__(self, reference: object) -> bool:
        if not isinstance(reference, str) or not reference.startswith("file:"):
            return False
        path = self._path(reference)
        return path.parent == self.root.resolve() and path.exists()

    def _path(self, reference: str) -> Path:
        parsed = urlparse(reference)
        if parsed.scheme != "file":
            raise FileNotFoundError(reference)
        return Path(unquote(parsed.path))


class ResourceMap(MutableMapping):
    """Runtime mapping from image-resource id to a source reference.

    Built once from a document and then updated by uploads; it is never part of
    the serialized document. Listeners are told about every replacement so a
    preview can re-render.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._listeners: list[Callable[[str, str], None]] = []

    @classmethod
    def from_document(cls, document: Document) -> "ResourceMap":
        resources = cls()
        resources.reset(document)
        return resources

    def subscribe(self, listener: Callable[[str, str], None]) -> None:
        self._listeners.append(listener)

    def replace(self, resource_id: str, reference: str) -> None:
        self[resource_id] = reference

    def reset(self, document: Document) -> None:
        self._data = {}
        for block in iter_image_resources(document.blocks):
            self._data.setdefault(block.resource_id, block.src)

    def merge(self, document: Document) -> None:
        """Add ids for newly inserted resource blocks, keeping uploads."""
        for block in iter_image_resources(document.blocks):
            self._data.setdefault(block.resource_id, block.src)

    def first(self) -> str | None:
        return next(iter(self._data.values()), None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = value
        logger.debug("Image resource %s now points at %s", key, value)
        for listener in list(self._listeners):
            listener(key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


def iter_image_resources(blocks: list[Block]) -> Iterator[ImageResourceBlock]:
    for block in blocks:
        if isinstance(block, ImageResourceBlock):
            yield block
        elif isinstance(block, TabsBlock):
            for tab in block.tabs:
                yield from iter_image_resources(tab.blocks)


def upload_image(
    resources: ResourceMap,
    store: BlobStore,
    resource_id: str,
    data: bytes,
    content_type: str | None = None,
) -> str:
    """Store uploaded bytes and point ``resource_id`` at the new reference."""
    reference = store.put(data, content_type)
    resources.replace(resource_id, reference)
    logger.info("Replaced image resource %s (%d bytes)", resource_id, len(data))
    return reference
