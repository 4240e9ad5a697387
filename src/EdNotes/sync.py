"""Keep the raw text buffer and the structured document consistent.

Two edit sources feed one document: structural commits on the ``BlockTree``
and keystrokes in the raw buffer. The synchronizer is a two-state machine:

* ``ViewMode.STRUCTURAL``: every structural commit re-serializes the buffer.
* ``ViewMode.RAW``: the buffer belongs to the author; structural commits do
  not touch it until the mode switches back.

Raw text that fails to parse or validate is kept exactly as typed and the
document stays at its last valid value.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable

from .codec import Codec, JsonCodec
from .errors import ParseError, ValidationError
from .model import Document
from .schema import diagnose
from .tree import BlockTree

logger = logging.getLogger(__name__)


class ViewMode(enum.Enum):
    STRUCTURAL = "structural"
    RAW = "raw"


class DualViewSynchronizer:
    def __init__(
        self,
        tree: BlockTree | None = None,
        codec: Codec | None = None,
        mode: ViewMode = ViewMode.STRUCTURAL,
    ) -> None:
        self.tree = tree if tree is not None else BlockTree()
        self.codec = codec if codec is not None else JsonCodec()
        self.mode = mode
        self.raw_text = self.codec.serialize(self.tree.document)
        self.diagnostic: ParseError | ValidationError | None = None
        self._last_source = "structural"
        self._listeners: list[Callable[[Document], None]] = []
        self._raw_dirty = False
        self._applying_raw = False
        self.tree.subscribe(self._on_commit)

    @property
    def document(self) -> Document:
        return self.tree.document

    @property
    def in_sync(self) -> bool:
        """True when the raw buffer reflects the committed document."""
        return self.diagnostic is None and self.raw_text == self.codec.serialize(self.document)

    def subscribe(self, listener: Callable[[Document], None]) -> None:
        self._listeners.append(listener)

    def edit_raw(self, text: str) -> bool:
        """Record a raw-buffer edit; return True when it produced a new document."""
        self.raw_text = text
        self._raw_dirty = True
        try:
            document = self.codec.parse(text)
        except (ParseError, ValidationError) as exc:
            self.diagnostic = exc
            logger.debug("Raw edit not applied: %s", exc)
            return False
        self.diagnostic = None
        self._applying_raw = True
        try:
            self.tree.replace(document, source="raw")
        finally:
            self._applying_raw = False
        return True

    def apply_raw(self) -> Document:
        """Explicit apply: parse the buffer and raise if it is not a valid document."""
        document = self.codec.parse(self.raw_text)
        self.diagnostic = None
        self._applying_raw = True
        try:
            return self.tree.replace(document, source="raw")
        finally:
            self._applying_raw = False

    def raw_diagnostics(self) -> list[ValidationError | ParseError]:
        """Every problem in the raw buffer, for inline markers."""
        try:
            data = self.codec.load_data(self.raw_text)
        except ParseError as exc:
            return [exc]
        return list(diagnose(data))

    def set_mode(self, mode: ViewMode) -> None:
        if mode is self.mode:
            return
        logger.debug("Switching view from %s to %s", self.mode.value, mode.value)
        self.mode = mode
        if self._last_source == "structural" and not self._raw_dirty:
            self._refresh_raw()

    def load(self, document: Document) -> Document:
        """Replace the document wholesale and reset the raw buffer."""
        self.tree.replace(document, source="load")
        self._refresh_raw()
        return document

    def load_text(self, text: str) -> Document:
        """Strictly parse ``text`` and load it; raises on invalid input."""
        return self.load(self.codec.parse(text))

    def set_codec(self, codec: Codec) -> None:
        """Switch the raw representation (for example JSON to YAML)."""
        self.codec = codec
        self._refresh_raw()

    def _refresh_raw(self) -> None:
        self.raw_text = self.codec.serialize(self.document)
        self.diagnostic = None
        self._raw_dirty = False

    def _on_commit(self, document: Document, source: str) -> None:
        if self._applying_raw:
            self._last_source = "raw"
        else:
            self._last_source = "structural"
            self._raw_dirty = False
            if self.mode is ViewMode.STRUCTURAL:
                self._refresh_raw()
        for listener in list(self._listeners):
            listener(document)
