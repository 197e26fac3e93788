"""Minimal DOM surface the enforcer drives.

Only what overlay enforcement needs: an element tree rooted at the document
element, lookup by id, shadow roots, and structural mutation observation.

Mutation observers behave like the browser's MutationObserver: child-list
changes anywhere under the document element are queued as records and
delivered in one batch per event-loop turn, after the mutating code has
returned. Changes inside a shadow root are not observed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterator

log = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"


@dataclass(frozen=True)
class MutationRecord:
    kind: str           # ADDED or REMOVED
    target: Element     # parent whose child list changed
    node: Element


MutationCallback = Callable[[list[MutationRecord]], None]


class ShadowRoot:
    """Encapsulated subtree attached to a host element.

    Styling inside a shadow root does not leak out and host-page styles do
    not reach in. A closed root is not reachable through its host.
    """

    def __init__(self, host: Element, mode: str) -> None:
        self.host = host
        self.mode = mode
        self.inner_html = ""


class Element:
    def __init__(self, tag: str, document: Document, element_id: str | None = None) -> None:
        self.tag = tag
        self.id = element_id
        self.document = document
        self.parent: Element | None = None
        self.children: list[Element] = []
        self._shadow: ShadowRoot | None = None

    def __repr__(self) -> str:
        return f"<Element {self.tag}#{self.id}>" if self.id else f"<Element {self.tag}>"

    @property
    def is_connected(self) -> bool:
        node: Element | None = self
        while node is not None:
            if node is self.document.document_element:
                return True
            node = node.parent
        return False

    @property
    def shadow_root(self) -> ShadowRoot | None:
        if self._shadow is not None and self._shadow.mode == "open":
            return self._shadow
        return None

    def attach_shadow(self, mode: str = "open") -> ShadowRoot:
        if mode not in ("open", "closed"):
            raise ValueError(f"Invalid shadow root mode: {mode!r}")
        if self._shadow is not None:
            raise RuntimeError(f"{self!r} already hosts a shadow root")
        self._shadow = ShadowRoot(self, mode)
        return self._shadow

    def append_child(self, child: Element) -> Element:
        if child.parent is not None:
            child.remove()
        child.parent = self
        self.children.append(child)
        if self.is_connected:
            self.document._record(ADDED, self, child)
        return child

    def remove(self) -> None:
        parent = self.parent
        if parent is None:
            return
        connected = parent.is_connected
        parent.children.remove(self)
        self.parent = None
        if connected:
            self.document._record(REMOVED, parent, self)

    def iter(self) -> Iterator[Element]:
        """This element and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.iter()


class Document:
    """A page's element tree with html/head/body already in place."""

    def __init__(self) -> None:
        self._observers: list[MutationCallback] = []
        self._pending: list[MutationRecord] = []
        self._flush_scheduled = False
        self.document_element = Element("html", self)
        self.head = self.document_element.append_child(Element("head", self))
        self.body = self.document_element.append_child(Element("body", self))

    def create_element(self, tag: str, element_id: str | None = None) -> Element:
        return Element(tag, self, element_id)

    def get_element_by_id(self, element_id: str) -> Element | None:
        for element in self.document_element.iter():
            if element.id == element_id:
                return element
        return None

    def observe(self, callback: MutationCallback) -> Callable[[], None]:
        """Register a subtree child-list observer. Returns a disconnect function."""
        self._observers.append(callback)

        def disconnect() -> None:
            try:
                self._observers.remove(callback)
            except ValueError:
                pass

        return disconnect

    def _record(self, kind: str, target: Element, node: Element) -> None:
        if not self._observers:
            return
        self._pending.append(MutationRecord(kind, target, node))
        if not self._flush_scheduled:
            self._flush_scheduled = True
            asyncio.get_running_loop().call_soon(self._flush)

    def _flush(self) -> None:
        self._flush_scheduled = False
        records, self._pending = self._pending, []
        if not records:
            return
        for callback in list(self._observers):
            try:
                callback(records)
            except Exception:
                log.exception("Mutation observer callback failed")
