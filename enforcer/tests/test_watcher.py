"""Tests for the overlay reconciliation watcher."""

from __future__ import annotations

import asyncio

import pytest

from enforcer.document import Document
from enforcer.overlay import OVERLAY_ID, create_overlay, find_overlay
from enforcer.watcher import OverlayWatcher


class _Desired:
    def __init__(self, value: bool) -> None:
        self.value = value

    def __call__(self) -> bool:
        return self.value


def _overlay_count(document: Document) -> int:
    return sum(1 for el in document.document_element.iter() if el.id == OVERLAY_ID)


def test_reconcile_creates_missing_overlay(document: Document) -> None:
    watcher = OverlayWatcher(document, _Desired(True))

    assert watcher.reconcile() is True
    assert find_overlay(document) is not None
    assert watcher.reconcile() is False


def test_reconcile_never_removes_when_not_desired(document: Document) -> None:
    page_element = document.body.append_child(document.create_element("div", OVERLAY_ID))
    watcher = OverlayWatcher(document, _Desired(False))

    assert watcher.reconcile() is False
    assert find_overlay(document) is page_element
    assert watcher.repairs == 0


@pytest.mark.asyncio
async def test_restores_overlay_removed_by_page(document: Document) -> None:
    watcher = OverlayWatcher(document, _Desired(True))
    watcher.install()
    create_overlay(document)
    await asyncio.sleep(0)

    find_overlay(document).remove()
    await asyncio.sleep(0)

    assert find_overlay(document) is not None
    assert watcher.repairs == 1


@pytest.mark.asyncio
async def test_burst_of_mutations_yields_one_overlay(document: Document) -> None:
    watcher = OverlayWatcher(document, _Desired(True))
    watcher.install()
    create_overlay(document)
    await asyncio.sleep(0)

    find_overlay(document).remove()
    for _ in range(5):
        document.body.append_child(document.create_element("div"))
    create_overlay(document).remove()
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert _overlay_count(document) == 1
    assert watcher.repairs == 1


@pytest.mark.asyncio
async def test_idle_when_not_desired(document: Document) -> None:
    watcher = OverlayWatcher(document, _Desired(False))
    watcher.install()

    document.body.append_child(document.create_element("div"))
    await asyncio.sleep(0)

    assert find_overlay(document) is None
    assert watcher.repairs == 0


@pytest.mark.asyncio
async def test_install_is_idempotent(document: Document) -> None:
    calls: list[int] = []

    def counting() -> bool:
        calls.append(1)
        return False

    watcher = OverlayWatcher(document, counting)
    watcher.install()
    watcher.install()
    assert watcher.installed

    document.body.append_child(document.create_element("div"))
    await asyncio.sleep(0)

    # One observer, one batch: desired state consulted once.
    assert len(calls) == 1
