"""Self-healing loop that keeps the overlay in its desired state.

Level-triggered: every mutation batch, however large, leads to one
comparison of desired presence (from the last received LockState) against
observed presence in the document, and at most one repair. Repairs only
ever add the overlay back. The records themselves are never inspected, so
bursts and coalesced mutations are handled the same as a single change.
"""

from __future__ import annotations

import logging
from typing import Callable

from enforcer.document import Document, MutationRecord
from enforcer.overlay import create_overlay, find_overlay

log = logging.getLogger(__name__)


class OverlayWatcher:
    """Installed once per context, then left running for its lifetime."""

    def __init__(self, document: Document, desired: Callable[[], bool]) -> None:
        self._document = document
        self._desired = desired
        self._installed = False
        self.repairs = 0

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        if self._installed:
            return
        self._document.observe(self._on_mutations)
        self._installed = True
        log.debug("Overlay watcher installed")

    def reconcile(self) -> bool:
        """Re-create the overlay if it is wanted and missing.

        Returns True if a repair was made. Removal is left to the enforcer,
        so an unblocked context never touches the page's own elements.
        Never re-evaluates exemption: the desired flag is whatever the
        enforcer last decided.
        """
        want = self._desired()
        have = find_overlay(self._document) is not None
        if not want or have:
            return False
        create_overlay(self._document)
        log.info("Overlay was removed by the page, restored")
        self.repairs += 1
        return True

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        self.reconcile()
