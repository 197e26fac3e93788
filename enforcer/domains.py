"""Exemption matching and the per-context enforcement decision.

Pure functions, no I/O.
"""

from __future__ import annotations

from typing import Iterable

from shared.lock_state import LockState


def normalize_hostname(hostname: str) -> str:
    """Lower-case and drop one leading "www." label."""
    host = hostname.strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def is_exempt(hostname: str, allowed_domains: Iterable[str]) -> bool:
    """True if hostname equals an allowed domain or is a subdomain of one.

    Matching is on label boundaries: "sub.example.com" matches "example.com",
    "notexample.com" does not. An empty list exempts nothing.
    """
    host = normalize_hostname(hostname)
    for candidate in allowed_domains:
        domain = (candidate or "").strip().lower()
        if not domain:
            continue
        if host == domain or host.endswith("." + domain):
            return True
    return False


def should_block(state: LockState, hostname: str) -> bool:
    """The enforcement decision for one context under one state."""
    if not state.lock_active:
        return False
    return not is_exempt(hostname, state.allowed_domains)
