"""Full-page blocking overlay.

The overlay is a single element with a stable id hosting a closed shadow
root, so host-page CSS cannot restyle or hide its contents and page script
cannot reach into it. It is appended to the document element (not body)
and sits at the maximum z-index. Never patched: removed and recreated whole.
"""

from __future__ import annotations

from enforcer.document import Document, Element

OVERLAY_ID = "prodblock-overlay"

# Largest 32-bit signed int: the highest stacking order browsers honour.
MAX_Z_INDEX = 2147483647

OVERLAY_STYLE = f"""
:host {{
  all: initial;
}}
.overlay {{
  position: fixed;
  inset: 0;
  z-index: {MAX_Z_INDEX};
  background: linear-gradient(135deg, #0a0a0b 0%, #111113 100%);
  color: #fafafa;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  display: flex;
  flex-direction: column;
  align-items: center;
  justify-content: center;
  text-align: center;
  padding: 2rem;
}}
.icon {{
  font-size: 4rem;
  margin-bottom: 1.5rem;
}}
.title {{
  font-size: 1.75rem;
  font-weight: 600;
  margin-bottom: 0.75rem;
}}
.message {{
  font-size: 1rem;
  color: #a1a1aa;
  max-width: 400px;
  line-height: 1.5;
}}
.hint {{
  margin-top: 2rem;
  font-size: 0.85rem;
  color: #71717a;
}}
"""

OVERLAY_TITLE = "Site Blocked"
OVERLAY_MESSAGE = "This site is not in your focus session's allowed list."
OVERLAY_HINT = "Complete your task in Prodblock to browse freely."


def render_overlay_html() -> str:
    """Markup placed inside the overlay's shadow root."""
    return (
        f"<style>{OVERLAY_STYLE}</style>"
        '<div class="overlay">'
        '<div class="icon">\U0001f512</div>'
        f'<div class="title">{OVERLAY_TITLE}</div>'
        f'<div class="message">{OVERLAY_MESSAGE}</div>'
        f'<div class="hint">{OVERLAY_HINT}</div>'
        "</div>"
    )


def find_overlay(document: Document) -> Element | None:
    return document.get_element_by_id(OVERLAY_ID)


def create_overlay(document: Document) -> Element:
    """Insert the overlay unless one is already present. Returns the overlay."""
    existing = find_overlay(document)
    if existing is not None:
        return existing
    overlay = document.create_element("div", element_id=OVERLAY_ID)
    shadow = overlay.attach_shadow("closed")
    shadow.inner_html = render_overlay_html()
    document.document_element.append_child(overlay)
    return overlay


def remove_overlay(document: Document) -> bool:
    """Remove the overlay if present. Returns True if one was removed."""
    overlay = find_overlay(document)
    if overlay is None:
        return False
    overlay.remove()
    return True
