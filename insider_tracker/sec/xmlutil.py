from __future__ import annotations

from typing import Iterator, List, Optional
from xml.etree import ElementTree as ET


def strip_ns(tag: str) -> str:
    if not isinstance(tag, str):
        # Comments / processing instructions
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def iter_children(parent: ET.Element | None, name: str) -> Iterator[ET.Element]:
    if parent is None:
        return
    for child in parent:
        if strip_ns(child.tag) == name:
            yield child


def find_child(parent: ET.Element | None, name: str) -> Optional[ET.Element]:
    for child in iter_children(parent, name):
        return child
    return None


def find_path(parent: ET.Element | None, path: List[str]) -> Optional[ET.Element]:
    cur: Optional[ET.Element] = parent
    for p in path:
        if cur is None:
            return None
        cur = find_child(cur, p)
    return cur


def _own_text(el: ET.Element | None) -> Optional[str]:
    if el is None:
        return None
    text = (el.text or "").strip()
    return text if text else None


def find_text(parent: ET.Element | None, path: List[str]) -> Optional[str]:
    return _own_text(find_path(parent, path))


def find_value_text(parent: ET.Element | None, path: List[str]) -> Optional[str]:
    """Read a leaf that may be wrapped in a container.

    SEC ownership documents write most numeric/date leaves as
    <foo><value>TEXT</value><footnoteId id="F1"/></foo>, with the footnote reference
    before, after, or absent. The <value> child is located by name among the container's
    children; if there is none, the container's own text is used.
    """
    container = find_path(parent, path)
    if container is None:
        return None
    value_el = find_child(container, "value")
    if value_el is not None:
        return _own_text(value_el)
    return _own_text(container)


def find_element(root: ET.Element, name: str) -> Optional[ET.Element]:
    """Depth-first search for the first element with the given local name (root included)."""
    lname = name.lower()
    for el in root.iter():
        if strip_ns(el.tag).lower() == lname:
            return el
    return None
