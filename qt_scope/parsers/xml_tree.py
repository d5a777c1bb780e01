"""Generic XML attribute tree for SCOPE telemetry documents.

Both telemetry documents are loosely structured and vary between engine
versions, so nothing here assumes a root element name or namespace.
Element and attribute names are reduced to their local part on load.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from ..errors import MalformedDocument

logger = logging.getLogger(__name__)

SELECT_BY_ID = "id"
SELECT_BY_NAME = "name"


def local_name(name: str) -> str:
    """Strip a ``{namespace}`` or ``prefix:`` qualifier from a name."""
    if "}" in name:
        name = name.rsplit("}", 1)[1]
    if ":" in name:
        name = name.rsplit(":", 1)[1]
    return name


def to_int(value: Optional[str]) -> int:
    """Parse a numeric attribute value, returning 0 when missing or invalid."""
    if value is None:
        return 0
    text = value.strip()
    if not text:
        return 0
    try:
        number = int(text)
    except ValueError:
        try:
            number = int(float(text))
        except (ValueError, OverflowError):
            return 0
    return max(number, 0)


@dataclass
class XmlNode:
    """One element: local tag name, attributes and ordered children."""
    tag: str
    attributes: dict = field(default_factory=dict)
    children: list = field(default_factory=list)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Attribute lookup by local name."""
        return self.attributes.get(name, default)

    def int_attr(self, name: str) -> int:
        return to_int(self.attributes.get(name))

    def child(self, tag: str) -> Optional["XmlNode"]:
        """First direct child with the given tag, or None."""
        for node in self.children:
            if node.tag == tag:
                return node
        return None

    def children_named(self, tag: str) -> list:
        return [node for node in self.children if node.tag == tag]

    def iter(self) -> Iterator["XmlNode"]:
        """Yield this node and all descendants in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def descendants(self) -> Iterator["XmlNode"]:
        nodes = self.iter()
        next(nodes)
        return nodes

    def find_all(self, tag: str) -> list:
        """All nodes in this subtree (self included) with the given tag."""
        return [node for node in self.iter() if node.tag == tag]

    def with_attribute(self, name: str) -> list:
        """All proper descendants carrying the given attribute."""
        return [node for node in self.descendants() if name in node.attributes]

    def select_prefixed(self, prefix: str, by: str = SELECT_BY_ID) -> list:
        """Select nodes whose ``id`` attribute or tag name starts with prefix.

        Args:
            prefix: Identifier prefix, e.g. ``"SV"``.
            by: ``"id"`` to match the ``id`` attribute, ``"name"`` to match
                the element's own tag name.
        """
        if by == SELECT_BY_ID:
            return [n for n in self.iter() if (n.get("id") or "").startswith(prefix)]
        if by == SELECT_BY_NAME:
            return [n for n in self.iter() if n.tag.startswith(prefix)]
        raise ValueError(f"Unknown selection mode: {by}")


def _make_node(element: ET.Element) -> XmlNode:
    return XmlNode(
        tag=local_name(element.tag),
        attributes={local_name(k): v for k, v in element.attrib.items()},
    )


def _convert(root: ET.Element) -> XmlNode:
    """Convert an ElementTree into ``XmlNode``s with an explicit stack.

    Nesting depth is bounded only by memory, not by the recursion limit.
    Comments and processing instructions are dropped.
    """
    tree = _make_node(root)
    stack = [(root, tree)]
    while stack:
        element, node = stack.pop()
        for child in element:
            if not isinstance(child.tag, str):
                continue
            child_node = _make_node(child)
            node.children.append(child_node)
            stack.append((child, child_node))
    return tree


def decode_document(data: Union[bytes, str], source: str = "<memory>") -> XmlNode:
    """Decode raw XML into an ``XmlNode`` tree.

    Raises:
        MalformedDocument: If the input is not well-formed XML.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise MalformedDocument(source, str(exc)) from exc
    tree = _convert(root)
    logger.debug("Decoded %s: root <%s> with %d children", source, tree.tag, len(tree.children))
    return tree


def read_document(path: Union[str, Path]) -> XmlNode:
    """Read and decode an XML file."""
    path = Path(path)
    return decode_document(path.read_bytes(), source=str(path))
