"""Generic markup nodes, the defs accumulator and their lxml serialization.

The renderer builds a tree of ``MarkupNode`` objects and never touches lxml
directly; ``serialize_markup`` turns the finished tree into a string.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from lxml import etree

from slidesvg.errors import MalformedOutputError

# SVG namespaces
SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
NSMAP = {None: SVG_NS, "xlink": XLINK_NS}

_PREFIXES = {"xlink": XLINK_NS}


@dataclass
class MarkupNode:
    """A tag with attributes and ordered children (nodes or text)."""
    tag: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: List[Union["MarkupNode", str]] = field(default_factory=list)

    def find_all(self, tag: str) -> List["MarkupNode"]:
        """Return every descendant (and self) with the given tag, depth-first."""
        found = [self] if self.tag == tag else []
        for child in self.children:
            if isinstance(child, MarkupNode):
                found.extend(child.find_all(tag))
        return found


class Defs:
    """
    Append-only collection of reusable resources for one conversion.

    Created once per top-level conversion and passed by reference to every
    descendant. A whole-document conversion shares one accumulator across
    all top-level elements, so a resource repeated on two slides is emitted
    once. ``shared`` maps a canonical resource key to the task that
    emits it, so a resource requested concurrently is built exactly once.
    ``images`` holds the embedded data URI (or the load error) of every
    image source, filled before the tree is walked.
    """

    def __init__(self) -> None:
        self.children: List[MarkupNode] = []
        self.images: Dict[str, Union[str, Exception]] = {}
        self.shared: Dict[str, "asyncio.Future[str]"] = {}
        self._lock = asyncio.Lock()

    async def append(self, *nodes: MarkupNode) -> None:
        async with self._lock:
            self.children.extend(nodes)

    async def share(
        self,
        key: str,
        build: Callable[[], Awaitable[MarkupNode]],
    ) -> str:
        """
        Return the id of the resource registered under ``key``.

        The first caller's ``build`` creates the node; later callers, even
        those arriving while it is still being built, get the same id.
        Errors raised by ``build`` propagate to every caller.
        """
        task = self.shared.get(key)
        if task is None:
            task = asyncio.ensure_future(self._emit(build))
            self.shared[key] = task
        return await task

    async def _emit(self, build: Callable[[], Awaitable[MarkupNode]]) -> str:
        node = await build()
        await self.append(node)
        return node.attrs["id"]

    @property
    def resource_ids(self) -> Dict[str, str]:
        """Dedup map of successfully emitted resources."""
        return {
            key: task.result()
            for key, task in self.shared.items()
            if task.done() and not task.cancelled() and task.exception() is None
        }

    def to_node(self) -> MarkupNode:
        return MarkupNode("defs", children=list(self.children))


# =============================================================================
# SERIALIZATION
# =============================================================================

def format_number(value: float) -> str:
    """Format a number for an attribute: integral values without a fraction."""
    if isinstance(value, int):
        return str(value)
    value = round(value, 6)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_attr(value: Any) -> Optional[str]:
    """Format an attribute value. Returns None for values that are omitted."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, dict):
        declarations = [
            f"{key}: {format_attr(item)}"
            for key, item in value.items()
            if item is not None
        ]
        return "; ".join(declarations) if declarations else None
    return str(value)


def _qualify(name: str) -> str:
    prefix, sep, local = name.partition(":")
    if sep and prefix in _PREFIXES:
        return f"{{{_PREFIXES[prefix]}}}{local}"
    return name


def to_etree(node: MarkupNode, parent: Optional[etree._Element] = None) -> etree._Element:
    """Build an lxml element tree for a markup node."""
    tag = f"{{{SVG_NS}}}{node.tag}"
    if parent is None:
        element = etree.Element(tag, nsmap=NSMAP)
    else:
        element = etree.SubElement(parent, tag)

    for name, value in node.attrs.items():
        if name == "xmlns" or name.startswith("xmlns:"):
            continue
        text = format_attr(value)
        if text is not None:
            element.set(_qualify(name), text)

    last = None
    for child in node.children:
        if isinstance(child, MarkupNode):
            last = to_etree(child, element)
        elif last is None:
            element.text = (element.text or "") + str(child)
        else:
            last.tail = (last.tail or "") + str(child)
    return element


def serialize_markup(node: MarkupNode, pretty: bool = False) -> str:
    """Serialize a markup tree to an SVG string."""
    return etree.tostring(to_etree(node), encoding="unicode", pretty_print=pretty)


def parse_markup(markup: str) -> etree._Element:
    """
    Parse generated markup into a live element.

    Raises:
        MalformedOutputError: with the parser error and the offending markup
    """
    try:
        return etree.fromstring(markup.encode("utf-8"))
    except etree.XMLSyntaxError as e:
        raise MalformedOutputError(str(e), markup) from e
