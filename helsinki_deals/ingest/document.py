"""Document query layer used by the extraction heuristics.

Scoring, extraction and link discovery only need a handful of capabilities:
walk elements in document order, filter them by tag ("semantic role") or by a
substring of their class-like attributes, read text and attributes, and look
at ancestors. ``Document`` and ``Element`` expose exactly that, so the
heuristics can be exercised against synthetic documents. ``HTMLDocument`` is
the selectolax-backed implementation used in production.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Optional

from selectolax.parser import HTMLParser, Node

logger = logging.getLogger(__name__)

# Attributes that carry styling/role hints on real-world storefronts
CLASS_LIKE_ATTRS = ("class", "id", "data-testid", "data-component")

# Nodes that never contribute visible text
NON_CONTENT_TAGS = [
    "script", "style", "noscript", "template", "svg",
    "iframe", "video", "audio", "canvas", "object",
]

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


class Element(ABC):
    """A single element of a parsed document."""

    @property
    @abstractmethod
    def tag(self) -> str:
        pass

    @abstractmethod
    def attr(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def text(self) -> str:
        """Visible text, whitespace-collapsed."""
        pass

    @abstractmethod
    def parent(self) -> Optional["Element"]:
        pass

    @abstractmethod
    def children(self) -> List["Element"]:
        pass

    def descendants(self) -> Iterator["Element"]:
        stack = list(reversed(self.children()))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children()))

    def ancestors(self) -> Iterator["Element"]:
        node = self.parent()
        while node is not None:
            yield node
            node = node.parent()

    def has_ancestor(self, tags: Iterable[str]) -> bool:
        wanted = set(tags)
        return any(node.tag in wanted for node in self.ancestors())

    def has_descendant(self, tags: Iterable[str]) -> bool:
        wanted = set(tags)
        return any(node.tag in wanted for node in self.descendants())

    def class_like(self) -> str:
        """Lowercased concatenation of the class-like attributes."""
        values = [self.attr(name) or "" for name in CLASS_LIKE_ATTRS]
        return " ".join(v for v in values if v).lower()

    def matches_hint(self, hints: Iterable[str]) -> bool:
        haystack = self.class_like()
        if not haystack:
            return False
        return any(hint in haystack for hint in hints)


class Document(ABC):
    """A parsed page."""

    @abstractmethod
    def elements(self) -> Iterator[Element]:
        """All elements in document order."""
        pass

    @abstractmethod
    def title(self) -> str:
        pass

    def by_role(self, tags: Iterable[str]) -> List[Element]:
        wanted = set(tags)
        return [el for el in self.elements() if el.tag in wanted]

    def by_attribute_substring(self, hints: Iterable[str]) -> List[Element]:
        hints = tuple(hints)
        return [el for el in self.elements() if el.matches_hint(hints)]

    def anchors(self) -> List[Element]:
        return [el for el in self.by_role(("a",)) if el.attr("href")]

    def first_heading(self) -> str:
        for el in self.by_role(("h1",)):
            text = el.text()
            if text:
                return text
        return ""


class HTMLElement(Element):
    """selectolax-backed element."""

    __slots__ = ("_node",)

    def __init__(self, node: Node):
        self._node = node

    @property
    def tag(self) -> str:
        return (self._node.tag or "").lower()

    def attr(self, name: str) -> Optional[str]:
        value = self._node.attributes.get(name)
        return value if value is not None else None

    def text(self) -> str:
        return collapse_whitespace(self._node.text(deep=True, separator=" ", strip=True))

    def parent(self) -> Optional[Element]:
        parent = self._node.parent
        if parent is None or parent.tag in (None, "-undef", "html"):
            return None
        return HTMLElement(parent)

    def children(self) -> List[Element]:
        return [HTMLElement(child) for child in self._node.iter(include_text=False)]


class HTMLDocument(Document):
    """Document parsed from raw markup with non-content nodes removed."""

    def __init__(self, html: str):
        self._parser = HTMLParser(html or "")
        self._parser.strip_tags(NON_CONTENT_TAGS)

    def elements(self) -> Iterator[Element]:
        root = self._parser.root
        if root is None:
            return iter(())
        return HTMLElement(root).descendants()

    def title(self) -> str:
        node = self._parser.css_first("title")
        if node is None:
            return ""
        return collapse_whitespace(node.text(strip=True))


def parse_document(html: Optional[str]) -> Document:
    """Parse markup into a ``Document``. Never raises."""
    try:
        return HTMLDocument(html or "")
    except Exception as e:
        logger.debug(f"Failed to parse HTML: {e}")
        return HTMLDocument("")
