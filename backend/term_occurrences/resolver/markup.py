"""Resolve term occurrences from annotated HTML/XML markup.

The annotation producer marks each detected term with an inline element::

    <span about="_:a1" typeof="term-occurrence"
          resource="http://example.org/terms/building"
          data-suggested-lemma="building">buildings</span>

``resource`` is the term (absent when the producer could not decide),
``data-suggested-lemma`` an optional lemma, and ``about`` a stable anchor.
Spans without an anchor get one injected; the re-serialised markup is the
normalized copy that should replace the stored content, so later runs see
identical anchors and offsets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from term_occurrences.core.errors import UnsupportedContentError
from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.models.entities import CandidateOccurrence, OccurrenceTarget, Resource
from term_occurrences.models.selectors import (
    CssSelector,
    Selector,
    TextPositionSelector,
    TextQuoteSelector,
    XPathSelector,
)
from term_occurrences.utils.ids import new_id

logger = get_logger(__name__)

ANCHOR_ATTR = "about"
MARKER_ATTR = "typeof"
TERM_ATTR = "resource"
LEMMA_ATTR = "data-suggested-lemma"

_NON_TEXT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)
_NON_TEXT_PARENTS = frozenset({"script", "style"})


class PathStyle(str, Enum):
    CSS = "css"
    XPATH = "xpath"


@dataclass(slots=True)
class ResolutionResult:
    """Candidates found in one piece of content plus its normalized copy."""

    source: Resource
    candidates: list[CandidateOccurrence] = field(default_factory=list)
    content: bytes = b""
    anchors_injected: int = 0


class MarkupOccurrenceResolver:
    """Turns marked-up content into candidate occurrences.

    Every candidate's target holds a containment path to the nearest
    unmarked ancestor element (CSS or XPath depending on ``path_style``),
    the exact text of the span, and its start offset within the document
    text. The end offset is left unknown (``-1``).
    """

    def __init__(self, path_style: PathStyle, parser: str, marker: str = "term-occurrence") -> None:
        self.path_style = path_style
        self.parser = parser
        self.marker = marker

    def resolve(self, content: bytes | BinaryIO, source: Resource, encoding: str = "utf-8") -> ResolutionResult:
        raw = content if isinstance(content, (bytes, bytearray)) else content.read()
        data = bytes(raw)
        try:
            data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise UnsupportedContentError(f"Content of {source.id} cannot be decoded as {encoding}: {exc}") from exc

        soup = BeautifulSoup(data, self.parser, from_encoding=encoding)
        offsets = _text_offsets(soup)
        result = ResolutionResult(source=source)
        for span in soup.find_all(self.is_marked):
            exact = _text_of(span)
            if not exact:
                logger.debug("Ignoring empty occurrence span in %s", source.id, extra=log_context(source=source.id))
                continue
            anchor = span.get(ANCHOR_ATTR)
            if not anchor:
                anchor = f"_:{new_id()[:16]}"
                span[ANCHOR_ATTR] = anchor
                result.anchors_injected += 1
            selectors: set[Selector] = {
                TextQuoteSelector(exact),
                TextPositionSelector(offsets[id(span)]),
            }
            container = self._container_of(span)
            if container is not None:
                selectors.add(self._path_selector(container))
            result.candidates.append(
                CandidateOccurrence(
                    term=span.get(TERM_ATTR) or None,
                    target=OccurrenceTarget(source=source.id, source_kind=source.kind, selectors=selectors),
                    suggested_lemma=span.get(LEMMA_ATTR) or None,
                    anchor=anchor,
                )
            )
        # Characters the declared charset cannot hold become numeric references.
        result.content = str(soup).encode(encoding, "xmlcharrefreplace")
        logger.debug(
            "Resolved %s candidate occurrences in %s",
            len(result.candidates),
            source.id,
            extra=log_context(source=source.id),
        )
        return result

    def is_marked(self, tag: Tag) -> bool:
        value = tag.get(MARKER_ATTR)
        tokens = value if isinstance(value, list) else (value or "").split()
        return self.marker in tokens

    def _container_of(self, span: Tag) -> Tag | None:
        node = span.parent
        while isinstance(node, Tag) and not isinstance(node, BeautifulSoup) and self.is_marked(node):
            node = node.parent
        if node is None or isinstance(node, BeautifulSoup):
            return None
        return node

    def _path_selector(self, container: Tag) -> Selector:
        if self.path_style is PathStyle.XPATH:
            return XPathSelector(xpath_of(container))
        return CssSelector(css_path_of(container))


def css_path_of(tag: Tag) -> str:
    """Return a child-combinator CSS path such as ``html > body > p:nth-of-type(2)``."""
    steps: list[str] = []
    for node, position, ambiguous in _ancestry(tag):
        steps.append(f"{node.name}:nth-of-type({position})" if ambiguous else node.name)
    return " > ".join(steps)


def xpath_of(tag: Tag) -> str:
    """Return an absolute XPath such as ``/html/body/p[2]``."""
    steps: list[str] = []
    for node, position, ambiguous in _ancestry(tag):
        steps.append(f"{node.name}[{position}]" if ambiguous else node.name)
    return "/" + "/".join(steps)


def _ancestry(tag: Tag) -> list[tuple[Tag, int, bool]]:
    """Elements from the root down to ``tag`` with their 1-based same-name position."""
    chain: list[tuple[Tag, int, bool]] = []
    node: Tag | None = tag
    while isinstance(node, Tag) and not isinstance(node, BeautifulSoup):
        parent = node.parent
        siblings = parent.find_all(node.name, recursive=False) if parent is not None else [node]
        position = next(idx for idx, sibling in enumerate(siblings, start=1) if sibling is node)
        chain.append((node, position, len(siblings) > 1))
        node = parent
    chain.reverse()
    return chain


def _is_text(node: object) -> bool:
    if not isinstance(node, NavigableString) or isinstance(node, _NON_TEXT_STRINGS):
        return False
    parent = node.parent
    return parent is None or parent.name not in _NON_TEXT_PARENTS


def _text_of(tag: Tag) -> str:
    return "".join(str(node) for node in tag.descendants if _is_text(node))


def _text_offsets(soup: BeautifulSoup) -> dict[int, int]:
    """Map each element (by ``id``) to the document-text offset where its content starts."""
    offsets: dict[int, int] = {}
    position = 0
    for node in soup.descendants:
        if isinstance(node, Tag):
            offsets[id(node)] = position
        elif _is_text(node):
            position += len(node)
    return offsets


__all__ = ["PathStyle", "ResolutionResult", "MarkupOccurrenceResolver", "css_path_of", "xpath_of"]
