"""Selectors describing where inside a resource's content a term occurs.

Each selector is an immutable value. Two selectors are equal only when they
are of the same kind and carry the same field values, so a ``set`` of
selectors never holds duplicates and ``CssSelector("p") != XPathSelector("p")``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Union

UNBOUNDED = -1


@dataclass(frozen=True, slots=True)
class CssSelector:
    path: str

    kind: ClassVar[str] = "css"


@dataclass(frozen=True, slots=True)
class XPathSelector:
    path: str

    kind: ClassVar[str] = "xpath"


@dataclass(frozen=True, slots=True)
class TextQuoteSelector:
    exact_match: str

    kind: ClassVar[str] = "text-quote"


@dataclass(frozen=True, slots=True)
class TextPositionSelector:
    """Character offset of an occurrence; ``end == -1`` means the end is unknown."""

    start: int
    end: int = UNBOUNDED

    kind: ClassVar[str] = "text-position"

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("start must not be negative")
        if self.end != UNBOUNDED and self.end < self.start:
            raise ValueError("end must be -1 or not smaller than start")


Selector = Union[CssSelector, XPathSelector, TextQuoteSelector, TextPositionSelector]


def selector_to_dict(selector: Selector) -> dict[str, Any]:
    """Serialise a selector as ``{"kind": ..., <fields>}``."""
    if isinstance(selector, (CssSelector, XPathSelector)):
        return {"kind": selector.kind, "path": selector.path}
    if isinstance(selector, TextQuoteSelector):
        return {"kind": selector.kind, "exactMatch": selector.exact_match}
    if isinstance(selector, TextPositionSelector):
        return {"kind": selector.kind, "start": selector.start, "end": selector.end}
    raise TypeError(f"Unknown selector type {type(selector).__name__}")


def selector_to_row(selector: Selector) -> tuple[str, str, int, int]:
    """Flatten a selector into ``(kind, value, start_pos, end_pos)`` storage columns."""
    if isinstance(selector, (CssSelector, XPathSelector)):
        return selector.kind, selector.path, 0, UNBOUNDED
    if isinstance(selector, TextQuoteSelector):
        return selector.kind, selector.exact_match, 0, UNBOUNDED
    if isinstance(selector, TextPositionSelector):
        return selector.kind, "", selector.start, selector.end
    raise TypeError(f"Unknown selector type {type(selector).__name__}")


def selector_from_row(kind: str, value: str, start_pos: int, end_pos: int) -> Selector:
    if kind == CssSelector.kind:
        return CssSelector(value)
    if kind == XPathSelector.kind:
        return XPathSelector(value)
    if kind == TextQuoteSelector.kind:
        return TextQuoteSelector(value)
    if kind == TextPositionSelector.kind:
        return TextPositionSelector(start_pos, end_pos)
    raise ValueError(f"Unknown selector kind {kind!r}")


def selector_sort_key(selector: Selector) -> tuple[str, str, int, int]:
    return selector_to_row(selector)


def sorted_selectors(selectors: Iterable[Selector]) -> list[Selector]:
    """Deterministic ordering for output; selector sets themselves are unordered."""
    return sorted(selectors, key=selector_sort_key)


__all__ = [
    "UNBOUNDED",
    "CssSelector",
    "XPathSelector",
    "TextQuoteSelector",
    "TextPositionSelector",
    "Selector",
    "selector_to_dict",
    "selector_to_row",
    "selector_from_row",
    "sorted_selectors",
]
