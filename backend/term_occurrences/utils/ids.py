"""ID helpers."""

from __future__ import annotations

import re
import uuid

from term_occurrences.core.errors import ValidationError

_UNSAFE_RE = re.compile(r"[^\w\-.~]+")
_WHITESPACE_RE = re.compile(r"\s+")


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def normalize_fragment(value: str) -> str:
    """Lower-case ``value`` and make it safe for use as a URI path segment."""
    collapsed = _WHITESPACE_RE.sub("-", value.strip().lower())
    return _UNSAFE_RE.sub("", collapsed)


class IdentifierGenerator:
    """Builds resource and occurrence identifiers from namespaces and contexts."""

    def resolve(self, namespace: str, fragment: str) -> str:
        """Join ``namespace`` and ``fragment`` into a single identifier."""
        if not namespace or not fragment:
            raise ValidationError("Both namespace and fragment are required to resolve an identifier")
        if namespace.endswith(("/", "#")):
            return f"{namespace}{fragment}"
        return f"{namespace}/{fragment}"

    def derive(self, base: str, separator: str, suffix: str) -> str:
        """Return ``<base><separator>/<suffix>``, e.g. ``http://x/doc/occurrences/abc``."""
        if not base:
            raise ValidationError("A base identifier is required to derive a new one")
        fragment = normalize_fragment(suffix)
        if not fragment:
            raise ValidationError(f"Suffix {suffix!r} yields an empty identifier fragment")
        return f"{base.rstrip('/')}{separator}/{fragment}"

    def fresh(self, base: str, separator: str, token: str | None = None) -> str:
        """Derive a new identifier under ``base`` with a random suffix.

        ``token`` (e.g. a client correlation id) is kept as the suffix prefix
        so the identifier stays traceable to the call that created it.
        """
        prefix = normalize_fragment(token) if token else None
        return self.derive(base, separator, new_id(prefix or None))


__all__ = ["new_id", "normalize_fragment", "IdentifierGenerator"]
