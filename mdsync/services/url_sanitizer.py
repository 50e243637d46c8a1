"""Link and image address validation.

Pure helpers: every address that ends up in a document tree passes through
``sanitize_link_url`` or ``sanitize_image_url``. A rejected address comes back
as an empty string; nothing here raises on input.
"""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit

LINK_PROTOCOLS: frozenset[str] = frozenset({"http", "https", "mailto"})
IMAGE_PROTOCOLS: frozenset[str] = frozenset({"http", "https", "data"})

# Checked against the percent-decoded text before any structured parse.
_DANGEROUS_PREFIXES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*javascript:", re.IGNORECASE),
    re.compile(r"^\s*data:text/html", re.IGNORECASE),
    re.compile(r"^\s*vbscript:", re.IGNORECASE),
    re.compile(r"^\s*file:", re.IGNORECASE),
)
# Browsers drop these inside a scheme ("java\tscript:").
_INVISIBLE_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_RELATIVE_PREFIXES = ("/", "#", ".")
_SAFE_BASE = "http://localhost/"


def _decode_for_inspection(text: str) -> str:
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


def _is_dangerous(text: str) -> bool:
    candidate = _INVISIBLE_CHARS_RE.sub("", text)
    return any(pattern.match(candidate) for pattern in _DANGEROUS_PREFIXES)


def sanitize_url(raw: object, allowed_protocols: Iterable[str] = LINK_PROTOCOLS) -> str:
    """Return a safe form of ``raw`` or ``""`` when it must not be embedded."""
    if not isinstance(raw, str):
        return ""
    trimmed = raw.strip()
    if not trimmed:
        return ""

    if _is_dangerous(trimmed) or _is_dangerous(_decode_for_inspection(trimmed)):
        return ""

    if trimmed.startswith(_RELATIVE_PREFIXES):
        return trimmed

    allowed = {str(proto).lower().rstrip(":") for proto in allowed_protocols}
    try:
        parts = urlsplit(trimmed)
        # Resolving against a fixed base validates relative references too.
        urlsplit(urljoin(_SAFE_BASE, trimmed))
    except ValueError:
        return ""

    scheme = parts.scheme.lower()
    if not scheme:
        # Scheme-less references ("notes/todo.md") stay relative.
        return trimmed
    if scheme not in allowed:
        return ""

    netloc = parts.netloc
    if scheme in {"http", "https"}:
        if not netloc:
            return ""
        netloc = netloc.lower()
    path = parts.path
    if path == "/" and not parts.query and not parts.fragment:
        path = ""
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def sanitize_link_url(raw: object) -> str:
    return sanitize_url(raw, LINK_PROTOCOLS)


def sanitize_image_url(raw: object) -> str:
    sanitized = sanitize_url(raw, IMAGE_PROTOCOLS)
    if sanitized.startswith("data:") and not sanitized.startswith("data:image/"):
        return ""
    return sanitized
