from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


VALIDATION_MESSAGE = (
    "Please enter a plain question, URL (https://...), an IP (1.1.1.1), "
    "or a hash (MD5/SHA1/SHA256)."
)

_IPV4_RE = re.compile(r"^[0-9]{1,3}(\.[0-9]{1,3}){3}$")
_HEX_RE = re.compile(r"^[a-fA-F0-9]+$")
# RFC 3986 reg-name / IP-literal characters
_HOST_RE = re.compile(r"[A-Za-z0-9\-._~%!$&'()*+,;=\[\]:]+")
_HASH_ALGORITHMS = {32: "md5", 40: "sha1", 64: "sha256"}


class InputKind(str, Enum):
    IP = "ip"
    URL = "url"
    HASH = "hash"
    UNKNOWN = "unknown"

    @property
    def is_enrichable(self) -> bool:
        return self is not InputKind.UNKNOWN


@dataclass(frozen=True)
class ClassifiedInput:
    raw_text: str
    kind: InputKind
    hash_algorithm: Optional[str] = None  # informative only


def is_ip(text: str, strict: bool = False) -> bool:
    value = text.strip()
    # re's $ also matches before a trailing newline, so compare with fullmatch
    if not _IPV4_RE.fullmatch(value):
        return False
    if strict:
        return all(int(octet) <= 255 for octet in value.split("."))
    return True


def is_url(text: str) -> bool:
    value = text.strip()
    if any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
        # raises for a non-numeric or out-of-range port
        port = parts.port
    except ValueError:
        return False
    if parts.scheme.lower() not in ("http", "https"):
        return False
    if port is not None and port < 0:
        return False
    # Scheme-relative forms like "http:example.com" have no netloc and are
    # deliberately not treated as URLs.
    if not parts.netloc or not parts.hostname:
        return False
    return bool(_HOST_RE.fullmatch(parts.hostname))


def hash_algorithm(text: str) -> Optional[str]:
    value = text.strip()
    if not _HEX_RE.fullmatch(value):
        return None
    return _HASH_ALGORITHMS.get(len(value))


def is_hash(text: str) -> bool:
    return hash_algorithm(text) is not None


def classify(text: str, strict_ipv4: bool = False) -> ClassifiedInput:
    """Map raw analyst input to a single kind.

    Patterns are tried in the order ip, url, hash; the first match wins and
    anything else is ``unknown`` (a free-text question, not an error).
    """
    value = text.strip()
    if is_ip(value, strict=strict_ipv4):
        return ClassifiedInput(value, InputKind.IP)
    if is_url(value):
        return ClassifiedInput(value, InputKind.URL)
    algorithm = hash_algorithm(value)
    if algorithm:
        return ClassifiedInput(value, InputKind.HASH, hash_algorithm=algorithm)
    return ClassifiedInput(value, InputKind.UNKNOWN)


def check_input_format(
    text: str, min_length: int = 8, strict_ipv4: bool = False
) -> Optional[str]:
    """Return the validation message for rejected input, or None if accepted.

    Empty input is not a formatting problem (the caller blocks it on its own),
    so it yields None as well.
    """
    value = text.strip()
    if not value:
        return None
    if classify(value, strict_ipv4=strict_ipv4).kind.is_enrichable:
        return None
    if len(value) > min_length:
        return None
    return VALIDATION_MESSAGE


__all__ = [
    "VALIDATION_MESSAGE",
    "InputKind",
    "ClassifiedInput",
    "is_ip",
    "is_url",
    "is_hash",
    "hash_algorithm",
    "classify",
    "check_input_format",
]
