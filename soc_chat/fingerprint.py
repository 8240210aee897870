from __future__ import annotations

import re


FINGERPRINT_LENGTH = 32
_NON_HEX_RE = re.compile(r"[^a-fA-F0-9]")


def synthesize_fingerprint(file_name: str) -> str:
    """Derive a stand-in MD5-length fingerprint from a file name.

    This is not a content hash: no bytes are read. Long names keep their last
    32 characters with non-hex characters replaced by ``a``; short names are
    left-padded with ``a`` up to 32 characters.
    """
    if len(file_name) >= FINGERPRINT_LENGTH:
        return _NON_HEX_RE.sub("a", file_name[-FINGERPRINT_LENGTH:])
    return file_name.rjust(FINGERPRINT_LENGTH, "a")[:FINGERPRINT_LENGTH]


__all__ = ["FINGERPRINT_LENGTH", "synthesize_fingerprint"]
