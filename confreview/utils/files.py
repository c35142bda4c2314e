"""Paper file helpers: blob encoding and type sniffing."""

from __future__ import annotations

import base64
import re
from typing import Optional, Tuple

PDF = ("application/pdf", "pdf")
DOC = ("application/msword", "doc")
DOCX = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "docx")
UNKNOWN = ("application/octet-stream", "bin")

_UNSAFE_CHARS = re.compile(r"[^\w\-. ]")
_WHITESPACE = re.compile(r"\s+")


def b64(blob: Optional[bytes]) -> Optional[str]:
    """Base64 text for JSON responses; empty blobs become ``None``."""
    if not blob:
        return None
    return base64.b64encode(blob).decode("ascii")


def sniff_document(blob: bytes) -> Tuple[str, str]:
    """(mime type, extension) from the file signature: ``%PDF``, OLE2 (``.doc``) or ZIP (``.docx``)."""
    if len(blob) < 4:
        return UNKNOWN
    if blob[:4] == b"%PDF":
        return PDF
    if blob[:4] == b"\xd0\xcf\x11\xe0":
        return DOC
    if blob[:2] == b"PK":
        return DOCX
    return UNKNOWN


def safe_filename(title: Optional[str], suffix: str, ext: str) -> str:
    """``My paper: v2`` -> ``Mypaperv2_final.pdf``"""
    stem = _WHITESPACE.sub("", _UNSAFE_CHARS.sub("", title or "paper"))
    return f"{stem or 'paper'}_{suffix}.{ext}"
