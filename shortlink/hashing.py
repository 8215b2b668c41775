"""Hashing and encoding helpers for short ID generation.

A URL's long ID is the SHA-256 digest of its UTF-8 bytes, base64-encoded with
the URL-safe alphabet (``-`` and ``_`` instead of ``+`` and ``/``) and without
``=`` padding. Short IDs are prefixes of the long ID taken by the writer.

Example:
    >>> long_id("")
    '47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU'
"""

import base64
import hashlib

__all__ = ["sha256_digest", "url_safe_encode", "long_id"]


def sha256_digest(text: str) -> bytes:
    return hashlib.sha256(text.encode("utf-8")).digest()


def url_safe_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def long_id(url: str) -> str:
    return url_safe_encode(sha256_digest(url))
