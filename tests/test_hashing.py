"""Unit tests for short ID hashing and encoding."""

import hashlib

from shortlink.config import LONG_ID_LENGTH
from shortlink.hashing import long_id, sha256_digest, url_safe_encode


def test_long_id_known_digest() -> None:
    # sha256("") in standard base64 is 47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU=
    assert long_id("") == "47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU"


def test_long_id_uses_url_safe_alphabet() -> None:
    for i in range(500):
        encoded = long_id(f"https://example.com/{i}")
        assert len(encoded) == LONG_ID_LENGTH
        assert not set(encoded) & {"+", "/", "="}


def test_url_safe_encode_replaces_reserved_characters() -> None:
    assert url_safe_encode(b"\xfb\xff") == "-_8"


def test_sha256_digest_is_utf8() -> None:
    assert sha256_digest("é") == hashlib.sha256("é".encode("utf-8")).digest()
    assert len(sha256_digest("https://example.com")) == 32


def test_long_id_is_deterministic() -> None:
    assert long_id("https://example.com") == long_id("https://example.com")
    assert long_id("https://example.com")[:8] != long_id("https://example.org")[:8]
