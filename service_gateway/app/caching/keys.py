"""
Cache key derivation.

Keys look like ``<slug>_<hash>`` where the slug is the normalised namespace
and the hash covers the namespace plus a canonical rendering of the
arguments. The default hash is a 32-bit string hash: short keys, with
collisions left uncorrected since every entry can be recomputed. Stores that
cannot tolerate a rare collision should use the ``sha256`` variant.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Iterable

ARG_SEPARATOR = " -|- "

_ACCENTS_FROM = "àáäâèéëêìíïîòóöôùúüûñç·/_,:;"
_ACCENTS_TO = "aaaaeeeeiiiioooouuuunc------"
_ACCENT_TABLE = str.maketrans(_ACCENTS_FROM, _ACCENTS_TO)

_INVALID_CHARS = re.compile(r"[^a-z0-9 -]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(value: str) -> str:
    """Lowercase, strip accents and collapse anything non-alphanumeric into dashes."""
    slug = value.strip().lower().translate(_ACCENT_TABLE)
    slug = _INVALID_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    return _DASHES.sub("-", slug)


def stringify_arg(arg: Any) -> str:
    if arg is None:
        return "null"
    if isinstance(arg, bool):
        return "true" if arg else "false"
    if isinstance(arg, (dict, list, tuple)):
        return json.dumps(arg, sort_keys=True, separators=(",", ":"), default=str)
    return str(arg)


def hash_string_to_int(value: str) -> int:
    """Signed 32-bit ``h = h * 31 + c`` over UTF-16 leading code units."""
    h = 0
    for char in value:
        code = ord(char)
        if code > 0xFFFF:
            # astral characters contribute their high surrogate
            code = 0xD800 + ((code - 0x10000) >> 10)
        h = ((h << 5) - h + code) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def make_cache_key(namespace: str, args: Iterable[Any], *, key_hash: str = "fast") -> str:
    slug = slugify(namespace)
    material = ARG_SEPARATOR.join(stringify_arg(part) for part in [slug, *args])

    if key_hash == "sha256":
        digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    elif key_hash == "fast":
        digest = str(hash_string_to_int(material))
    else:
        raise ValueError(f"unknown cache key hash: {key_hash}")

    return f"{slug}_{digest}"
