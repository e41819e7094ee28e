"""
Unit tests for cache key derivation.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.caching.keys import (
    hash_string_to_int,
    make_cache_key,
    slugify,
    stringify_arg,
)


class TestSlugify:
    def test_lowercases_and_dashes(self):
        assert slugify("ETH Price") == "eth-price"

    def test_strips_accents_and_separators(self):
        assert slugify("Café_Pools/24h") == "cafe-pools-24h"

    def test_collapses_repeated_dashes(self):
        assert slugify("a  --  b") == "a-b"


class TestHashStringToInt:
    def test_empty_string(self):
        assert hash_string_to_int("") == 0

    def test_matches_polynomial_hash(self):
        assert hash_string_to_int("a") == 97
        assert hash_string_to_int("ab") == 97 * 31 + 98
        assert hash_string_to_int("hello") == 99162322

    def test_wraps_to_signed_32_bits(self):
        assert hash_string_to_int("polygenelubricants") == -2147483648


class TestMakeCacheKey:
    def test_key_shape(self):
        key = make_cache_key("Token List", [6343])
        slug, digest = key.split("_", 1)
        assert slug == "token-list"
        assert digest == str(hash_string_to_int("token-list -|- 6343"))

    def test_same_inputs_same_key(self):
        assert make_cache_key("pools", ["a", 1]) == make_cache_key("pools", ["a", 1])

    def test_different_args_different_key(self):
        assert make_cache_key("pools", ["a"]) != make_cache_key("pools", ["b"])

    def test_dict_argument_is_order_insensitive(self):
        assert make_cache_key("q", [{"a": 1, "b": 2}]) == make_cache_key("q", [{"b": 2, "a": 1}])

    def test_sha256_variant(self):
        key = make_cache_key("stats", [], key_hash="sha256")
        slug, digest = key.split("_", 1)
        assert slug == "stats"
        assert len(digest) == 64

    def test_unknown_hash_rejected(self):
        with pytest.raises(ValueError):
            make_cache_key("stats", [], key_hash="md5")


class TestStringifyArg:
    @pytest.mark.parametrize("arg,expected", [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        ("abc", "abc"),
        ({"b": [1, 2], "a": None}, '{"a":null,"b":[1,2]}'),
    ])
    def test_canonical_forms(self, arg, expected):
        assert stringify_arg(arg) == expected
