"""Tests for oauth2kit.querystring -- form encoding and list normalisation."""

from __future__ import annotations

from oauth2kit.querystring import as_list, generate_query_string


class TestGenerateQueryString:
    def test_encodes_spaces_and_reserved_characters(self) -> None:
        assert generate_query_string({"a": "x y", "b": "1&2=3"}) == "a=x+y&b=1%262%3D3"

    def test_skips_none(self) -> None:
        assert generate_query_string({"a": "1", "b": None, "c": "3"}) == "a=1&c=3"

    def test_repeats_list_values_in_order(self) -> None:
        result = generate_query_string({"resource": ["https://r1/", "https://r2/"]})
        assert result == "resource=https%3A%2F%2Fr1%2F&resource=https%3A%2F%2Fr2%2F"

    def test_tuple_values_are_repeated_too(self) -> None:
        assert generate_query_string({"k": ("a", "b")}) == "k=a&k=b"

    def test_booleans_and_numbers(self) -> None:
        assert generate_query_string({"t": True, "f": False, "n": 3}) == "t=true&f=false&n=3"

    def test_empty_mapping(self) -> None:
        assert generate_query_string({}) == ""

    def test_preserves_insertion_order(self) -> None:
        assert generate_query_string({"z": "1", "a": "2"}) == "z=1&a=2"


class TestAsList:
    def test_none_stays_none(self) -> None:
        assert as_list(None) is None

    def test_string_is_wrapped(self) -> None:
        assert as_list("read") == ["read"]

    def test_iterable_is_copied(self) -> None:
        source = ("read", "write")
        assert as_list(source) == ["read", "write"]
