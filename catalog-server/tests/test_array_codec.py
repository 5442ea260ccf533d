"""
Tests for ArrayCodec: decoding Postgres text-array literals and encoding lists.
"""

import pytest

from catalog.array_codec import ArrayCodec
from catalog.errors import FormatError


#  Decode

class TestDecode:
    def test_none_is_absent_not_empty(self):
        assert ArrayCodec.decode(None) is None

    def test_plain_elements(self):
        assert ArrayCodec.decode("{foo,bar,baz}") == ["foo", "bar", "baz"]

    def test_bytes_value(self):
        # psycopg hands back bytes when the column is read as a raw buffer
        assert ArrayCodec.decode(b"{foo,bar,baz}") == ["foo", "bar", "baz"]

    def test_memoryview_value(self):
        assert ArrayCodec.decode(memoryview(b"{a}")) == ["a"]

    def test_double_quoted_elements(self):
        assert ArrayCodec.decode('{"red shoe","blue hat"}') == ["red shoe", "blue hat"]

    def test_single_quoted_elements(self):
        assert ArrayCodec.decode("{'cat1','cat2'}") == ["cat1", "cat2"]

    def test_mixed_quoting(self):
        assert ArrayCodec.decode("{'a',\"b\",c}") == ["a", "b", "c"]

    def test_empty_array(self):
        assert ArrayCodec.decode("{}") == []

    def test_single_element(self):
        assert ArrayCodec.decode("{only}") == ["only"]

    def test_order_preserved(self):
        assert ArrayCodec.decode("{z,a,m}") == ["z", "a", "m"]

    @pytest.mark.parametrize("value", [
        "not an array",
        "{unterminated",
        "unopened}",
        "{",
        "",
    ])
    def test_malformed_text_raises_format_error(self, value):
        with pytest.raises(FormatError):
            ArrayCodec.decode(value)

    @pytest.mark.parametrize("value", [42, 3.5, ["a", "b"], {"a": 1}])
    def test_non_text_value_raises_format_error(self, value):
        with pytest.raises(FormatError):
            ArrayCodec.decode(value)

    def test_invalid_utf8_raises_format_error(self):
        with pytest.raises(FormatError):
            ArrayCodec.decode(b"{\xff\xfe}")


#  Encode

class TestEncode:
    def test_elements_single_quoted(self):
        assert ArrayCodec.encode(["foo", "bar"]) == "{'foo','bar'}"

    def test_empty_list(self):
        assert ArrayCodec.encode([]) == "{}"

    def test_none_stays_none(self):
        assert ArrayCodec.encode(None) is None


#  Round trip

class TestRoundTrip:
    @pytest.mark.parametrize("values", [
        [],
        ["cat1"],
        ["cat1", "cat2", "cat3"],
        ["with space", "dash-ed", "under_score", "ünïcödé"],
        ["", "x"],
    ])
    def test_decode_inverts_encode(self, values):
        assert ArrayCodec.decode(ArrayCodec.encode(values)) == values

    def test_delimiters_inside_elements_do_not_survive(self):
        """Known limitation: no escaping of delimiter characters."""
        assert ArrayCodec.decode(ArrayCodec.encode(["a,b"])) != ["a,b"]
