"""
Codec for Postgres text-array wire values.

The products table stores `categories` and `images` as text[]; the repository
selects them cast to text so every row carries the store's native literal:

    {elem1,elem2,...}      elements optionally wrapped in ' or "

Known limitation: there is no escaping. Elements that themselves contain
`{`, `}`, `,`, `'` or `"` do not survive a round trip.
"""

from __future__ import annotations

from typing import Any, List, Optional

from catalog.errors import FormatError

_OPEN = "{"
_CLOSE = "}"
_SEPARATOR = ","
_QUOTES = "\"'"


class ArrayCodec:
    """Bidirectional conversion between a list of strings and the array literal."""

    @staticmethod
    def decode(wire: Any) -> Optional[List[str]]:
        """
        Decode a stored array literal.

        None decodes to None (an absent list, distinct from an empty one).
        Raises FormatError when the value is not a str/bytes array literal.
        """
        if wire is None:
            return None

        if isinstance(wire, (bytes, bytearray, memoryview)):
            try:
                wire = bytes(wire).decode("utf-8")
            except UnicodeDecodeError as e:
                raise FormatError(f"failed to decode text array field: {e}") from e
        elif not isinstance(wire, str):
            raise FormatError(
                f"failed to decode text array field: value is {type(wire).__name__}, not text"
            )

        if len(wire) < 2 or not (wire.startswith(_OPEN) and wire.endswith(_CLOSE)):
            raise FormatError(f"failed to decode text array field: {wire!r} is not an array literal")

        body = wire[1:-1]
        if body == "":
            return []
        return [value.strip(_QUOTES) for value in body.split(_SEPARATOR)]

    @staticmethod
    def encode(values: Optional[List[str]]) -> Optional[str]:
        """Encode a list of strings as `{'a','b'}`. None stays None."""
        if values is None:
            return None
        return _OPEN + _SEPARATOR.join(f"'{value}'" for value in values) + _CLOSE
