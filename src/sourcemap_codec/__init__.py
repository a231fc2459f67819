"""
Base64-VLQ source map mappings codec.

Decodes the ``mappings`` field of a version 3 source map into per-line lists
of segments and encodes such lists back into the compact string form.
"""

from collections.abc import Sequence
from typing import TypeAlias

__version__ = "0.1.0"

# Segment shapes - generated column, then optionally source index, original
# line and original column, then optionally a names index
SourceMapSegment: TypeAlias = (
    tuple[int] | tuple[int, int, int, int] | tuple[int, int, int, int, int]
)
SourceMapLine: TypeAlias = list[SourceMapSegment]
SourceMapMappings: TypeAlias = list[SourceMapLine]

# Encode accepts anything indexable, lists from the legacy codec included
SegmentLike: TypeAlias = Sequence[int]
MappingsLike: TypeAlias = Sequence[Sequence[SegmentLike]]

BASE64_CHARS = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
)
CHAR_TO_INT: dict[str, int] = {char: i for i, char in enumerate(BASE64_CHARS)}

_VLQ_SHIFT = 5
_VLQ_MASK = 0b11111
_VLQ_CONTINUATION = 0b100000
_SEGMENT_LENGTHS = frozenset((1, 4, 5))

# Small deltas dominate real mappings
_CACHE_RANGE = 1024


class SourceMapDecodeError(ValueError):
    """
    Handles mappings decoding failures with precise position information.

    Carries the offending offset along with the generated line (1-based,
    one per ``;`` group) and the column inside that line.
    """

    def __init__(self, msg: str, mappings: str = "", pos: int = 0) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")
        if not isinstance(pos, int) or pos < 0:
            raise ValueError("pos must be a non-negative integer")

        self.msg = msg
        self.mappings = mappings
        self.pos = pos

        self.lineno = mappings.count(";", 0, pos) + 1 if mappings else 1
        self.colno = pos - mappings.rfind(";", 0, pos) if mappings else pos + 1

        super().__init__(f"{msg} at line {self.lineno}, column {self.colno}")


def _encode_vlq_uncached(value: int) -> str:
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    chars = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        chars.append(BASE64_CHARS[digit])
        if not vlq:
            return "".join(chars)


_VLQ_CACHE: tuple[str, ...] = tuple(
    _encode_vlq_uncached(value) for value in range(-_CACHE_RANGE, _CACHE_RANGE)
)


def encode_vlq(value: int) -> str:
    """Encodes one signed integer as a Base64-VLQ digit run."""
    if -_CACHE_RANGE <= value < _CACHE_RANGE:
        return _VLQ_CACHE[value + _CACHE_RANGE]
    return _encode_vlq_uncached(value)


def decode_vlq(mappings: str, pos: int, end: int) -> tuple[int, int]:
    """
    Decodes one signed integer starting at ``pos``.

    Returns the value and the position just past its last digit. Raises
    SourceMapDecodeError on a non-Base64 character or a digit run that is
    still open when ``end`` is reached.
    """
    value = 0
    shift = 0
    start = pos
    while pos < end:
        digit = CHAR_TO_INT.get(mappings[pos])
        if digit is None:
            raise SourceMapDecodeError(
                f"Invalid base64 character {mappings[pos]!r}", mappings, pos
            )
        pos += 1
        value |= (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = value & 1
        value >>= 1
        return (-value if negative else value), pos

    raise SourceMapDecodeError("Unterminated VLQ value", mappings, start)


def _decode_line(
    mappings: str, start: int, end: int, state: list[int]
) -> SourceMapLine:
    """
    Decodes the segments between ``start`` and ``end``.

    ``state`` holds the running source index, original line, original column
    and name index, which carry over from line to line.
    """
    line: SourceMapLine = []
    generated_column = 0
    is_sorted = True
    pos = start

    while pos < end:
        if mappings[pos] == ",":
            pos += 1
            continue

        column_delta, pos = decode_vlq(mappings, pos, end)
        column = generated_column + column_delta
        if column < generated_column:
            is_sorted = False
        generated_column = column

        if pos == end or mappings[pos] == ",":
            line.append((column,))
            continue

        segment_start = pos
        fields = []
        while pos < end and mappings[pos] != ",":
            value, pos = decode_vlq(mappings, pos, end)
            fields.append(value)

        if len(fields) not in (3, 4):
            raise SourceMapDecodeError(
                f"Segment has {len(fields) + 1} fields, expected 1, 4 or 5",
                mappings,
                segment_start,
            )

        state[0] += fields[0]
        state[1] += fields[1]
        state[2] += fields[2]
        if len(fields) == 4:
            state[3] += fields[3]
            line.append((column, state[0], state[1], state[2], state[3]))
        else:
            line.append((column, state[0], state[1], state[2]))

    if not is_sorted:
        line.sort(key=lambda segment: segment[0])
    return line


def decode(mappings: str) -> SourceMapMappings:
    """
    Decodes a mappings string into lines of segments.

    Every ``;`` starts a new generated line, so the result always has one
    more line than the input has semicolons. Segments within a line are
    returned ordered by generated column.
    """
    if not isinstance(mappings, str):
        raise TypeError(
            f"mappings must be str, not {type(mappings).__name__}"
        )

    decoded: SourceMapMappings = []
    state = [0, 0, 0, 0]
    length = len(mappings)
    pos = 0

    while pos <= length:
        end = mappings.find(";", pos)
        if end == -1:
            end = length
        decoded.append(_decode_line(mappings, pos, end, state))
        pos = end + 1

    return decoded


def encode(decoded: MappingsLike) -> str:
    """
    Encodes lines of segments into a mappings string.

    Accepts tuples or lists for segments. Raises ValueError for a segment
    whose length is not 1, 4 or 5.
    """
    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0
    lines = []

    for line in decoded:
        generated_column = 0
        segments = []
        for segment in line:
            length = len(segment)
            if length not in _SEGMENT_LENGTHS:
                msg = f"segment must have 1, 4 or 5 fields, not {length}"
                raise ValueError(msg)

            parts = [encode_vlq(segment[0] - generated_column)]
            generated_column = segment[0]

            if length > 1:
                parts.append(encode_vlq(segment[1] - source_index))
                parts.append(encode_vlq(segment[2] - original_line))
                parts.append(encode_vlq(segment[3] - original_column))
                source_index = segment[1]
                original_line = segment[2]
                original_column = segment[3]
                if length == 5:
                    parts.append(encode_vlq(segment[4] - name_index))
                    name_index = segment[4]

            segments.append("".join(parts))
        lines.append(",".join(segments))

    return ";".join(lines)


__all__ = [
    "BASE64_CHARS",
    "SourceMapDecodeError",
    "SourceMapLine",
    "SourceMapMappings",
    "SourceMapSegment",
    "decode",
    "decode_vlq",
    "encode",
    "encode_vlq",
]
