"""
Straightforward mappings codec kept as a comparison baseline.

Walks the mappings string one character at a time and builds segments as
lists. Produces the same values as the main codec.
"""

from typing import Any

from . import BASE64_CHARS
from . import CHAR_TO_INT
from . import SourceMapDecodeError


def _decode_segment(text: str, offset: int, mappings: str) -> list[int]:
    values = []
    value = 0
    shift = 0

    for index, char in enumerate(text):
        if char not in CHAR_TO_INT:
            raise SourceMapDecodeError(
                f"Invalid base64 character {char!r}", mappings, offset + index
            )
        digit = CHAR_TO_INT[char]
        value += (digit & 31) << shift
        if digit & 32:
            shift += 5
        else:
            if value & 1:
                values.append(-(value >> 1))
            else:
                values.append(value >> 1)
            value = 0
            shift = 0

    if shift:
        raise SourceMapDecodeError("Unterminated VLQ value", mappings, offset)
    return values


def decode(mappings: str) -> list[list[list[int]]]:
    """Decodes a mappings string into lines of list segments."""
    if not isinstance(mappings, str):
        raise TypeError(
            f"mappings must be str, not {type(mappings).__name__}"
        )

    decoded = []
    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0
    offset = 0

    for line_text in mappings.split(";"):
        line = []
        generated_column = 0
        segment_offset = offset

        for segment_text in line_text.split(","):
            if segment_text:
                fields = _decode_segment(segment_text, segment_offset, mappings)
                if len(fields) not in (1, 4, 5):
                    raise SourceMapDecodeError(
                        f"Segment has {len(fields)} fields, expected 1, 4 or 5",
                        mappings,
                        segment_offset,
                    )

                generated_column += fields[0]
                segment = [generated_column]
                if len(fields) > 1:
                    source_index += fields[1]
                    original_line += fields[2]
                    original_column += fields[3]
                    segment += [source_index, original_line, original_column]
                if len(fields) == 5:
                    name_index += fields[4]
                    segment.append(name_index)
                line.append(segment)
            segment_offset += len(segment_text) + 1

        line.sort(key=lambda segment: segment[0])
        decoded.append(line)
        offset += len(line_text) + 1

    return decoded


def _encode_integer(value: int) -> str:
    result = ""
    if value < 0:
        value = (-value << 1) | 1
    else:
        value <<= 1

    while True:
        digit = value & 31
        value >>= 5
        if value > 0:
            digit |= 32
        result += BASE64_CHARS[digit]
        if value <= 0:
            return result


def encode(decoded: Any) -> str:
    """Encodes lines of segments into a mappings string."""
    result = ""
    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0

    for line_number, line in enumerate(decoded):
        if line_number > 0:
            result += ";"
        generated_column = 0

        for segment_number, segment in enumerate(line):
            if len(segment) not in (1, 4, 5):
                msg = f"segment must have 1, 4 or 5 fields, not {len(segment)}"
                raise ValueError(msg)
            if segment_number > 0:
                result += ","

            result += _encode_integer(segment[0] - generated_column)
            generated_column = segment[0]

            if len(segment) > 1:
                result += _encode_integer(segment[1] - source_index)
                result += _encode_integer(segment[2] - original_line)
                result += _encode_integer(segment[3] - original_column)
                source_index = segment[1]
                original_line = segment[2]
                original_column = segment[3]

            if len(segment) == 5:
                result += _encode_integer(segment[4] - name_index)
                name_index = segment[4]

    return result
