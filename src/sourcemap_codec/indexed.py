"""
Column-indexed source map object model.

Mappings are decoded into flat integer arrays by a lookup-table engine. The
engine is loaded once per process, off the event loop, which is why a
consumer is created with ``await IndexedSourceMapConsumer.create(document)``.

A consumer keeps its arrays between parses. Call ``destroy()`` before
parsing again; reparsing a consumer that still holds mappings raises
ConsumerStateError.
"""

import asyncio
from array import array
from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Mapping as MappingABC
from typing import Any

from . import BASE64_CHARS
from . import SourceMapDecodeError
from . import encode_vlq
from .consumer import Mapping
from .consumer import read_document

# Marks absent optional fields in the flat arrays
NO_VALUE = -1

_TABLE_SIZE = 128
_COMMA = ord(",")
_SEMICOLON = ord(";")


class ConsumerStateError(RuntimeError):
    """Raised when a consumer is reparsed without being destroyed first."""


class VlqEngine:
    """
    Table-driven decoder writing segments into flat arrays.

    Each decoded segment appends one entry to every column array so that
    index ``i`` across the arrays describes one mapping.
    A line whose segments arrive out of column order is sorted once it
    ends.
    """

    def __init__(self, table: array) -> None:
        self.table = table

    @classmethod
    def build(cls) -> "VlqEngine":
        table = array("b", [NO_VALUE] * _TABLE_SIZE)
        for value, char in enumerate(BASE64_CHARS):
            table[ord(char)] = value
        return cls(table)

    def decode_into(self, encoded: str, columns: "MappingColumns") -> None:
        """Appends every segment of ``encoded`` to ``columns``."""
        table = self.table
        data = encoded.encode("ascii", errors="replace")
        length = len(data)
        state = [0, 0, 0, 0]
        fields: list[int] = []
        generated_line = 0
        generated_column = 0
        line_start = 0
        is_sorted = True
        value = 0
        shift = 0
        pos = 0

        while pos <= length:
            byte = data[pos] if pos < length else _SEMICOLON
            if byte == _COMMA or byte == _SEMICOLON:
                if shift:
                    raise SourceMapDecodeError(
                        "Unterminated VLQ value", encoded, pos
                    )
                if fields:
                    if fields[0] < 0:
                        is_sorted = False
                    generated_column += fields[0]
                    self._append(
                        columns,
                        encoded,
                        pos,
                        generated_line,
                        generated_column,
                        fields,
                        state,
                    )
                    fields = []
                if byte == _SEMICOLON:
                    if not is_sorted:
                        columns.sort_line(line_start)
                        is_sorted = True
                    line_start = len(columns)
                    generated_line += 1
                    generated_column = 0
                pos += 1
                continue

            digit = table[byte] if byte < _TABLE_SIZE else NO_VALUE
            if digit == NO_VALUE:
                raise SourceMapDecodeError(
                    f"Invalid base64 character {encoded[pos]!r}", encoded, pos
                )
            value |= (digit & 31) << shift
            if digit & 32:
                shift += 5
            else:
                fields.append(-(value >> 1) if value & 1 else value >> 1)
                value = 0
                shift = 0
            pos += 1

        columns.line_count = generated_line

    @staticmethod
    def _append(
        columns: "MappingColumns",
        encoded: str,
        pos: int,
        generated_line: int,
        generated_column: int,
        fields: list[int],
        state: list[int],
    ) -> None:
        count = len(fields)
        if count not in (1, 4, 5):
            raise SourceMapDecodeError(
                f"Segment has {count} fields, expected 1, 4 or 5",
                encoded,
                pos,
            )
        columns.generated_line.append(generated_line)
        columns.generated_column.append(generated_column)
        if count == 1:
            columns.source.append(NO_VALUE)
            columns.original_line.append(NO_VALUE)
            columns.original_column.append(NO_VALUE)
            columns.name.append(NO_VALUE)
            return

        state[0] += fields[1]
        state[1] += fields[2]
        state[2] += fields[3]
        columns.source.append(state[0])
        columns.original_line.append(state[1])
        columns.original_column.append(state[2])
        if count == 5:
            state[3] += fields[4]
            columns.name.append(state[3])
        else:
            columns.name.append(NO_VALUE)


_engine: VlqEngine | None = None


async def load_engine() -> VlqEngine:
    """Returns the process-wide engine, building it on first use."""
    global _engine
    if _engine is None:
        _engine = await asyncio.to_thread(VlqEngine.build)
    return _engine


class MappingColumns:
    """Flat per-field arrays holding decoded mappings."""

    def __init__(self) -> None:
        self.generated_line = array("q")
        self.generated_column = array("q")
        self.source = array("q")
        self.original_line = array("q")
        self.original_column = array("q")
        self.name = array("q")
        self.line_count = 0

    def __len__(self) -> int:
        return len(self.generated_line)

    def copy(self) -> "MappingColumns":
        other = MappingColumns()
        other.generated_line = array("q", self.generated_line)
        other.generated_column = array("q", self.generated_column)
        other.source = array("q", self.source)
        other.original_line = array("q", self.original_line)
        other.original_column = array("q", self.original_column)
        other.name = array("q", self.name)
        other.line_count = self.line_count
        return other

    @classmethod
    def from_decoded(
        cls, decoded: Iterable[Iterable[Any]]
    ) -> "MappingColumns":
        """Fills new columns from decoded lines of segments."""
        columns = cls()
        for line_index, line in enumerate(decoded):
            for segment in line:
                columns.generated_line.append(line_index)
                columns.generated_column.append(segment[0])
                if len(segment) == 1:
                    columns.source.append(NO_VALUE)
                    columns.original_line.append(NO_VALUE)
                    columns.original_column.append(NO_VALUE)
                    columns.name.append(NO_VALUE)
                    continue
                columns.source.append(segment[1])
                columns.original_line.append(segment[2])
                columns.original_column.append(segment[3])
                columns.name.append(
                    segment[4] if len(segment) == 5 else NO_VALUE
                )
            columns.line_count = line_index + 1
        return columns

    def sort_line(self, start: int) -> None:
        """Orders the entries from ``start`` to the end by generated column."""
        order = sorted(
            range(start, len(self)), key=self.generated_column.__getitem__
        )
        for field in (
            self.generated_line,
            self.generated_column,
            self.source,
            self.original_line,
            self.original_column,
            self.name,
        ):
            field[start:] = array("q", [field[i] for i in order])

    def clear(self) -> None:
        for field in (
            self.generated_line,
            self.generated_column,
            self.source,
            self.original_line,
            self.original_column,
            self.name,
        ):
            del field[:]
        self.line_count = 0


class IndexedSourceMapConsumer:
    """
    Source map consumer backed by flat mapping arrays.

    Use ``create`` to build one; the constructor expects a loaded engine.
    """

    def __init__(
        self, document: MappingABC[str, Any], engine: VlqEngine
    ) -> None:
        fields = read_document(document)
        self.file: str | None = fields["file"]
        self.sources: list[str | None] = fields["sources"]
        self.sources_content: list[str | None] = fields["sources_content"]
        self.names: list[str] = fields["names"]
        self._engine = engine
        self._columns = MappingColumns()
        self._parsed = False
        self.parse_mappings(fields["mappings"])

    @classmethod
    async def create(
        cls, document: MappingABC[str, Any]
    ) -> "IndexedSourceMapConsumer":
        engine = await load_engine()
        return cls(document, engine)

    @property
    def columns(self) -> MappingColumns:
        return self._columns

    @property
    def destroyed(self) -> bool:
        return not self._parsed

    def parse_mappings(self, encoded: str) -> None:
        """
        Decodes ``encoded`` into the held arrays.

        Raises ConsumerStateError if mappings from an earlier parse are
        still held.
        """
        if self._parsed:
            raise ConsumerStateError(
                "consumer still holds mappings; call destroy() before parsing"
            )
        try:
            self._engine.decode_into(encoded, self._columns)
        except SourceMapDecodeError:
            self._columns.clear()
            raise
        self._parsed = True

    def destroy(self) -> None:
        """Releases the held arrays. Safe to call more than once."""
        self._columns.clear()
        self._parsed = False

    def each_mapping(self) -> Iterator[Mapping]:
        columns = self._columns
        for i in range(len(columns)):
            source = columns.source[i]
            if source == NO_VALUE:
                yield Mapping(
                    columns.generated_line[i] + 1, columns.generated_column[i]
                )
                continue
            name = columns.name[i]
            yield Mapping(
                columns.generated_line[i] + 1,
                columns.generated_column[i],
                source,
                columns.original_line[i] + 1,
                columns.original_column[i],
                name if name != NO_VALUE else None,
            )


class IndexedSourceMapGenerator:
    """
    Serializes mapping arrays copied from an IndexedSourceMapConsumer.
    """

    def __init__(
        self,
        columns: MappingColumns,
        sources: list[str | None],
        names: list[str],
        file: str | None = None,
    ) -> None:
        self.columns = columns
        self.sources = sources
        self.names = names
        self.file = file

    @classmethod
    def from_source_map(
        cls, consumer: IndexedSourceMapConsumer
    ) -> "IndexedSourceMapGenerator":
        return cls(
            consumer.columns.copy(),
            list(consumer.sources),
            list(consumer.names),
            consumer.file,
        )

    def serialize_mappings(self) -> str:
        """Renders the held arrays as a mappings string."""
        columns = self.columns
        lines: list[list[str]] = [[] for _ in range(columns.line_count)]
        state = [0, 0, 0, 0]
        generated_column = 0
        current_line = -1

        for i in range(len(columns)):
            line = columns.generated_line[i]
            if line != current_line:
                current_line = line
                generated_column = 0

            column = columns.generated_column[i]
            parts = [encode_vlq(column - generated_column)]
            generated_column = column

            source = columns.source[i]
            if source != NO_VALUE:
                original_line = columns.original_line[i]
                original_column = columns.original_column[i]
                parts.append(encode_vlq(source - state[0]))
                parts.append(encode_vlq(original_line - state[1]))
                parts.append(encode_vlq(original_column - state[2]))
                state[0] = source
                state[1] = original_line
                state[2] = original_column
                name = columns.name[i]
                if name != NO_VALUE:
                    parts.append(encode_vlq(name - state[3]))
                    state[3] = name

            lines[line].append("".join(parts))

        return ";".join(",".join(segments) for segments in lines)

    def to_json(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "version": 3,
            "sources": self.sources,
            "names": self.names,
            "mappings": self.serialize_mappings(),
        }
        if self.file is not None:
            document["file"] = self.file
        return document
