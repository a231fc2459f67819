"""
Eager source map object model.

SourceMapConsumer turns a full version 3 document into Mapping records;
SourceMapGenerator rebuilds a document and its mappings string from them.
"""

import bisect
from collections.abc import Iterable
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from typing import Any

from . import decode
from . import encode_vlq

SUPPORTED_VERSION = 3


class SourceMapDocumentError(ValueError):
    """Raised for a document that is not a usable version 3 source map."""


@dataclass(frozen=True)
class Mapping:
    """
    One generated position and what it maps back to.

    Generated and original lines are 1-based, columns 0-based. ``source``
    and ``name`` index the document's ``sources`` and ``names``. Unmapped
    positions carry None for every original field.
    """

    generated_line: int
    generated_column: int
    source: int | None = None
    original_line: int | None = None
    original_column: int | None = None
    name: int | None = None


def _join_source(source_root: str | None, source: str) -> str:
    if not source_root:
        return source
    if source_root.endswith("/"):
        return source_root + source
    return f"{source_root}/{source}"


def read_document(document: MappingABC[str, Any]) -> dict[str, Any]:
    """
    Validates the fields every consumer needs and returns them normalized.
    """
    if not isinstance(document, MappingABC):
        raise SourceMapDocumentError("source map must be a JSON object")

    version = document.get("version", SUPPORTED_VERSION)
    if version != SUPPORTED_VERSION:
        raise SourceMapDocumentError(f"Unsupported version: {version}")

    mappings = document.get("mappings")
    if not isinstance(mappings, str):
        raise SourceMapDocumentError("source map has no mappings string")

    source_root = document.get("sourceRoot") or None
    return {
        "file": document.get("file"),
        "source_root": source_root,
        "sources": [
            _join_source(source_root, source) if source is not None else None
            for source in document.get("sources") or []
        ],
        "sources_content": list(document.get("sourcesContent") or []),
        "names": list(document.get("names") or []),
        "mappings": mappings,
    }


def mappings_from_decoded(decoded: Iterable[Iterable[Any]]) -> list[Mapping]:
    """Builds Mapping records from decoded lines of segments."""
    mappings = []
    for line_index, line in enumerate(decoded):
        generated_line = line_index + 1
        for segment in line:
            if len(segment) == 1:
                mappings.append(Mapping(generated_line, segment[0]))
                continue
            mappings.append(
                Mapping(
                    generated_line,
                    segment[0],
                    segment[1],
                    segment[2] + 1,
                    segment[3],
                    segment[4] if len(segment) == 5 else None,
                )
            )
    return mappings


class SourceMapConsumer:
    """
    Holds every mapping of a document in generated order.

    Reparsing replaces the previous mappings, so one consumer can be reused
    for any number of ``parse_mappings`` calls.
    """

    def __init__(self, document: MappingABC[str, Any]) -> None:
        fields = read_document(document)
        self.file: str | None = fields["file"]
        self.source_root: str | None = fields["source_root"]
        self.sources: list[str | None] = fields["sources"]
        self.sources_content: list[str | None] = fields["sources_content"]
        self.names: list[str] = fields["names"]
        self.line_count = 0
        self._mappings: list[Mapping] = []
        self._generated_keys: list[tuple[int, int]] = []
        self.parse_mappings(fields["mappings"])

    def parse_mappings(self, encoded: str) -> None:
        """Decodes ``encoded`` and replaces the held mappings."""
        decoded = decode(encoded)
        mappings = mappings_from_decoded(decoded)
        self.line_count = len(decoded)
        self._mappings = mappings
        self._generated_keys = [
            (mapping.generated_line, mapping.generated_column)
            for mapping in mappings
        ]

    @property
    def mappings(self) -> list[Mapping]:
        return self._mappings

    def release(self) -> None:
        """Drops the held mappings."""
        self._mappings = []
        self._generated_keys = []
        self.line_count = 0

    def source_for(self, mapping: Mapping) -> str | None:
        if mapping.source is None or mapping.source >= len(self.sources):
            return None
        return self.sources[mapping.source]

    def name_for(self, mapping: Mapping) -> str | None:
        if mapping.name is None or mapping.name >= len(self.names):
            return None
        return self.names[mapping.name]

    def original_position_for(self, line: int, column: int) -> Mapping | None:
        """
        Finds the closest mapping at or before a generated position.

        Only mappings on the same generated line qualify.
        """
        index = bisect.bisect_right(self._generated_keys, (line, column)) - 1
        if index < 0:
            return None
        mapping = self._mappings[index]
        if mapping.generated_line != line:
            return None
        return mapping


class SourceMapGenerator:
    """
    Collects mappings and serializes them as a version 3 document.
    """

    def __init__(
        self,
        file: str | None = None,
        sources: list[str | None] | None = None,
        names: list[str] | None = None,
    ) -> None:
        self.file = file
        self.sources: list[str | None] = list(sources or [])
        self.names: list[str] = list(names or [])
        self.sources_content: list[str | None] = []
        self.line_count = 0
        self._mappings: list[Mapping] = []

    @classmethod
    def from_source_map(
        cls, consumer: SourceMapConsumer
    ) -> "SourceMapGenerator":
        """Builds a generator holding every mapping of ``consumer``."""
        generator = cls(consumer.file, consumer.sources, consumer.names)
        generator.sources_content = list(consumer.sources_content)
        generator.line_count = consumer.line_count
        generator.add_mappings(consumer.mappings)
        return generator

    def add_mapping(self, mapping: Mapping) -> None:
        if mapping.source is not None and (
            mapping.original_line is None or mapping.original_column is None
        ):
            raise ValueError("mapping with a source needs an original position")
        if mapping.name is not None and mapping.source is None:
            raise ValueError("mapping with a name needs a source")
        self._mappings.append(mapping)
        self.line_count = max(self.line_count, mapping.generated_line)

    def add_mappings(self, mappings: Iterable[Mapping]) -> None:
        for mapping in mappings:
            self.add_mapping(mapping)

    def serialize_mappings(self) -> str:
        """Renders the held mappings as a mappings string."""
        ordered = sorted(
            self._mappings,
            key=lambda m: (m.generated_line, m.generated_column),
        )
        result = []
        previous_line = 1
        generated_column = 0
        source_index = 0
        original_line = 0
        original_column = 0
        name_index = 0
        first_in_line = True

        for mapping in ordered:
            if mapping.generated_line != previous_line:
                result.append(";" * (mapping.generated_line - previous_line))
                previous_line = mapping.generated_line
                generated_column = 0
                first_in_line = True
            if not first_in_line:
                result.append(",")
            first_in_line = False

            result.append(
                encode_vlq(mapping.generated_column - generated_column)
            )
            generated_column = mapping.generated_column
            if mapping.source is None:
                continue

            result.append(encode_vlq(mapping.source - source_index))
            source_index = mapping.source
            line = mapping.original_line - 1
            result.append(encode_vlq(line - original_line))
            original_line = line
            column = mapping.original_column
            result.append(encode_vlq(column - original_column))
            original_column = column

            if mapping.name is not None:
                result.append(encode_vlq(mapping.name - name_index))
                name_index = mapping.name

        # Trailing lines without mappings
        result.append(";" * max(0, self.line_count - previous_line))
        return "".join(result)

    def to_json(self) -> dict[str, Any]:
        """Returns the document as plain JSON-compatible data."""
        document: dict[str, Any] = {
            "version": SUPPORTED_VERSION,
            "sources": self.sources,
            "names": self.names,
            "mappings": self.serialize_mappings(),
        }
        if self.file is not None:
            document["file"] = self.file
        if any(content is not None for content in self.sources_content):
            document["sourcesContent"] = self.sources_content
        return document
