"""
Implementations under comparison.

Every candidate decodes and encodes mappings. Reference candidates also
load whole documents into their own consumer objects and re-serialize from
a generator derived from such a consumer, which is how those libraries are
used downstream.
"""

import abc
import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Mapping as MappingABC
from contextlib import contextmanager
from typing import Any

import sourcemap_codec
from sourcemap_codec import legacy
from sourcemap_codec.consumer import SourceMapConsumer
from sourcemap_codec.consumer import SourceMapGenerator
from sourcemap_codec.consumer import mappings_from_decoded
from sourcemap_codec.indexed import IndexedSourceMapConsumer
from sourcemap_codec.indexed import IndexedSourceMapGenerator
from sourcemap_codec.indexed import MappingColumns
from sourcemap_codec.indexed import VlqEngine
from sourcemap_codec.indexed import load_engine

logger = logging.getLogger(__name__)

Document = MappingABC[str, Any]


class Candidate(abc.ABC):
    """One named decode/encode implementation."""

    label: str

    async def initialize(self) -> None:
        """One-time setup, completed before any measurement starts."""

    @abc.abstractmethod
    def decode(self, encoded: str) -> Any: ...

    @abc.abstractmethod
    def encode(self, decoded: Any) -> str: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label!r}>"


class CodecCandidate(Candidate):
    """Candidate made of a plain decode function and encode function."""

    def __init__(
        self,
        label: str,
        decode: Callable[[str], Any],
        encode: Callable[[Any], str],
    ) -> None:
        self.label = label
        self._decode = decode
        self._encode = encode

    def decode(self, encoded: str) -> Any:
        return self._decode(encoded)

    def encode(self, decoded: Any) -> str:
        return self._encode(decoded)


class ReferenceCandidate(Candidate):
    """
    Candidate backed by a consumer/generator object model.

    Subclasses that keep state between parses set ``requires_reset``; their
    reparses then run inside ``released``.
    """

    requires_reset = False

    @abc.abstractmethod
    async def parse_document(self, document: Document) -> Any:
        """Loads a full document into a new consumer."""

    @abc.abstractmethod
    def generator_from(self, consumer: Any) -> Any:
        """Derives a generator from an already loaded consumer."""

    @abc.abstractmethod
    def serialize(self, generator: Any) -> str: ...

    @abc.abstractmethod
    def release(self, consumer: Any) -> None:
        """Drops whatever the consumer retained from its last parse."""

    @abc.abstractmethod
    def parse_mappings(self, consumer: Any, encoded: str) -> None: ...

    @contextmanager
    def released(self, consumer: Any) -> Iterator[Any]:
        """
        Releases ``consumer`` on entry and again if the block fails.

        On success the freshly parsed state is kept, so it stays attributed
        to the trial that produced it.
        """
        self.release(consumer)
        try:
            yield consumer
        except BaseException:
            self.release(consumer)
            raise

    def reparse(self, consumer: Any, encoded: str) -> Any:
        """Parses ``encoded`` again on an existing consumer."""
        if self.requires_reset:
            with self.released(consumer):
                self.parse_mappings(consumer, encoded)
        else:
            self.parse_mappings(consumer, encoded)
        return consumer


def _empty_document() -> dict[str, Any]:
    return {"version": 3, "sources": [], "names": [], "mappings": ""}


class ConsumerCandidate(ReferenceCandidate):
    """The eager SourceMapConsumer/SourceMapGenerator object model."""

    label = "consumer"

    async def parse_document(self, document: Document) -> SourceMapConsumer:
        return SourceMapConsumer(document)

    def parse_mappings(self, consumer: SourceMapConsumer, encoded: str) -> None:
        consumer.parse_mappings(encoded)

    def generator_from(self, consumer: SourceMapConsumer) -> SourceMapGenerator:
        return SourceMapGenerator.from_source_map(consumer)

    def serialize(self, generator: SourceMapGenerator) -> str:
        return generator.serialize_mappings()

    def release(self, consumer: SourceMapConsumer) -> None:
        consumer.release()

    def decode(self, encoded: str) -> SourceMapConsumer:
        consumer = SourceMapConsumer(_empty_document())
        consumer.parse_mappings(encoded)
        return consumer

    def encode(self, decoded: Any) -> str:
        generator = SourceMapGenerator()
        generator.add_mappings(mappings_from_decoded(decoded))
        generator.line_count = len(decoded)
        return generator.serialize_mappings()


class IndexedCandidate(ReferenceCandidate):
    """
    The IndexedSourceMapConsumer object model.

    Consumers keep their arrays until destroyed, so reparses go through
    ``released``.
    """

    label = "indexed"
    requires_reset = True

    def __init__(self) -> None:
        self._engine: VlqEngine | None = None

    async def initialize(self) -> None:
        self._engine = await load_engine()
        logger.debug("indexed engine loaded")

    @property
    def engine(self) -> VlqEngine:
        if self._engine is None:
            raise RuntimeError(f"{self.label} candidate is not initialized")
        return self._engine

    async def parse_document(
        self, document: Document
    ) -> IndexedSourceMapConsumer:
        return await IndexedSourceMapConsumer.create(document)

    def parse_mappings(
        self, consumer: IndexedSourceMapConsumer, encoded: str
    ) -> None:
        consumer.parse_mappings(encoded)

    def generator_from(
        self, consumer: IndexedSourceMapConsumer
    ) -> IndexedSourceMapGenerator:
        return IndexedSourceMapGenerator.from_source_map(consumer)

    def serialize(self, generator: IndexedSourceMapGenerator) -> str:
        return generator.serialize_mappings()

    def release(self, consumer: IndexedSourceMapConsumer) -> None:
        consumer.destroy()

    def decode(self, encoded: str) -> IndexedSourceMapConsumer:
        consumer = IndexedSourceMapConsumer(_empty_document(), self.engine)
        return self.reparse(consumer, encoded)

    def encode(self, decoded: Any) -> str:
        generator = IndexedSourceMapGenerator(
            MappingColumns.from_decoded(decoded), [], []
        )
        return generator.serialize_mappings()


class Registry:
    """
    Ordered, read-only collection of candidates with unique labels.

    ``reference`` is the candidate whose decode result is the shared input
    for every encode trial; it survives ``select``.
    """

    def __init__(
        self,
        candidates: Iterable[Candidate],
        reference: Candidate | None = None,
    ) -> None:
        self._candidates: tuple[Candidate, ...] = ()
        for candidate in candidates:
            self._add(candidate)
        if reference is None:
            if not self._candidates:
                raise ValueError("registry needs at least one candidate")
            reference = self._candidates[0]
        self.reference = reference

    def _add(self, candidate: Candidate) -> None:
        if candidate.label in self.labels:
            raise ValueError(f"duplicate candidate label: {candidate.label}")
        self._candidates = (*self._candidates, candidate)

    @property
    def labels(self) -> list[str]:
        return [candidate.label for candidate in self._candidates]

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates)

    def __len__(self) -> int:
        return len(self._candidates)

    def __getitem__(self, label: str) -> Candidate:
        for candidate in self._candidates:
            if candidate.label == label:
                return candidate
        raise KeyError(label)

    def references(self) -> list[ReferenceCandidate]:
        return [
            c for c in self._candidates if isinstance(c, ReferenceCandidate)
        ]

    def select(self, labels: Iterable[str] | None) -> "Registry":
        """
        Narrows the registry to ``labels``, keeping registry order.

        Unknown labels raise KeyError. None or an empty selection keeps
        every candidate.
        """
        wanted = list(labels or [])
        if not wanted:
            return self
        unknown = [label for label in wanted if label not in self.labels]
        if unknown:
            raise KeyError(f"unknown candidates: {', '.join(unknown)}")
        return Registry(
            [c for c in self._candidates if c.label in wanted],
            reference=self.reference,
        )

    async def initialize(self) -> None:
        """Runs every candidate's one-time setup, reference included."""
        seen = set()
        for candidate in (self.reference, *self._candidates):
            if id(candidate) in seen:
                continue
            seen.add(id(candidate))
            await candidate.initialize()


def default_registry() -> Registry:
    """Returns the standard candidates in reporting order."""
    return Registry(
        [
            CodecCandidate(
                "sourcemap_codec",
                sourcemap_codec.decode,
                sourcemap_codec.encode,
            ),
            CodecCandidate(
                "sourcemap_codec.legacy", legacy.decode, legacy.encode
            ),
            ConsumerCandidate(),
            IndexedCandidate(),
        ]
    )
