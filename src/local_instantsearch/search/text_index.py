"""Default in-memory text index used by search workers.

Workers only rely on ``search(query) -> list[Match]``; anything honoring the
:class:`TextIndex` protocol can be plugged in through the accessor's index
factory. Analysis stays minimal (regex word tokenizer plus lowercasing) and
matches are weighted with BM25 over the searchable fields.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
import math
import re
from typing import Any, Protocol

from local_instantsearch.domain.model import Document, IndexMapping, Match


FORMAT_VERSION = 1

_WORD_PATTERN = re.compile(r"[\w']+", re.UNICODE | re.MULTILINE)


class TextIndex(Protocol):
    """Opaque searchable structure over one corpus."""

    def search(self, query: str) -> list[Match]:  # pragma: no cover - interface definition
        ...

    def to_dict(self) -> dict[str, Any]:  # pragma: no cover - interface definition
        ...


class TextIndexFactory(Protocol):
    """Builds an index from a corpus or restores a precomputed one."""

    def build(self, mapping: IndexMapping, documents: Iterable[Document]) -> TextIndex:  # pragma: no cover
        ...

    def load(self, data: dict[str, Any]) -> TextIndex:  # pragma: no cover - interface definition
        ...


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens."""
    return [match.group(0).lower() for match in _WORD_PATTERN.finditer(text)]


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


def _idf(doc_freq: int, total_docs: int, *, floor: float = 1e-6) -> float:
    # Floored so common terms in tiny corpora never score negative
    if total_docs <= 0:
        return 0.0
    df = max(0, min(doc_freq, total_docs))
    ratio = max((total_docs - df + 0.5) / (df + 0.5), floor)
    return max(math.log(ratio + floor) + 1.0, floor)


def _bm25(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    if tf <= 0:
        return 0.0
    normalized_length = min(doc_length / max(avg_doc_length, 1e-9), 4.0)
    return (tf * (k1 + 1)) / (tf + k1 * (1 - b + b * normalized_length))


class LocalTextIndex:
    """Inverted index over the searchable fields of a flat corpus.

    Postings are kept per field as ``term -> {ref: term_frequency}`` together
    with per-document field lengths, which is everything BM25 needs and
    serializes to plain JSON.
    """

    def __init__(self, ref_field: str, fields: Sequence[str]) -> None:
        self.ref_field = ref_field
        self.fields = list(fields)
        self._refs: list[str] = []
        self._ref_positions: dict[str, int] = {}
        self._postings: dict[str, dict[str, dict[str, int]]] = {name: {} for name in self.fields}
        self._lengths: dict[str, dict[str, int]] = {name: {} for name in self.fields}

    @classmethod
    def build(cls, mapping: IndexMapping, documents: Iterable[Document]) -> LocalTextIndex:
        index = cls(ref_field=mapping.ref, fields=mapping.fields)
        for document in documents:
            index.add(document)
        return index

    @classmethod
    def load(cls, data: dict[str, Any]) -> LocalTextIndex:
        """Restore an index produced by :meth:`to_dict`."""
        version = data.get("version")
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported precomputed index version: {version!r}")
        index = cls(ref_field=data["ref"], fields=data["fields"])
        index._refs = list(data["refs"])
        index._ref_positions = {ref: position for position, ref in enumerate(index._refs)}
        index._postings = {
            name: {term: dict(postings) for term, postings in terms.items()}
            for name, terms in data["postings"].items()
        }
        index._lengths = {name: dict(lengths) for name, lengths in data["lengths"].items()}
        return index

    def add(self, document: Document) -> None:
        if self.ref_field not in document:
            raise ValueError(f"Document is missing reference field '{self.ref_field}'")
        ref = str(document[self.ref_field])
        if ref in self._ref_positions:
            raise ValueError(f"Duplicate document reference '{ref}'")
        self._ref_positions[ref] = len(self._refs)
        self._refs.append(ref)

        for field_name in self.fields:
            terms = tokenize(_field_text(document.get(field_name)))
            self._lengths[field_name][ref] = len(terms)
            field_postings = self._postings[field_name]
            for term in terms:
                postings = field_postings.setdefault(term, {})
                postings[ref] = postings.get(ref, 0) + 1

    def __len__(self) -> int:
        return len(self._refs)

    def search(self, query: str) -> list[Match]:
        """Return matches ordered by score, ties broken by corpus order.

        A blank query browses the whole corpus in its original order.
        """
        if not query.strip():
            return [Match(ref=ref, score=0.0) for ref in self._refs]

        terms = list(dict.fromkeys(tokenize(query)))
        if not terms:
            return []

        total_docs = len(self._refs)
        scores: dict[str, float] = defaultdict(float)
        matched_terms: dict[str, list[str]] = defaultdict(list)

        for field_name in self.fields:
            lengths = self._lengths.get(field_name, {})
            avg_length = sum(lengths.values()) / len(lengths) if lengths else 0.0
            field_postings = self._postings.get(field_name, {})
            for term in terms:
                postings = field_postings.get(term)
                if not postings:
                    continue
                idf = _idf(len(postings), total_docs)
                for ref, tf in postings.items():
                    scores[ref] += idf * _bm25(tf, lengths.get(ref, 0), avg_length)
                    if term not in matched_terms[ref]:
                        matched_terms[ref].append(term)

        ranked = sorted(scores, key=lambda ref: (-scores[ref], self._ref_positions[ref]))
        return [Match(ref=ref, score=scores[ref], matched_terms=tuple(matched_terms[ref])) for ref in ranked]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible form accepted by :meth:`load`."""
        return {
            "version": FORMAT_VERSION,
            "ref": self.ref_field,
            "fields": list(self.fields),
            "refs": list(self._refs),
            "postings": self._postings,
            "lengths": self._lengths,
        }
