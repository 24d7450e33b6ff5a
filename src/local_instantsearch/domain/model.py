"""Domain models for the search adapter.

Following the same conventions as the rest of the package:
- Value Objects are immutable (frozen=True)
- No infrastructure dependencies

Request items keep the camelCase names of the InstantSearch protocol as
aliases so they validate straight from decoded JSON.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


if TYPE_CHECKING:
    from local_instantsearch.search.text_index import TextIndex


Document = dict[str, Any]
Hit = dict[str, Any]
FacetCounts = dict[str, dict[str, int]]
FacetFilters = str | list[Any]

DEFAULT_HITS_PER_PAGE = 20


class IndexMapping(BaseModel):
    """Reference field and searchable fields declared for one corpus."""

    model_config = ConfigDict(frozen=True)

    ref: str = Field(min_length=1, validation_alias=AliasChoices("ref", "referenceField"))
    fields: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("fields", "searchableFields"),
    )


class IndexPayload(BaseModel):
    """Bundle served by the primary resource or the fallback channel.

    Accepts the historical key names (``docs``, ``computedIndex``) as well as
    the descriptive ones. Unknown keys are discarded.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    documents: list[Document] = Field(validation_alias=AliasChoices("documents", "docs"))
    mapping: IndexMapping
    precomputed_index: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("precomputed_index", "precomputedIndex", "computedIndex"),
    )


@dataclass(frozen=True)
class Match:
    """A document reference returned by the text index for a query."""

    ref: str
    score: float
    matched_terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class LoadedIndex:
    """Ready-to-query index together with the corpus it was built from."""

    index: TextIndex
    corpus: list[Document]
    mapping: IndexMapping
    document_count: int
    by_ref: Mapping[str, Document] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, index: TextIndex, payload: IndexPayload) -> LoadedIndex:
        ref_field = payload.mapping.ref
        by_ref = {str(doc.get(ref_field)): doc for doc in payload.documents}
        return cls(
            index=index,
            corpus=payload.documents,
            mapping=payload.mapping,
            document_count=len(payload.documents),
            by_ref=by_ref,
        )


@dataclass(frozen=True)
class SearchOutcome:
    """Result of a single worker query: one page of hits plus facet tables."""

    hits: list[Hit]
    facets: FacetCounts
    total: int
    page_size: int
    page_num: int


@dataclass(frozen=True)
class HitQuery:
    """Normalized hit-type batch item."""

    index_name: str
    query: str
    facet: str | None
    facet_filters: FacetFilters
    page: int
    hits_per_page: int


@dataclass(frozen=True)
class FacetQuery:
    """Normalized facet-type batch item."""

    index_name: str
    facet_name: str | None
    query: str
    facet_query: str | None
    facet_filters: FacetFilters


class QueryParams(BaseModel):
    """``params`` object of a legacy multi-query request item."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    query: str | None = None
    page: int | None = None
    hits_per_page: int | None = Field(default=None, alias="hitsPerPage")
    facet_filters: str | list[Any] | None = Field(default=None, alias="facetFilters")
    facet_query: str | None = Field(default=None, alias="facetQuery")


class SearchRequestItem(BaseModel):
    """One entry of a batched search request."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    index_name: str = Field(default="", alias="indexName")
    type: str | None = None
    facet: str | None = None
    params: QueryParams

    @property
    def is_facet_query(self) -> bool:
        """Facet queries are tagged ``type: "facet"``; an untyped item naming a facet counts too."""
        if self.type is not None:
            return self.type == "facet"
        return bool(self.facet)

    def as_hit_query(self) -> HitQuery:
        params = self.params
        return HitQuery(
            index_name=self.index_name,
            query=params.query or "",
            facet=self.facet,
            facet_filters=params.facet_filters or [],
            page=params.page if params.page is not None else 0,
            hits_per_page=params.hits_per_page or DEFAULT_HITS_PER_PAGE,
        )

    def as_facet_query(self) -> FacetQuery:
        params = self.params
        return FacetQuery(
            index_name=self.index_name,
            facet_name=self.facet,
            query=params.query or "",
            facet_query=params.facet_query,
            facet_filters=params.facet_filters or [],
        )
