"""Search worker: answers queries against one named index."""

from __future__ import annotations

import logging
from typing import Literal

from local_instantsearch.domain.model import FacetFilters, Hit, LoadedIndex, Match, SearchOutcome
from local_instantsearch.services.facets import build_hit_filter, censor_facets, count_facets
from local_instantsearch.services.index_accessor import IndexAccessor
from local_instantsearch.services.result_cache import ResultCache, with_cache


logger = logging.getLogger(__name__)

CensorBasis = Literal["hits", "corpus"]


class SearchWorker:
    """Owns one index accessor, its facet policy, and its result cache.

    ``search`` and ``search_facets`` are the cached entry points, composed in
    ``__init__`` around the same uncached query. They keep separate cache
    namespaces so hit and facet queries never share entries.
    """

    def __init__(
        self,
        accessor: IndexAccessor,
        *,
        censor_facet_threshold: float = 100,
        censor_basis: CensorBasis = "hits",
        cache: ResultCache | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            accessor: Lazily loads the index this worker queries
            censor_facet_threshold: Percentage of ``max_result_count`` a facet's
                distinct values may reach before the facet is hidden
            censor_basis: ``"hits"`` censors against the query's raw match count,
                ``"corpus"`` against the corpus size
            cache: Result cache to use; a fresh one is created when omitted
        """
        self.accessor = accessor
        self.name = accessor.name
        self.censor_facet_threshold = censor_facet_threshold
        self.censor_basis = censor_basis
        self.cache = cache if cache is not None else ResultCache(name=self.name)
        self.search = with_cache(self._search, self.cache, namespace="hits")
        self.search_facets = with_cache(self._search, self.cache, namespace="facets")

    async def get_index(self) -> LoadedIndex:
        return await self.accessor.get_index()

    @property
    def document_count(self) -> int | None:
        return self.accessor.document_count

    async def _search(
        self,
        query: str,
        facet: str | None,
        facet_filters: FacetFilters,
        page_num: int,
        page_size: int,
    ) -> SearchOutcome:
        loaded = await self.accessor.get_index()
        raw_hits = self._to_hits(loaded.index.search(query), loaded)

        max_result_count = len(raw_hits) if self.censor_basis == "hits" else loaded.document_count
        facets = censor_facets(
            count_facets(raw_hits, loaded.mapping.ref),
            max_result_count=max_result_count,
            threshold=self.censor_facet_threshold,
            facet=facet,
            facet_filters=facet_filters,
        )

        hit_filter = build_hit_filter(facet_filters)
        hits = [hit for hit in raw_hits if hit_filter(hit)]

        start = max(page_num, 0) * page_size
        logger.debug(
            "Query %r on %s: %d matches, %d after filters, %d facets",
            query,
            self.name,
            len(raw_hits),
            len(hits),
            len(facets),
        )
        return SearchOutcome(
            hits=hits[start : start + page_size],
            facets=facets,
            total=len(hits),
            page_size=page_size,
            page_num=page_num,
        )

    def _to_hits(self, matches: list[Match], loaded: LoadedIndex) -> list[Hit]:
        hits: list[Hit] = []
        for match in matches:
            document = loaded.by_ref.get(match.ref)
            if document is None:
                logger.debug("Index %s returned unknown reference %r", self.name, match.ref)
                continue
            hits.append(
                {
                    **document,
                    "ref": match.ref,
                    "_rankingInfo": {"score": match.score, "matchedTerms": list(match.matched_terms)},
                    "objectID": match.ref,
                }
            )
        return hits
