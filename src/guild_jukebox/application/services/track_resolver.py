"""Track Resolver - turns a user query into a playable Track.

Queries are classified first, then handed to an ordered chain of resolution
strategies. A strategy either returns a Track, raises a ``ResolutionError``
that ends resolution, or raises :class:`StrategyUnavailable` to let the next
strategy in the chain try.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from guild_jukebox.domain.music.entities import Requester, Track
from guild_jukebox.domain.music.services import ClassifiedQuery, QueryClassifier
from guild_jukebox.domain.music.value_objects import ProviderTag, QueryKind
from guild_jukebox.domain.shared.exceptions import ResolutionError, ResolutionErrorKind
from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from guild_jukebox.application.interfaces.providers import CatalogProvider, SearchCandidate, SearchProvider

logger = logging.getLogger(__name__)


class StrategyUnavailable(ResolutionError):
    """The strategy cannot run right now; the next strategy in the chain may."""

    def __init__(self, message: str) -> None:
        super().__init__(ResolutionErrorKind.PROVIDER_UNAVAILABLE, message)


def _candidate_to_track(
    candidate: SearchCandidate, requester: Requester, provider: ProviderTag = ProviderTag.YOUTUBE
) -> Track:
    return Track(
        id=candidate.id,
        title=candidate.title,
        duration_seconds=candidate.duration_seconds,
        thumbnail_url=candidate.thumbnail_url,
        source_url=candidate.source_url,
        requester=requester,
        provider=provider,
    )


class ResolutionStrategy(ABC):
    name: str = "strategy"

    @abstractmethod
    async def resolve(self, query: ClassifiedQuery, requester: Requester) -> Track:
        ...


class DirectReferenceStrategy(ResolutionStrategy):
    """Look a media URL up on the primary provider and take its first candidate."""

    name = "direct"

    def __init__(self, search_provider: SearchProvider) -> None:
        self._search = search_provider

    async def resolve(self, query: ClassifiedQuery, requester: Requester) -> Track:
        candidate = await self._search.lookup(query.text)
        if candidate is None:
            raise ResolutionError.not_found(ErrorMessages.NO_MEDIA_FOUND.format(query=query.text))
        return _candidate_to_track(candidate, requester)


class FreeTextSearchStrategy(ResolutionStrategy):
    """Search the primary provider with the raw query text."""

    name = "search"

    def __init__(self, search_provider: SearchProvider) -> None:
        self._search = search_provider

    async def resolve(self, query: ClassifiedQuery, requester: Requester) -> Track:
        candidates = await self._search.search(query.text, limit=1)
        if not candidates:
            raise ResolutionError.not_found(ErrorMessages.NO_RESULTS.format(query=query.text))
        return _candidate_to_track(candidates[0], requester)


class CatalogReferenceStrategy(ResolutionStrategy):
    """Fetch canonical metadata from the catalog, then find a playable equivalent.

    The catalog never supplies the stream: id and source come from the primary
    provider's first search hit for ``"<artist> <title>"``.
    """

    name = "catalog"

    def __init__(self, catalog_provider: CatalogProvider | None, search_provider: SearchProvider) -> None:
        self._catalog = catalog_provider
        self._search = search_provider

    async def resolve(self, query: ClassifiedQuery, requester: Requester) -> Track:
        if self._catalog is None:
            raise StrategyUnavailable(ErrorMessages.CATALOG_NOT_CONFIGURED)
        if not query.reference_id:
            raise ResolutionError.invalid_reference(
                ErrorMessages.INVALID_CATALOG_REFERENCE.format(query=query.text)
            )

        try:
            metadata = await self._catalog.get_track(query.reference_id)
        except ResolutionError as e:
            if e.kind is ResolutionErrorKind.PROVIDER_UNAVAILABLE:
                raise StrategyUnavailable(e.message) from e
            raise

        candidates = await self._search.search(metadata.search_query, limit=1)
        if not candidates:
            raise ResolutionError.not_found(
                ErrorMessages.NO_PLAYABLE_EQUIVALENT.format(title=metadata.display_title)
            )

        candidate = candidates[0]
        return Track(
            id=candidate.id,
            title=metadata.display_title,
            duration_seconds=metadata.duration_seconds or candidate.duration_seconds,
            thumbnail_url=metadata.thumbnail_url or candidate.thumbnail_url,
            source_url=candidate.source_url,
            requester=requester,
            provider=ProviderTag.SPOTIFY,
        )


class TrackResolver:
    """Classify a query and run the strategy chain registered for its kind."""

    def __init__(
        self,
        *,
        search_provider: SearchProvider,
        catalog_provider: CatalogProvider | None = None,
        chains: Mapping[QueryKind, Sequence[ResolutionStrategy]] | None = None,
    ) -> None:
        search = FreeTextSearchStrategy(search_provider)
        self._chains: Mapping[QueryKind, Sequence[ResolutionStrategy]] = chains or {
            QueryKind.DIRECT_MEDIA_REFERENCE: (DirectReferenceStrategy(search_provider),),
            QueryKind.CATALOG_REFERENCE: (
                CatalogReferenceStrategy(catalog_provider, search_provider),
                search,
            ),
            QueryKind.FREE_TEXT_SEARCH: (search,),
        }

    def classify(self, query: str) -> ClassifiedQuery:
        return QueryClassifier.classify(query)

    async def resolve(self, query: str, requester: Requester) -> Track:
        classified = self.classify(query)
        chain = self._chains.get(classified.kind, ())
        logger.debug(LogTemplates.RESOLVE_CLASSIFIED, query, classified.kind.value)

        last_error: StrategyUnavailable | None = None
        for strategy in chain:
            try:
                track = await strategy.resolve(classified, requester)
            except StrategyUnavailable as e:
                logger.warning(LogTemplates.RESOLVE_STRATEGY_FALLBACK, strategy.name, e.message)
                last_error = e
                continue
            except ResolutionError as e:
                logger.info(LogTemplates.RESOLVE_FAILED, query, e.kind.value, e.message)
                raise

            logger.info(LogTemplates.RESOLVE_SUCCEEDED, query, track.title, strategy.name)
            return track

        if last_error is not None:
            raise ResolutionError.provider_unavailable(last_error.message) from last_error
        raise ResolutionError.invalid_reference(ErrorMessages.NO_STRATEGY.format(kind=classified.kind.value))
