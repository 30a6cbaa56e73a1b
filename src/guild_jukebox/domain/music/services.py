"""
Music Domain Services

Domain logic that doesn't naturally fit within a single entity or value object.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from guild_jukebox.domain.music.value_objects import QueryKind
from guild_jukebox.domain.shared.exceptions import ResolutionError
from guild_jukebox.domain.shared.messages import ErrorMessages

URL_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"^https?://", re.IGNORECASE),
    re.compile(r"^www\.", re.IGNORECASE),
]

CATALOG_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://open\.spotify\.com/(?:intl-[a-z]{2}(?:-[a-z]{2})?/)?(?P<kind>[a-z]+)(?:/(?P<id>[^/?#]*))?",
    re.IGNORECASE,
)
CATALOG_URI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^spotify:(?P<kind>[a-z]+):(?P<id>.*)$", re.IGNORECASE
)
CATALOG_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9]{22}$")


@dataclass(frozen=True, slots=True)
class ClassifiedQuery:
    """A query tagged with how it must be resolved."""

    kind: QueryKind
    text: str
    reference_id: str | None = None


class QueryClassifier:
    """Pattern-match a raw query against known reference shapes."""

    @staticmethod
    def is_url(query: str) -> bool:
        return any(pattern.search(query) for pattern in URL_PATTERNS)

    @classmethod
    def classify(cls, query: str) -> ClassifiedQuery:
        text = query.strip()
        if not text:
            raise ResolutionError.invalid_reference(ErrorMessages.EMPTY_QUERY)

        match = CATALOG_URL_PATTERN.match(text) or CATALOG_URI_PATTERN.match(text)
        if match:
            return cls._classify_catalog(text, match.group("kind"), match.group("id") or "")

        if cls.is_url(text):
            return ClassifiedQuery(QueryKind.DIRECT_MEDIA_REFERENCE, text)

        return ClassifiedQuery(QueryKind.FREE_TEXT_SEARCH, text)

    @staticmethod
    def _classify_catalog(text: str, kind: str, reference_id: str) -> ClassifiedQuery:
        if kind.lower() != "track":
            raise ResolutionError.invalid_reference(
                ErrorMessages.UNSUPPORTED_CATALOG_KIND.format(kind=kind)
            )
        if not CATALOG_ID_PATTERN.match(reference_id):
            raise ResolutionError.invalid_reference(
                ErrorMessages.INVALID_CATALOG_REFERENCE.format(query=text)
            )
        return ClassifiedQuery(QueryKind.CATALOG_REFERENCE, text, reference_id)
