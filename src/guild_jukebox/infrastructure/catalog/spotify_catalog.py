"""CatalogProvider implementation backed by the Spotify Web API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Final

import httpx
from pydantic import BaseModel, ConfigDict, Field

from guild_jukebox.application.interfaces.providers import CatalogProvider, CatalogTrack
from guild_jukebox.config.settings import CatalogSettings
from guild_jukebox.domain.shared.exceptions import ResolutionError
from guild_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_MARGIN: Final[float] = 60.0
MAX_DURATION_SECONDS: Final[int] = 86400


class SpotifyArtist(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str


class SpotifyImage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str
    width: int | None = None


class SpotifyAlbum(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    images: list[SpotifyImage] = Field(default_factory=list)


class SpotifyTrackPayload(BaseModel):
    """Subset of the ``GET /tracks/{id}`` response the catalog needs."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    duration_ms: int = 0
    artists: list[SpotifyArtist] = Field(default_factory=list)
    album: SpotifyAlbum | None = None

    def to_catalog_track(self) -> CatalogTrack:
        images = self.album.images if self.album else []
        thumbnail = images[0].url if images else None
        return CatalogTrack(
            id=self.id,
            title=self.name,
            artists=tuple(a.name for a in self.artists if a.name),
            duration_seconds=min(max(self.duration_ms, 0) // 1000, MAX_DURATION_SECONDS),
            thumbnail_url=thumbnail,
        )


class AccessToken(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    expires_in: int = 3600


class SpotifyCatalogProvider(CatalogProvider):
    """Client-credentials Spotify client that only reads track metadata.

    The access token is fetched lazily and refreshed shortly before it
    expires. Failed requests are never retried here.
    """

    def __init__(
        self,
        settings: CatalogSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def get_track(self, reference_id: str) -> CatalogTrack:
        token = await self._get_token()
        url = f"{self._settings.api_base.rstrip('/')}/tracks/{reference_id}"

        try:
            response = await self._get_client().get(
                url, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            logger.warning(LogTemplates.CATALOG_REQUEST_FAILED, reference_id, e)
            raise ResolutionError.provider_unavailable(
                ErrorMessages.CATALOG_UNAVAILABLE.format(error=e)
            ) from e

        if response.status_code == httpx.codes.NOT_FOUND:
            raise ResolutionError.not_found(
                ErrorMessages.CATALOG_TRACK_NOT_FOUND.format(reference_id=reference_id)
            )
        if response.status_code == httpx.codes.BAD_REQUEST:
            raise ResolutionError.invalid_reference(
                ErrorMessages.CATALOG_REQUEST_REJECTED.format(reference_id=reference_id)
            )
        if response.status_code == httpx.codes.UNAUTHORIZED:
            self._token = None
        if response.is_error:
            logger.warning(LogTemplates.CATALOG_REQUEST_FAILED, reference_id, response.status_code)
            raise ResolutionError.provider_unavailable(
                ErrorMessages.CATALOG_UNAVAILABLE.format(error=f"HTTP {response.status_code}")
            )

        try:
            payload = SpotifyTrackPayload.model_validate(response.json())
            track = payload.to_catalog_track()
        except ValueError as e:
            raise ResolutionError.provider_unavailable(
                ErrorMessages.CATALOG_UNAVAILABLE.format(error=e)
            ) from e

        logger.debug(LogTemplates.CATALOG_TRACK_FETCHED, reference_id, track.display_title)
        return track

    async def _get_token(self) -> str:
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            try:
                response = await self._get_client().post(
                    self._settings.token_url,
                    data={"grant_type": "client_credentials"},
                    auth=(
                        self._settings.client_id,
                        self._settings.client_secret.get_secret_value(),
                    ),
                )
            except httpx.HTTPError as e:
                logger.warning(LogTemplates.CATALOG_REQUEST_FAILED, "token", e)
                raise ResolutionError.provider_unavailable(
                    ErrorMessages.CATALOG_UNAVAILABLE.format(error=e)
                ) from e

            if response.is_error:
                raise ResolutionError.provider_unavailable(
                    ErrorMessages.CATALOG_AUTH_FAILED.format(status=response.status_code)
                )

            try:
                token = AccessToken.model_validate(response.json())
            except ValueError as e:
                raise ResolutionError.provider_unavailable(
                    ErrorMessages.CATALOG_UNAVAILABLE.format(error=e)
                ) from e

            self._token = token.access_token
            self._token_expires_at = time.monotonic() + max(
                token.expires_in - TOKEN_EXPIRY_MARGIN, 0.0
            )
            logger.info(LogTemplates.CATALOG_TOKEN_REFRESHED, token.expires_in)
            return self._token
