"""Concrete implementation of the MetadataBackend interface for IGDB.

Authenticates with the Twitch client-credentials flow, then posts query
expressions to ``https://api.igdb.com/v4/<endpoint>``. Translates HTTP
failures into the domain error taxonomy; pacing and retries are the query
client's concern.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

import httpx

from gamemeta.domain.exceptions import BackendError, ConfigurationError, RateLimitRejected
from gamemeta.domain.interfaces.metadata_backend import MetadataBackend
from gamemeta.domain.models.common import Endpoint, QueryBody, RawRecord

logger = logging.getLogger(__name__)

IGDB_API_URL = "https://api.igdb.com/v4"
TWITCH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
DEFAULT_TIMEOUT_SECONDS = 30.0
# Refresh the access token this long before Twitch expires it
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class Endpoints:
    """Common IGDB endpoint segments."""

    AGE_RATINGS = Endpoint("age_ratings")
    ALTERNATIVE_NAMES = Endpoint("alternative_names")
    ARTWORKS = Endpoint("artworks")
    COLLECTIONS = Endpoint("collections")
    COMPANIES = Endpoint("companies")
    COVERS = Endpoint("covers")
    FRANCHISES = Endpoint("franchises")
    GAME_MODES = Endpoint("game_modes")
    GAME_VIDEOS = Endpoint("game_videos")
    GAMES = Endpoint("games")
    GENRES = Endpoint("genres")
    INVOLVED_COMPANIES = Endpoint("involved_companies")
    MULTIPLAYER_MODES = Endpoint("multiplayer_modes")
    PLATFORM_LOGOS = Endpoint("platform_logos")
    PLATFORMS = Endpoint("platforms")
    PLAYER_PERSPECTIVES = Endpoint("player_perspectives")
    RELEASE_DATES = Endpoint("release_dates")
    SCREENSHOTS = Endpoint("screenshots")
    SEARCH = Endpoint("search")
    THEMES = Endpoint("themes")


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value else None
    except ValueError:
        return None


class IgdbBackend(MetadataBackend):
    """IGDB v4 implementation of the MetadataBackend interface."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        api_url: str = IGDB_API_URL,
        token_url: str = TWITCH_TOKEN_URL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the IGDB backend.

        Args:
            client_id: Twitch application client id.
            client_secret: Twitch application secret.
            http_client: Optional preconfigured httpx client (tests pass a MockTransport).
            timeout: Request timeout in seconds when creating the default client.
            api_url: Base URL of the IGDB API.
            token_url: Twitch OAuth token URL.
            clock: Monotonic time source used for token expiry.
        """
        if not client_id or not client_secret:
            raise ConfigurationError("IGDB client id and secret are required for the IGDB metadata source.")
        self.client_id = client_id
        self._client_secret = client_secret
        self.api_url = api_url.rstrip("/")
        self.token_url = token_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._clock = clock
        self._token_lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        logger.info(f"IgdbBackend initialized for client id: {client_id[:4]}...")

    # --- Authentication ---

    def _get_access_token(self) -> str:
        with self._token_lock:
            if self._access_token and self._clock() < self._token_expires_at:
                return self._access_token

            logger.debug("Requesting IGDB access token from Twitch.")
            try:
                response = self._http.post(
                    self.token_url,
                    params={
                        "client_id": self.client_id,
                        "client_secret": self._client_secret,
                        "grant_type": "client_credentials",
                    },
                )
                response.raise_for_status()
                payload = response.json()
                token = payload["access_token"]
                expires_in = float(payload.get("expires_in", 0))
            except httpx.HTTPStatusError as e:
                logger.error(f"IGDB authentication failed (Status: {e.response.status_code}).")
                raise BackendError("oauth2/token", "authentication failed", e.response.status_code) from e
            except httpx.HTTPError as e:
                logger.error(f"IGDB authentication request failed: {e}")
                raise BackendError("oauth2/token", f"{type(e).__name__}: {e}") from e
            except (KeyError, ValueError) as e:
                logger.error(f"Unexpected token response from Twitch: {e}")
                raise BackendError("oauth2/token", "invalid token response") from e

            self._access_token = token
            self._token_expires_at = self._clock() + max(0.0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
            return token

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._access_token = None
            self._token_expires_at = 0.0

    # --- MetadataBackend Interface Implementation ---

    def query(self, endpoint: Endpoint, query_body: QueryBody) -> List[RawRecord]:
        token = self._get_access_token()
        url = f"{self.api_url}/{endpoint}"
        headers = {
            "Client-ID": self.client_id,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        logger.debug(f"POST {url}: {query_body}")
        try:
            response = self._http.post(url, content=query_body.encode("utf-8"), headers=headers)
        except httpx.HTTPError as e:
            raise BackendError(endpoint, f"{type(e).__name__}: {e}") from e

        if response.status_code == 429:
            raise RateLimitRejected(endpoint, retry_after=_retry_after(response))
        if response.status_code == 401:
            # Token revoked or expired early; the next call re-authenticates
            self._invalidate_token()
        if response.status_code >= 400:
            raise BackendError(endpoint, response.text[:200] or response.reason_phrase, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(endpoint, "response body is not valid JSON", response.status_code) from e
        if not isinstance(data, list):
            raise BackendError(endpoint, f"expected a JSON array, got {type(data).__name__}", response.status_code)
        return data

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
