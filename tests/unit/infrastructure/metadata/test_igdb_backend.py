import json

import httpx
import pytest

from conftest import FakeClock, mock_http_client
from gamemeta.domain.exceptions import BackendError, ConfigurationError, RateLimitRejected
from gamemeta.domain.models.metadata import MetadataSource
from gamemeta.infrastructure.metadata.factory import create_backend
from gamemeta.infrastructure.metadata.igdb_backend import (
    IGDB_API_URL, TWITCH_TOKEN_URL, Endpoints, IgdbBackend,
)

PLATFORM = {"id": 6, "name": "PC (Microsoft Windows)", "slug": "win"}


class FakeIgdb:
    """httpx handler emulating the Twitch token endpoint and IGDB API."""

    def __init__(self, api_responses=None, token_status=200):
        self.api_responses = list(api_responses or [httpx.Response(200, json=[PLATFORM])])
        self.token_status = token_status
        self.token_requests = []
        self.api_requests = []
        self.tokens_issued = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(TWITCH_TOKEN_URL):
            self.token_requests.append(request)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"message": "invalid client secret"})
            self.tokens_issued += 1
            return httpx.Response(200, json={
                "access_token": f"token-{self.tokens_issued}",
                "expires_in": 3600,
                "token_type": "bearer",
            })
        self.api_requests.append(request)
        response = self.api_responses.pop(0) if len(self.api_responses) > 1 else self.api_responses[0]
        if isinstance(response, Exception):
            raise response
        # Fresh copy so a scripted response can be served more than once
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)


def _backend(fake: FakeIgdb, clock=None) -> IgdbBackend:
    return IgdbBackend(
        client_id="client-abc",
        client_secret="secret-xyz",
        http_client=mock_http_client(fake),
        clock=clock or FakeClock(),
    )


def test_query_posts_body_with_auth_headers():
    fake = FakeIgdb()
    backend = _backend(fake)

    records = backend.query(Endpoints.PLATFORMS, "fields name,slug where id = 6;")

    assert records == [PLATFORM]
    request = fake.api_requests[0]
    assert str(request.url) == f"{IGDB_API_URL}/platforms"
    assert request.method == "POST"
    assert request.content == b"fields name,slug where id = 6;"
    assert request.headers["Client-ID"] == "client-abc"
    assert request.headers["Authorization"] == "Bearer token-1"

    token_request = fake.token_requests[0]
    assert token_request.method == "POST"
    assert token_request.url.params["client_id"] == "client-abc"
    assert token_request.url.params["client_secret"] == "secret-xyz"
    assert token_request.url.params["grant_type"] == "client_credentials"


def test_token_is_reused_until_near_expiry():
    fake = FakeIgdb()
    clock = FakeClock()
    backend = _backend(fake, clock)

    backend.query(Endpoints.GAMES, "fields *;")
    clock.advance(3000)
    backend.query(Endpoints.GAMES, "fields *;")
    assert len(fake.token_requests) == 1

    # Inside the refresh margin (3600 - 60)
    clock.advance(560)
    backend.query(Endpoints.GAMES, "fields *;")
    assert len(fake.token_requests) == 2
    assert fake.api_requests[-1].headers["Authorization"] == "Bearer token-2"


def test_429_raises_rate_limit_rejected():
    fake = FakeIgdb([httpx.Response(429, headers={"Retry-After": "2"}, text="Too Many Requests")])
    backend = _backend(fake)

    with pytest.raises(RateLimitRejected) as exc_info:
        backend.query(Endpoints.GAMES, "fields *;")
    assert exc_info.value.retry_after == 2.0


def test_server_error_raises_backend_error():
    fake = FakeIgdb([httpx.Response(500, text="internal")])
    with pytest.raises(BackendError) as exc_info:
        _backend(fake).query(Endpoints.GAMES, "fields *;")
    assert exc_info.value.status_code == 500


def test_unauthorized_invalidates_token():
    fake = FakeIgdb([httpx.Response(401, text="Authorization Failure"), httpx.Response(200, json=[])])
    backend = _backend(fake)

    with pytest.raises(BackendError) as exc_info:
        backend.query(Endpoints.GAMES, "fields *;")
    assert exc_info.value.status_code == 401

    assert backend.query(Endpoints.GAMES, "fields *;") == []
    assert len(fake.token_requests) == 2


def test_transport_error_raises_backend_error():
    fake = FakeIgdb([httpx.ConnectError("connection refused")])
    with pytest.raises(BackendError, match="ConnectError"):
        _backend(fake).query(Endpoints.GAMES, "fields *;")


def test_non_list_body_raises_backend_error():
    fake = FakeIgdb([httpx.Response(200, content=json.dumps({"oops": True}).encode())])
    with pytest.raises(BackendError, match="JSON array"):
        _backend(fake).query(Endpoints.GAMES, "fields *;")


def test_authentication_failure_raises_backend_error():
    fake = FakeIgdb(token_status=400)
    with pytest.raises(BackendError) as exc_info:
        _backend(fake).query(Endpoints.GAMES, "fields *;")
    assert exc_info.value.status_code == 400
    assert fake.api_requests == []


def test_missing_credentials():
    with pytest.raises(ConfigurationError):
        IgdbBackend(client_id="", client_secret="secret")


def test_factory_none_source_has_no_backend():
    assert create_backend(MetadataSource.NONE) is None


def test_factory_igdb_requires_credentials():
    with pytest.raises(ConfigurationError, match="IGDB_CLIENT_ID"):
        create_backend(MetadataSource.IGDB, client_id="abc", secret=None)


def test_factory_builds_igdb_backend():
    http_client = mock_http_client(FakeIgdb())
    backend = create_backend(MetadataSource.IGDB, client_id="abc", secret="def", http_client=http_client)
    assert isinstance(backend, IgdbBackend)
    assert backend.client_id == "abc"
