"""Shared fixtures: an in-process stand-in for the Lantmäteriet HTTP APIs."""

import httpx
import pytest
import pytest_asyncio

from lantmateriet_services import LantmaterietServices
from token_cache import TokenCache


# Square of 100 x 100 m around central Stockholm, SWEREF99 TM
PROPERTY_POLYGON = {
    "type": "Polygon",
    "coordinates": [[
        [673950.0, 6579950.0],
        [674050.0, 6579950.0],
        [674050.0, 6580050.0],
        [673950.0, 6580050.0],
        [673950.0, 6579950.0],
    ]],
}

PROPERTY_FEATURE = {
    "type": "Feature",
    "properties": {
        "objektidentitet": "909a6a63-6a4b-90ec-e040-ed8f66444c3f",
        "beteckning": "STOCKHOLM NORRMALM 1:1",
        "kommun": "Stockholm",
        "lan": "Stockholms län",
    },
    "geometry": PROPERTY_POLYGON,
}

STAC_ITEM = {
    "type": "Feature",
    "id": "ortofoto_2023_65750_6740",
    "stac_version": "1.0.0",
    "bbox": [17.98, 59.29, 18.17, 59.38],
    "geometry": {"type": "Point", "coordinates": [18.07, 59.33]},
    "properties": {
        "datetime": "2023-06-14T00:00:00Z",
        "resolution": 0.16,
        "eo:bands": [
            {"name": "b1", "common_name": "red"},
            {"name": "b2", "common_name": "green"},
            {"name": "b3", "common_name": "blue"},
            {"name": "b4", "common_name": "nir"},
        ],
    },
    "assets": {
        "data": {"href": "https://dl.lantmateriet.se/ortofoto/65750_6740.tif", "roles": ["data"]},
        "preview": {"href": "https://dl.lantmateriet.se/ortofoto/65750_6740.jpg", "roles": ["thumbnail"]},
    },
    "links": [],
}


class FakeLantmateriet:
    """Routes requests by path and records every request it sees."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses = {
            "/token": httpx.Response(
                200, json={"access_token": "test-token", "token_type": "Bearer", "expires_in": 3600}
            ),
            "/fastighetsindelning/v1/hitta": httpx.Response(
                200, json={"type": "FeatureCollection", "features": [PROPERTY_FEATURE]}
            ),
            "/fastighetsindelning/v1/sok": httpx.Response(
                200, json={"type": "FeatureCollection", "features": [PROPERTY_FEATURE]}
            ),
            "/adress/v1/sok": httpx.Response(
                200,
                json={
                    "features": [{
                        "properties": {
                            "adress": "Drottninggatan 1",
                            "postnummer": "111 51",
                            "postort": "Stockholm",
                            "kommun": "Stockholm",
                            "lan": "Stockholms län",
                        },
                        "geometry": {"type": "Point", "coordinates": [674000.0, 6580000.0]},
                    }]
                },
            ),
            "/hojd/v1/punkt": httpx.Response(200, json={"hojd": 28.4, "referenssystem": "RH 2000"}),
            "/stac-bild/v1/search": httpx.Response(
                200, json={"type": "FeatureCollection", "features": [STAC_ITEM]}
            ),
            "/stac-hojd/v1/search": httpx.Response(
                200, json={"type": "FeatureCollection", "features": []}
            ),
        }

    def respond(self, path: str, status_code: int, **kwargs) -> None:
        self.responses[path] = httpx.Response(status_code, **kwargs)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get(request.url.path)
        if response is None:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )


@pytest.fixture
def fake_api():
    return FakeLantmateriet()


@pytest_asyncio.fixture
async def client(fake_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api)) as http_client:
        yield http_client


@pytest.fixture
def token_cache():
    return TokenCache("test-key", "test-secret", token_url="https://api.lantmateriet.se/token")


@pytest.fixture
def services(token_cache):
    return LantmaterietServices(token_cache)


@pytest.fixture
def unauthenticated_services():
    return LantmaterietServices(TokenCache(None, None))
