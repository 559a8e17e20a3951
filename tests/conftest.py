"""Shared fixtures: a fake EnergiaPro API behind httpx.MockTransport."""

import logging
import urllib.parse

import httpx
import pytest
import structlog

from energiapro import EnergiaPro
from energiapro.restapi import EnergiaProRestClient, auth

BASE_URL = "https://api.example.test/api"
USERNAME = "username"
SECRET_KEY = "super-secret"


@pytest.fixture(autouse=True)
def quiet_logging():
    """Drop log output below CRITICAL during tests."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Use the minimum bcrypt cost so authentication stays fast."""
    monkeypatch.setattr(auth, "BCRYPT_COST", 4)


class FakeApi:
    """Callable MockTransport handler recording every request.

    Authentication requests get ``auth_responses`` in order, then a fresh
    ``token-N`` each. Data requests get ``data_responses`` in order.
    """

    def __init__(self):
        self.auth_responses: list[httpx.Response] = []
        self.data_responses: list[httpx.Response | Exception] = []
        self.auth_requests: list[httpx.Request] = []
        self.data_requests: list[httpx.Request] = []

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode the form-encoded body of a captured request."""
        return dict(urllib.parse.parse_qsl(request.content.decode()))

    @property
    def requests(self) -> list[httpx.Request]:
        return self.auth_requests + self.data_requests

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/authenticate.php"):
            self.auth_requests.append(request)
            if self.auth_responses:
                return self.auth_responses.pop(0)
            return httpx.Response(
                200,
                json={"token": f"token-{len(self.auth_requests)}"},
            )

        self.data_requests.append(request)
        response = self.data_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def rest_client(fake_api: FakeApi) -> EnergiaProRestClient:
    return EnergiaProRestClient(
        username=USERNAME,
        secret_key=SECRET_KEY,
        base_url=BASE_URL,
        transport=fake_api.transport(),
    )


@pytest.fixture
def energiapro_api(fake_api: FakeApi) -> EnergiaPro:
    return EnergiaPro(
        username=USERNAME,
        secret_key=SECRET_KEY,
        base_url=BASE_URL,
        transport=fake_api.transport(),
    )
