"""Pytest configuration and fixtures."""

import base64

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt

from portim.api.dependencies import get_storage
from portim.api.main import create_app
from portim.services.auth import Authenticator, JWTIdentityProvider, get_identity_provider
from portim.services.clients import ClientResolver
from portim.services.credentials import CredentialService, TokenCipher, get_credential_service
from portim.services.http import WebhookClient, get_webhook_client
from portim.services.interfaces import InterfaceRegistry
from portim.services.messages import MessageDeliveryPipeline
from portim.services.sessions import SessionRouter
from portim.storage.memory import InMemoryStorage

PROJECT_ID = "project-1"
OTHER_PROJECT_ID = "project-2"
ENCRYPTION_KEY = "00112233445566778899aabbccddeeff" * 2
JWT_SECRET = "test-jwt-secret"


class WebhookRecorder:
    """Stands in for every interface endpoint through httpx.MockTransport.

    Answers 200 unless ``respond`` queued other outcomes for a URL. Queued
    outcomes are consumed in order; the last one repeats.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._outcomes: dict[str, list] = {}

    def respond(self, url: str, *outcomes) -> None:
        """Queue status codes or httpx transport error classes for ``url``."""
        self._outcomes[url] = list(outcomes)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        queue = self._outcomes.get(str(request.url))
        outcome = 200
        if queue:
            outcome = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(outcome, type) and issubclass(outcome, httpx.TransportError):
            raise outcome("simulated failure", request=request)
        return httpx.Response(outcome)

    def to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]


def basic_auth(interface_id: str, secret: str) -> dict[str, str]:
    token = base64.b64encode(f"{interface_id}:{secret}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def bearer_auth(user_id: str, projects: list[str]) -> dict[str, str]:
    token = jwt.encode({"sub": user_id, "projects": projects}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def storage():
    """Create in-memory storage for tests."""
    return InMemoryStorage()


@pytest.fixture
def credentials():
    return CredentialService(cipher=TokenCipher(ENCRYPTION_KEY))


@pytest.fixture
def webhooks():
    return WebhookRecorder()


@pytest.fixture
def http(webhooks):
    """Webhook client wired to the recorder, without retry delays."""
    return WebhookClient(
        timeout=1.0,
        retry_attempts=3,
        retry_backoff=0,
        transport=httpx.MockTransport(webhooks.handler),
    )


@pytest.fixture
def identity():
    return JWTIdentityProvider(secret=JWT_SECRET)


@pytest.fixture
def registry(storage, credentials):
    return InterfaceRegistry(storage, credentials)


@pytest.fixture
def clients(storage):
    return ClientResolver(storage)


@pytest.fixture
def router(storage, registry, http):
    return SessionRouter(storage, registry, http)


@pytest.fixture
def pipeline(storage, registry, clients, router, http):
    return MessageDeliveryPipeline(storage, registry, clients, router, http)


@pytest.fixture
def authenticator(registry, identity):
    return Authenticator(registry, identity)


@pytest.fixture
def make_interface(registry):
    """Factory creating interfaces through the registry.

    Returns (interface, plaintext secret).
    """

    async def _make(name: str, project_id: str = PROJECT_ID, **fields):
        data = {
            "name": name,
            "event_endpoint": f"https://{name}.example.com/events",
            "external_id_field": "$.user.id",
            **fields,
        }
        return await registry.create_interface(data, project_id)

    return _make


@pytest_asyncio.fixture
async def bot_and_channel(make_interface):
    """A bot interface B and a channel interface A controlled by B."""
    bot, bot_secret = await make_interface(
        "bot",
        control_endpoint="https://bot.example.com/control",
    )
    channel, channel_secret = await make_interface("channel", control=bot.id)
    return {
        "bot": bot,
        "bot_secret": bot_secret,
        "channel": channel,
        "channel_secret": channel_secret,
    }


@pytest_asyncio.fixture
async def contact(clients):
    """A client of the default project."""
    return await clients.create_client(PROJECT_ID, "u-1")


@pytest.fixture
def app(storage, credentials, http, identity):
    """Create test application."""
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_credential_service] = lambda: credentials
    app.dependency_overrides[get_webhook_client] = lambda: http
    app.dependency_overrides[get_identity_provider] = lambda: identity
    return app


@pytest_asyncio.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
