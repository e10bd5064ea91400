"""Shared fixtures: an in-memory backend behind httpx.MockTransport."""

import inspect
import json
import re
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from docpulse.client import BackendClient
from docpulse.events import NotificationBus
from docpulse.models import Document

BASE_URL = "http://backend.test/api"
TOKEN = "test-token"


class FakeBackend:
    """Route table for the mock transport.

    Routes are registered as ``(method, path regex)`` with either a handler
    or a canned payload. Handlers receive the request plus any named regex
    groups and may be async, so tests can hold a request in flight.
    """

    def __init__(self):
        self.routes: list[tuple[str, re.Pattern, Any]] = []
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, reply: Any, status: int = 200) -> None:
        if not callable(reply):
            payload = reply

            def reply(request, **_):
                return httpx.Response(status, json=payload)

        self.routes.insert(0, (method, re.compile(f"^{path}$"), reply))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        for method, pattern, handler in self.routes:
            match = pattern.match(path)
            if method == request.method and match:
                response = handler(request, **match.groupdict())
                if inspect.isawaitable(response):
                    response = await response
                return response
        return httpx.Response(404, json={"detail": "Not found."})

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        pattern = re.compile(f"^{path}$")
        return [
            r for r in self.requests
            if r.method == method and pattern.match(r.url.path.removeprefix("/api"))
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest_asyncio.fixture
async def client(backend: FakeBackend, bus: NotificationBus):
    client = BackendClient(BASE_URL, transport=httpx.MockTransport(backend.handle), bus=bus)
    yield client
    await client.aclose()


@pytest.fixture
def make_document() -> Callable[..., Document]:
    def _make(id: int = 1, name: str = "Quarterly Report.pdf") -> Document:
        return Document(id=id, name=name, file_type="pdf", size=1024)

    return _make
