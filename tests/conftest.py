import json

import httpx
import pytest

from api import ApiClient, Failed


def _reply(status_code=200, **payload):
    return httpx.Response(status_code, json=payload)


class Recorder:
    """MockTransport handler that answers from a route table and keeps every request."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return _reply(404, status=False, message="Not found")
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def last(self):
        return self.requests[-1]

    def body(self, index=-1):
        return json.loads(self.requests[index].content or b"null")


@pytest.fixture()
def reply():
    return _reply


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def client(recorder):
    return ApiClient(base_url="http://api.test", token="tok-123", transport=httpx.MockTransport(recorder))


@pytest.fixture()
def departments():
    return [
        {"department_id": 1, "department_code": "D1", "department": "Zeta"},
        {"department_id": 2, "department_code": "D2", "department": "Alpha"},
        {"department_id": 3, "department_code": "D3", "department": "mid", "description": None},
    ]


class Backend:
    """Stands in for ApiClient.request: answers Outcomes by (method, path) and logs each call."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def __call__(self, method, path, auth=None, body=None):
        self.calls.append((method, path, auth.code if auth is not None else None, body))
        return self.routes.get((method, path), Failed("Not found"))

    def count(self, method, path):
        return len([c for c in self.calls if c[0] == method and c[1] == path])

    def codes(self, method, path):
        return [c[2] for c in self.calls if c[0] == method and c[1] == path]

    def bodies(self, method, path):
        return [c[3] for c in self.calls if c[0] == method and c[1] == path]


@pytest.fixture()
def backend(monkeypatch):
    fake = Backend()
    monkeypatch.setattr(ApiClient, "request", lambda self, method, path, auth=None, body=None: fake(method, path, auth, body))
    return fake
