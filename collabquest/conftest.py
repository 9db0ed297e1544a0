"""Shared fixtures: an in-memory stand-in for the motor database and a mocked LLM."""
import copy
import json

import httpx
import pytest

import collabquest.db
from collabquest.config import get_settings
from collabquest.services import llm_client


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self.docs = docs

    def sort(self, key: str, direction: int = 1):
        self.docs.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for equality queries and $set updates."""

    def __init__(self):
        self.docs: list[dict] = []

    @staticmethod
    def _matches(doc: dict, query: dict) -> bool:
        return all(doc.get(k) == v for k, v in query.items())

    @staticmethod
    def _public(doc: dict) -> dict:
        out = copy.deepcopy(doc)
        out.pop("_id", None)
        return out

    async def create_index(self, *args, **kwargs):
        return "fake_index"

    async def count_documents(self, query: dict) -> int:
        return sum(1 for d in self.docs if self._matches(d, query))

    async def find_one(self, query: dict, projection=None):
        for d in self.docs:
            if self._matches(d, query):
                return self._public(d)
        return None

    def find(self, query: dict, projection=None) -> FakeCursor:
        return FakeCursor([self._public(d) for d in self.docs if self._matches(d, query)])

    async def insert_one(self, doc: dict):
        doc["_id"] = len(self.docs) + 1
        self.docs.append(copy.deepcopy(doc))

    async def insert_many(self, docs: list[dict]):
        for doc in docs:
            await self.insert_one(doc)

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        for d in self.docs:
            if self._matches(d, query):
                d.update(copy.deepcopy(update.get("$set", {})))
                return
        if upsert:
            await self.insert_one({**query, **update.get("$set", {})})

    async def delete_one(self, query: dict):
        for i, d in enumerate(self.docs):
            if self._matches(d, query):
                del self.docs[i]
                return

    async def delete_many(self, query: dict):
        self.docs = [d for d in self.docs if not self._matches(d, query)]


class FakeDatabase:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture(autouse=True)
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(collabquest.db, "db", db)
    return db


@pytest.fixture(autouse=True)
def llm_settings(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.setenv("PEER_REPLY_DELAY", "0")
    monkeypatch.setenv("PEER_REPLY_JITTER", "0")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "")
    get_settings.cache_clear()


def completion(content) -> dict:
    """An OpenRouter chat-completions body carrying content."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class LLMStub:
    """Records outgoing requests and answers with a handler of our choosing."""

    def __init__(self):
        self.requests: list[dict] = []
        self.handler = lambda payload: httpx.Response(200, json=completion("ok"))

    def reply(self, content):
        self.handler = lambda payload: httpx.Response(200, json=completion(content))

    def fail(self, status: int, body: str = ""):
        self.handler = lambda payload: httpx.Response(status, text=body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        return self.handler(payload)


@pytest.fixture
def llm(monkeypatch):
    stub = LLMStub()
    monkeypatch.setattr(llm_client, "transport", httpx.MockTransport(stub))
    return stub
