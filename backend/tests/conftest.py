import asyncio

import pytest
from fastapi.testclient import TestClient

from classpolls.errors import StoreError
from classpolls.main import create_app
from classpolls.store import AllocationStore
from classpolls.student import SubmittedFlag


class MemoryFlag(SubmittedFlag):
    def __init__(self, value=False):
        self.value = value

    def is_set(self):
        return self.value

    def set(self):
        self.value = True


class SlowStore(AllocationStore):
    """Store whose writes take ``delay`` seconds to land."""

    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    async def add(self, session_id, data, doc_id=None):
        await asyncio.sleep(self.delay)
        return await super().add(session_id, data, doc_id=doc_id)


class BrokenStore(AllocationStore):
    async def add(self, session_id, data, doc_id=None):
        raise StoreError("disk full")


class SilentSubscription:
    def __init__(self, store):
        self.store = store

    def unsubscribe(self):
        self.store.open -= 1


class SilentStore:
    """Accepts subscriptions but never delivers a snapshot."""

    def __init__(self):
        self.open = 0

    def subscribe(self, session_id, on_snapshot, on_error=None):
        self.open += 1
        return SilentSubscription(self)


@pytest.fixture
def store():
    return AllocationStore()


@pytest.fixture
def flag():
    return MemoryFlag()


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as c:
        yield c
