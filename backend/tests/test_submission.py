import asyncio

import pytest

from classpolls.errors import EmptyAllocationError, SubmissionTimeoutError
from classpolls.submission import submit_allocation
from conftest import SlowStore


def test_writes_one_normalized_record(store):
    record = asyncio.run(submit_allocation(store, "class_01", [20, 20, 20, 20, 20]))
    assert record["values"] == [20, 20, 20, 20, 20]
    assert record["total"] == 100
    assert record["originalTotal"] == 100
    assert "createdAt" in record
    assert len(store.query("class_01")) == 1


def test_submission_id_becomes_document_id(store):
    record = asyncio.run(submit_allocation(store, "class_01", [1, 2, 3, 4, 5], submission_id="k1"))
    assert record["id"] == "k1"


def test_empty_vector_never_reaches_the_store(store):
    with pytest.raises(EmptyAllocationError):
        asyncio.run(submit_allocation(store, "class_01", [0, 0, 0, 0, 0]))
    assert store.query("class_01") == []


def test_timeout_does_not_cancel_the_write():
    store = SlowStore(delay=0.05)

    async def scenario():
        with pytest.raises(SubmissionTimeoutError):
            await submit_allocation(store, "class_01", [10, 0, 0, 0, 0], timeout=0.01)
        assert store.query("class_01") == []
        await asyncio.sleep(0.1)

    asyncio.run(scenario())
    assert len(store.query("class_01")) == 1
