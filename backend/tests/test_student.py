import asyncio

import pytest

from classpolls.errors import (
    AlreadySubmittedError,
    EmptyAllocationError,
    InvalidAllocationError,
    StoreError,
    SubmissionTimeoutError,
)
from classpolls.student import StudentView
from conftest import BrokenStore, MemoryFlag, SlowStore


def make_view(store, flag, timeout=1.0):
    return StudentView(store, flag, session_id="class_01", timeout=timeout)


def test_starts_balanced(store, flag):
    view = make_view(store, flag)
    assert view.values == [20, 20, 20, 20, 20]
    assert view.total == 100
    assert view.preview == [20, 20, 20, 20, 20]
    assert view.can_submit
    assert not view.submitted


def test_sliders_move_independently(store, flag):
    view = make_view(store, flag)
    view.set_value(0, 100)
    assert view.values == [100, 20, 20, 20, 20]
    assert view.total == 180


def test_unparseable_slider_input_counts_as_zero(store, flag):
    view = make_view(store, flag)
    view.set_value(1, "abc")
    view.set_value(2, "35")
    view.set_value(3, None)
    assert view.values == [20, 0, 35, 0, 20]


def test_out_of_range_slider_input_is_rejected(store, flag):
    view = make_view(store, flag)
    with pytest.raises(InvalidAllocationError):
        view.set_value(0, 101)
    with pytest.raises(InvalidAllocationError):
        view.set_value(5, 10)
    assert view.values == [20, 20, 20, 20, 20]


def test_existing_flag_shows_confirmation_view(store):
    view = make_view(store, MemoryFlag(True))
    assert view.submitted
    assert not view.can_submit
    with pytest.raises(AlreadySubmittedError):
        asyncio.run(view.submit())
    assert store.query("class_01") == []


def test_empty_allocation_writes_nothing(store, flag):
    view = make_view(store, flag)
    for i in range(5):
        view.set_value(i, 0)
    assert not view.can_submit

    with pytest.raises(EmptyAllocationError):
        asyncio.run(view.submit())
    assert view.alert == "Please allocate at least some points."
    assert store.query("class_01") == []
    assert not flag.is_set()
    assert not view.submitted


def test_successful_submit(store, flag):
    view = make_view(store, flag)
    for i, v in enumerate([50, 0, 0, 0, 0]):
        view.set_value(i, v)

    record = asyncio.run(view.submit())

    assert record["values"] == [100, 0, 0, 0, 0]
    assert record["total"] == 100
    assert record["originalTotal"] == 50
    assert record["id"] == view.submission_id
    assert flag.is_set()
    assert view.submitted and not view.loading
    assert view.confirmation[0] == ("Section 1", 100)
    assert store.query("class_01") == [record]

    with pytest.raises(AlreadySubmittedError):
        asyncio.run(view.submit())


def test_changing_a_slider_starts_a_new_submission(store, flag):
    view = make_view(store, flag)
    view.submission_id = "abc"
    view.set_value(0, 20)
    assert view.submission_id == "abc"
    view.set_value(0, 30)
    assert view.submission_id is None


def test_timeout_leaves_view_retryable_without_duplicates(flag):
    store = SlowStore(delay=0.05)
    view = make_view(store, flag, timeout=0.01)

    async def scenario():
        with pytest.raises(SubmissionTimeoutError):
            await view.submit()
        assert view.alert == (
            "Failed to submit: Request timed out check your internet connection. "
            "Please try again."
        )
        assert not view.loading
        assert not flag.is_set()

        # the timed-out write is not cancelled and lands later
        await asyncio.sleep(0.1)
        assert len(store.query("class_01")) == 1

        view.timeout = 1.0
        return await view.submit()

    record = asyncio.run(scenario())
    assert store.query("class_01") == [record]
    assert flag.is_set()


def test_store_failure_is_surfaced(flag):
    view = make_view(BrokenStore(), flag)
    with pytest.raises(StoreError):
        asyncio.run(view.submit())
    assert view.alert == "Failed to submit: disk full. Please try again."
    assert not flag.is_set()
    assert view.can_submit
