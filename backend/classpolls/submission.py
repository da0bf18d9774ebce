import asyncio
import logging

from classpolls import config
from classpolls.errors import SubmissionTimeoutError
from classpolls.normalizer import normalize

logger = logging.getLogger(__name__)


def _log_late_result(task):
    if task.cancelled():
        return
    if task.exception() is not None:
        logger.error("Timed-out write failed later: %s", task.exception())
    else:
        logger.info("Timed-out write %s landed later", task.result()["id"])


async def submit_allocation(store, session_id, raw, submission_id=None, timeout=config.SUBMIT_TIMEOUT):
    """
    Normalize ``raw`` and write one allocation record.

    The write races ``timeout``. Losing the race does not cancel the write: it
    may still land later, and a retry with the same ``submission_id`` then
    resolves to that same document instead of a second one.
    """
    normalized = normalize(raw)  # empty or invalid input raises before any write
    document = {
        "values": normalized.values,
        "total": normalized.total,
        "originalTotal": normalized.original_total,
    }

    write = asyncio.ensure_future(store.add(session_id, document, doc_id=submission_id))
    try:
        record = await asyncio.wait_for(asyncio.shield(write), timeout)
    except asyncio.TimeoutError:
        logger.warning("Write %s timed out after %ss; left running", submission_id, timeout)
        write.add_done_callback(_log_late_result)
        raise SubmissionTimeoutError() from None

    logger.info("Allocation %s saved for %s: %s", record["id"], session_id, normalized.values)
    return record
