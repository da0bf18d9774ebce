# classpolls/store.py
"""
In-process document store for allocation records.

Documents are grouped per session under ``sessions/<session_id>/allocations``.
Writes are append-only and get a server-assigned ``createdAt``. Listeners get
the complete, ordered result set for their session on subscribe and again
after every change; there is no incremental diff.
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from classpolls.errors import StoreError

logger = logging.getLogger(__name__)


def collection_path(session_id):
    return f"sessions/{session_id}/allocations"


# --- JSON persistence ---
def _decode(document):
    """A stored document with ``createdAt`` parsed, or None if it is unusable."""
    if not isinstance(document, dict) or not isinstance(document.get("id"), str):
        return None
    values = document.get("values", [])
    if not isinstance(values, list):
        return None
    try:
        created_at = datetime.fromisoformat(document["createdAt"])
    except (KeyError, TypeError, ValueError):
        return None
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return dict(document, createdAt=created_at)


def _decode_all(path, session_id, docs):
    decoded = []
    for d in docs:
        doc = _decode(d)
        if doc is None:
            logger.error("Dropping malformed document in %s/%s: %r", path, collection_path(session_id), d)
            continue
        decoded.append(doc)
    return decoded


def _encode(collections):
    return json.dumps(
        {
            session_id: [dict(d, createdAt=d["createdAt"].isoformat()) for d in docs]
            for session_id, docs in collections.items()
        },
        indent=2,
    )


def load_documents(path):
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return {
                    session_id: _decode_all(path, session_id, docs)
                    for session_id, docs in data.items()
                    if isinstance(docs, list)
                }
            logger.error("Ignoring %s: expected an object keyed by session", path)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error("Error loading %s: %s", path, e)
    return {}


def save_documents(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


class Subscription:
    """Handle returned by :meth:`AllocationStore.subscribe`."""

    def __init__(self, store, session_id, on_snapshot, on_error=None):
        self.session_id = session_id
        self.active = True
        self._store = store
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._pending = None

    def _first_delivery(self):
        self._pending = None
        self.deliver()

    def deliver(self):
        if not self.active:
            return
        try:
            self._on_snapshot(self._store.query(self.session_id))
        except Exception:
            logger.exception("Snapshot listener for %s failed", collection_path(self.session_id))

    def fail(self, message):
        if not self.active:
            return
        self._close()
        if self._on_error is not None:
            self._on_error(message)

    def unsubscribe(self):
        if self.active:
            self._close()
            logger.debug("Closed subscription on %s", collection_path(self.session_id))

    def _close(self):
        self.active = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._store._forget(self)


class AllocationStore:
    def __init__(self, path=None):
        self.path = Path(path) if path is not None else None
        self._collections = load_documents(self.path) if self.path is not None else {}
        self._subscriptions = []
        self._lock = asyncio.Lock()  # serialize writes and file saves

    # --- reads ---
    def query(self, session_id):
        """Documents for a session, newest ``createdAt`` first."""
        docs = self._collections.get(session_id, [])
        # stable sort over reversed insertion order: equal timestamps list newest insert first
        ordered = sorted(reversed(docs), key=lambda d: d["createdAt"], reverse=True)
        return [dict(d, values=list(d.get("values") or [])) for d in ordered]

    def subscribe(self, session_id, on_snapshot, on_error=None):
        """
        Listen to a session's collection.
        The first snapshot arrives on the next loop iteration, then one per change.
        """
        subscription = Subscription(self, session_id, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        subscription._pending = asyncio.get_running_loop().call_soon(subscription._first_delivery)
        logger.debug("Opened subscription on %s", collection_path(session_id))
        return subscription

    def subscriber_count(self, session_id=None):
        return sum(
            1 for s in self._subscriptions
            if session_id is None or s.session_id == session_id
        )

    # --- writes ---
    async def add(self, session_id, data, doc_id=None):
        """
        Create one document; returns it with its ``id`` and ``createdAt``.
        A ``doc_id`` that already exists returns the stored document untouched.
        """
        async with self._lock:
            docs = self._collections.setdefault(session_id, [])
            if doc_id is not None:
                for existing in docs:
                    if existing["id"] == doc_id:
                        logger.info("Duplicate write %s ignored", doc_id)
                        return dict(existing)

            document = dict(data)
            document["id"] = doc_id or uuid.uuid4().hex
            document["createdAt"] = datetime.now(timezone.utc)
            docs.append(document)

            if self.path is not None:
                try:
                    await asyncio.to_thread(save_documents, self.path, _encode(self._collections))
                except OSError as e:
                    docs.remove(document)
                    logger.error("Could not save %s: %s", self.path, e)
                    raise StoreError(f"Could not save allocation: {e}") from e

        self._broadcast(session_id)
        return dict(document)

    def close(self, message="Store closed"):
        """Fail every live subscription with ``message``."""
        for subscription in list(self._subscriptions):
            subscription.fail(message)

    # --- fan-out ---
    def _broadcast(self, session_id):
        for subscription in list(self._subscriptions):
            # a pending first delivery will already carry the new document
            if subscription.session_id == session_id and subscription._pending is None:
                subscription.deliver()

    def _forget(self, subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
