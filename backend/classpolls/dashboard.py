import asyncio
import logging

from classpolls import config
from classpolls.aggregator import summarize
from classpolls.models import AllocationRecord, DashboardState

logger = logging.getLogger(__name__)

LOADING = "loading"
ERROR = "error"
READY = "ready"

TIMEOUT_MESSAGE = "Connection taking too long. Check your internet or firewall."
UNREADABLE_MESSAGE = "Some submissions could not be read. Reload to try again."


class DashboardView:
    """
    Live results for one session.

    ``mount`` opens a store subscription and arms a timer; the first snapshot
    (empty or not) disarms it. If the timer fires first the view goes to the
    error state with a connectivity message. Every snapshot replaces the whole
    record set. ``on_change`` is called with the view after each transition.
    """

    def __init__(self, store, session_id=config.SESSION_ID, timeout=config.SUBSCRIBE_TIMEOUT,
                 labels=config.CATEGORY_LABELS, on_change=None):
        self.store = store
        self.session_id = session_id
        self.timeout = timeout
        self.labels = list(labels)
        self.on_change = on_change
        self.state = LOADING
        self.error = None
        self.records = []
        self._ready = None
        self._subscription = None
        self._timer = None

    @property
    def mounted(self):
        return self._subscription is not None

    def mount(self):
        if self._subscription is not None:
            return
        self.state = LOADING
        self.error = None
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.timeout, self._on_timeout)
        self._subscription = self.store.subscribe(self.session_id, self._on_snapshot, self._on_error)
        logger.info("Dashboard subscribed to session %s", self.session_id)
        self._notify()

    def unmount(self):
        self._cancel_timer()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.info("Dashboard unsubscribed from session %s", self.session_id)

    def reload(self):
        self.unmount()
        self.mount()

    def summary(self):
        return summarize(self.records, self.labels, self.session_id)

    def snapshot(self):
        if self.state != READY:
            return DashboardState(status=self.state, error=self.error)
        return self._ready

    # --- store callbacks ---
    def _on_snapshot(self, documents):
        self._cancel_timer()
        documents = list(documents)
        try:
            ready = DashboardState(
                status=READY,
                records=[AllocationRecord.model_validate(d) for d in documents],
                summary=summarize(documents, self.labels, self.session_id),
            )
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            logger.error("Unreadable snapshot for %s: %s", self.session_id, e)
            self.state = ERROR
            self.error = UNREADABLE_MESSAGE
            self._notify()
            return
        self.records = documents
        self._ready = ready
        self.state = READY
        self.error = None
        self._notify()

    def _on_error(self, message):
        self._cancel_timer()
        # the store has already dropped the subscription
        self._subscription = None
        logger.error("Error fetching data: %s", message)
        self.state = ERROR
        self.error = message
        self._notify()

    def _on_timeout(self):
        self._timer = None
        if self.state == LOADING:
            logger.warning("No snapshot for %s within %ss", self.session_id, self.timeout)
            self.state = ERROR
            self.error = TIMEOUT_MESSAGE
            self._notify()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self)
