import logging
import uuid

from classpolls import config
from classpolls.errors import (
    AlreadySubmittedError,
    ClassPollsError,
    EmptyAllocationError,
    InvalidAllocationError,
)
from classpolls.normalizer import MAX_POINTS, MIN_POINTS, percent_preview
from classpolls.submission import submit_allocation

logger = logging.getLogger(__name__)

FLAG_KEY = "allocation_submitted"
FLAG_MAX_AGE = 365 * 24 * 60 * 60


# ─── "already submitted" flag ───────────────────────────────────────
class SubmittedFlag:
    """Durable per-device marker that this device already submitted."""

    def is_set(self) -> bool:
        raise NotImplementedError

    def set(self) -> None:
        raise NotImplementedError


class CookieFlag(SubmittedFlag):
    """Flag kept in a long-lived browser cookie."""

    def __init__(self, request, response):
        self.request = request
        self.response = response

    def is_set(self):
        return self.request.cookies.get(FLAG_KEY) == "true"

    def set(self):
        self.response.set_cookie(FLAG_KEY, "true", max_age=FLAG_MAX_AGE, samesite="lax")


# ─── student view ───────────────────────────────────────────────────
class StudentView:
    """
    State behind the student's sliders.

    Sliders move independently; nothing forces the raw total to 100. On submit
    the vector is normalized and written once. A success sets the device flag
    and switches to the read-only confirmation; a failure leaves an ``alert``
    and the sliders untouched so the student can try again.

    ``preview`` and ``can_submit`` are the slider state for clients that drive
    this view directly; the bundled browser page computes its own copies and
    only goes through ``submit``.
    """

    def __init__(self, store, flag, session_id=config.SESSION_ID, timeout=config.SUBMIT_TIMEOUT,
                 labels=config.CATEGORY_LABELS):
        self.store = store
        self.flag = flag
        self.session_id = session_id
        self.timeout = timeout
        self.labels = list(labels)
        self.values = list(config.DEFAULT_VALUES)
        self.submitted = flag.is_set()
        self.loading = False
        self.alert = None
        self.confirmation = None
        self.submission_id = None

    @property
    def total(self):
        return sum(self.values)

    @property
    def preview(self):
        return percent_preview(self.values)

    @property
    def can_submit(self):
        return self.total > 0 and not self.loading and not self.submitted

    def set_value(self, index, value):
        # slider input that does not parse counts as zero
        try:
            value = int(value)
        except (TypeError, ValueError):
            value = 0
        if not 0 <= index < len(self.values):
            raise InvalidAllocationError(f"No category at index {index}")
        if not MIN_POINTS <= value <= MAX_POINTS:
            raise InvalidAllocationError(
                f"Value must be between {MIN_POINTS} and {MAX_POINTS}, got {value}"
            )
        if self.values[index] != value:
            # a different allocation is a different submission
            self.submission_id = None
        self.values[index] = value

    async def submit(self):
        if self.submitted:
            raise AlreadySubmittedError()
        if self.total == 0:
            error = EmptyAllocationError()
            self.alert = str(error)
            raise error

        if self.submission_id is None:
            self.submission_id = uuid.uuid4().hex
        self.loading = True
        self.alert = None
        try:
            record = await submit_allocation(
                self.store, self.session_id, self.values,
                submission_id=self.submission_id, timeout=self.timeout,
            )
        except ClassPollsError as e:
            logger.error("Error submitting allocation: %s", e)
            self.alert = f"Failed to submit: {e}. Please try again."
            raise
        finally:
            self.loading = False

        self.flag.set()
        self.submitted = True
        self.confirmation = list(zip(self.labels, record["values"]))
        return record
