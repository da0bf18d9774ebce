class ClassPollsError(Exception):
    """Base class for every error surfaced to a student or instructor."""


class InvalidAllocationError(ClassPollsError):
    """Raw slider vector has the wrong shape or out-of-range entries."""


class EmptyAllocationError(InvalidAllocationError):
    def __init__(self, message="Please allocate at least some points."):
        super().__init__(message)


class SubmissionTimeoutError(ClassPollsError):
    def __init__(self, message="Request timed out check your internet connection"):
        super().__init__(message)


class StoreError(ClassPollsError):
    """The document store could not complete a read or write."""


class AlreadySubmittedError(ClassPollsError):
    def __init__(self, message="This device has already submitted an allocation."):
        super().__init__(message)
