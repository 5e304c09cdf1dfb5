"""Error taxonomy for failed async values.

Every failed AsyncValue holds one of these:
- ComputationFailure: the computation raised, original exception in `cause`
- TimeoutFailure: no result arrived within the bound
- CancelledFailure: the value was cancelled before it resolved
"""


class AsyncValueError(Exception):
    """Base class for errors stored in a failed AsyncValue."""


class ComputationFailure(AsyncValueError):
    """The background computation raised an exception."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.__cause__ = cause


class TimeoutFailure(AsyncValueError, TimeoutError):
    """No result arrived within the timeout bound."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"Timed out after {seconds} seconds")
        self.seconds = seconds


class CancelledFailure(AsyncValueError):
    """The value was cancelled before it resolved."""

    def __init__(self, message: str = "Cancelled") -> None:
        super().__init__(message)
