from .async_value import AsyncValue, State
from .background import BackgroundExecutor, from_future, run_in
from .combinators import combine, transform
from .errors import AsyncValueError, CancelledFailure, ComputationFailure, TimeoutFailure
from .scheduler import AsyncioScheduler, Scheduler, ThreadingScheduler, TimerHandle
from .timeout_racer import TimeoutRacer

__all__ = [
    "AsyncValue",
    "AsyncValueError",
    "AsyncioScheduler",
    "BackgroundExecutor",
    "CancelledFailure",
    "ComputationFailure",
    "Scheduler",
    "State",
    "ThreadingScheduler",
    "TimeoutFailure",
    "TimeoutRacer",
    "TimerHandle",
    "combine",
    "from_future",
    "run_in",
    "transform",
]
