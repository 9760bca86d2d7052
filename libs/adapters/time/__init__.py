from .clock import AsyncioSleeper, MonotonicClock
from .fakes import FakeClockPort, FakeSleeperPort

__all__ = ["MonotonicClock", "AsyncioSleeper", "FakeClockPort", "FakeSleeperPort"]
