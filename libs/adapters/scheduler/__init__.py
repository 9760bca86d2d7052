from .asyncio_tick import AsyncioFrameScheduler
from .fakes import ManualFrameScheduler

__all__ = ["AsyncioFrameScheduler", "ManualFrameScheduler"]
