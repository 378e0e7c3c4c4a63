from .asyncio_scheduler import AsyncioScheduler

__all__ = ["AsyncioScheduler"]
