from .notifier import INotifier
from .routing_gateway import IRoutingGateway
from .scheduler import IScheduler, ITimerHandle, TimerCallback

__all__ = [
    "INotifier",
    "IRoutingGateway",
    "IScheduler",
    "ITimerHandle",
    "TimerCallback",
]
