from .models import RunEvent, RunEventType
from .emitter import RunEventEmitter, NullEventEmitter, LoggingEventEmitter

__all__ = [
    "RunEvent",
    "RunEventType",
    "RunEventEmitter",
    "NullEventEmitter",
    "LoggingEventEmitter",
]
