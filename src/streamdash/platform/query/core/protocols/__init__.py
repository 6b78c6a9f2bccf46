"""Query protocols."""

from .observer import ObserverCountListener, QueryObserver, Unsubscribe
from .transport import Transport

__all__ = [
    "ObserverCountListener",
    "QueryObserver",
    "Unsubscribe",
    "Transport",
]
