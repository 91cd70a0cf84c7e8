from .base import ApplicationStore, Subscription
from .memory import InMemoryStore

__all__ = ["ApplicationStore", "Subscription", "InMemoryStore"]
