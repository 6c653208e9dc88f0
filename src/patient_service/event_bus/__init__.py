"""Topic-based event bus.

Handlers subscribe to a topic name; publishers emit Pydantic events onto it.
The bus isolates handler failures from each other and from the publisher.
See ``bus.py`` for the API and ``core.py`` for class-based handlers with
dependency injection.
"""

from .bus import EventBus, get_event_bus
from .core import EventHandler

__all__ = [
    "EventBus",
    "EventHandler",
    "get_event_bus",
]
